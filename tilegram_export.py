#!/usr/bin/env python3
"""
tilegram_export.py - Command-line tilegram exports

Usage:
    # Tiles + dataset -> TopoJSON with tilegram metadata
    python tilegram_export.py topojson tiles.json dataset.csv \\
        --geography "United States" --metric-per-tile 500000 -o out.topojson

    # Tiles -> flat SVG for illustration tools
    python tilegram_export.py svg tiles.json --geography "United States" -o out.svg

    # Any GeoJSON polygons -> delta-encoded TopoJSON
    python tilegram_export.py delta regions.geojson -o regions.topojson --object-id states
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from exporter import ExportConfig, Exporter, save_topojson
from geography import DEFAULT_GEOGRAPHY, GeographyResource
from hexgrid import DEFAULT_TILE_EDGE, GridGeometry
from svg_export import save_svg
from tile_model import TilegramError, load_dataset, load_tiles


def metric_value(text: str):
    """Parse a metric, keeping whole numbers as ints (500000, not 500000.0)."""
    value = float(text)
    return int(value) if value.is_integer() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Export tilegram tiles to TopoJSON or SVG')
    parser.add_argument('--tile-edge', type=float, default=DEFAULT_TILE_EDGE,
                        help=f'Hexagon edge length in pixels (default: {DEFAULT_TILE_EDGE})')
    parser.add_argument('--config', type=Path,
                        help='JSON file with export settings (object_id, quantization, ...)')
    parser.add_argument('--geographies', type=Path,
                        help='JSON file with extra region-code-to-name tables')

    subparsers = parser.add_subparsers(dest='command', required=True)

    topo = subparsers.add_parser('topojson', help='Export tiles and dataset to TopoJSON')
    topo.add_argument('tiles', type=Path, help='Tiles JSON file')
    topo.add_argument('dataset', type=Path, help='Dataset CSV with id,value columns')
    topo.add_argument('--geography', default=DEFAULT_GEOGRAPHY, help='Region-code table name')
    topo.add_argument('--metric-per-tile', type=metric_value, required=True,
                      help='Dataset value represented by one tile')
    topo.add_argument('-o', '--output', type=Path, required=True, help='Output .topojson path')

    svg = subparsers.add_parser('svg', help='Export tiles to a flat SVG')
    svg.add_argument('tiles', type=Path, help='Tiles JSON file')
    svg.add_argument('--geography', default=DEFAULT_GEOGRAPHY, help='Region-code table name')
    svg.add_argument('--width', type=float, help='Canvas width (default: fit tiles)')
    svg.add_argument('--height', type=float, help='Canvas height (default: fit tiles)')
    svg.add_argument('-o', '--output', type=Path, required=True, help='Output .svg path')

    delta = subparsers.add_parser('delta', help='Delta-encode GeoJSON polygons as TopoJSON')
    delta.add_argument('geojson', type=Path, help='GeoJSON FeatureCollection file')
    delta.add_argument('--object-id', help='Object name in the output (default from config)')
    delta.add_argument('-o', '--output', type=Path, required=True, help='Output .topojson path')

    return parser


def build_exporter(args: argparse.Namespace) -> Exporter:
    config = ExportConfig.from_json(args.config) if args.config else ExportConfig()

    geography = GeographyResource()
    if args.geographies:
        loaded = geography.load_json(args.geographies)
        print(f"Loaded geographies: {', '.join(loaded)}")

    return Exporter(
        grid=GridGeometry(tile_edge=args.tile_edge),
        geography=geography,
        config=config,
    )


def run(args: argparse.Namespace) -> None:
    exporter = build_exporter(args)

    if args.command == 'topojson':
        tiles = load_tiles(args.tiles)
        dataset = load_dataset(args.dataset)
        print(f"Exporting {len(tiles)} tiles for {len(dataset)} regions ({args.geography})")
        topology = exporter.to_topojson(tiles, dataset, args.metric_per_tile, args.geography)
        save_topojson(topology, args.output)

    elif args.command == 'svg':
        tiles = load_tiles(args.tiles)
        print(f"Rendering {len(tiles)} tiles ({args.geography})")
        save_svg(exporter.to_svg(tiles, args.geography, args.width, args.height), args.output)

    elif args.command == 'delta':
        with open(args.geojson) as f:
            geojson = json.load(f)
        topology = exporter.from_geojson(geojson, args.object_id)
        save_topojson(topology, args.output)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (TilegramError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
