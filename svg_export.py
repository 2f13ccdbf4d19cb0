"""
svg_export.py - Flat SVG export of tilegram tiles

One group per region (named after the region), one filled hexagon per tile.
Meant for illustration tools, so colors are plain #RRGGBB strings.
"""

import colorsys
import zlib
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import svgwrite
from shapely.geometry import MultiPolygon, Polygon

from geography import GeoCodeHash, lookup_region_name
from tile_model import Tile


SVG_HEADER = '<?xml version="1.0" encoding="utf-8"?>'

# === Style Constants ===
REGION_SATURATION = 0.55
REGION_LIGHTNESS = 0.65
CANVAS_MARGIN_PX = 20


def region_color(region_id: str) -> str:
    """
    Stable fill color for a region.

    The hue comes from a checksum of the id, so the same region gets the
    same color in every export.
    """
    hue = (zlib.crc32(str(region_id).encode("utf-8")) % 360) / 360
    r, g, b = colorsys.hls_to_rgb(hue, REGION_LIGHTNESS, REGION_SATURATION)
    return f"#{round(r * 255):02x}{round(g * 255):02x}{round(b * 255):02x}"


def group_tiles(tiles: Sequence[Tile]) -> Dict[str, List[Tile]]:
    """Tiles grouped by region id, groups in order of first appearance."""
    groups: Dict[str, List[Tile]] = {}
    for tile in tiles:
        groups.setdefault(tile.id, []).append(tile)
    return groups


def tile_polygon_points(tile: Tile, grid) -> List[List[float]]:
    """Closed hexagon for a tile at its unflipped grid position."""
    center = grid.tile_center_point({"x": tile.position.x, "y": tile.position.y})
    points = grid.get_points_around(center, True)
    points.append(list(points[0]))  # close the loop
    return points


def render_tiles_svg(
    tiles: Sequence[Tile],
    grid,
    geo_code_to_name: GeoCodeHash,
    width: Optional[float] = None,
    height: Optional[float] = None,
    color_for: Callable[[str], str] = region_color,
    margin_px: float = CANVAS_MARGIN_PX,
) -> str:
    """
    Render tiles to an SVG document.

    Args:
        tiles: Tiles to draw
        grid: Grid geometry (tile_center_point / get_points_around)
        geo_code_to_name: Region code -> {"name": ..} table
        width: Canvas width in pixels; fitted to the tiles when omitted
        height: Canvas height in pixels; fitted to the tiles when omitted
        color_for: Region id -> fill color
        margin_px: Margin added when fitting the canvas

    Returns:
        Serialized SVG with XML header
    """
    groups = group_tiles(tiles)

    # Resolve every name before drawing anything
    names = {
        region_id: lookup_region_name(geo_code_to_name, region_id)
        for region_id in groups
    }

    polygons = {
        region_id: [tile_polygon_points(tile, grid) for tile in region_tiles]
        for region_id, region_tiles in groups.items()
    }

    if width is None or height is None:
        all_rings = [ring for rings in polygons.values() for ring in rings]
        if all_rings:
            _, _, max_x, max_y = MultiPolygon([Polygon(ring) for ring in all_rings]).bounds
        else:
            max_x, max_y = 0.0, 0.0
        if width is None:
            width = round(max_x + margin_px)
        if height is None:
            height = round(max_y + margin_px)

    # Region names are free text, so skip svgwrite's XML-name validation of ids
    dwg = svgwrite.Drawing(size=(width, height), debug=False)

    for region_id, rings in polygons.items():
        group = dwg.g(id=names[region_id])
        fill_color = color_for(region_id)
        for ring in rings:
            group.add(dwg.polygon(
                points=[tuple(point) for point in ring],
                fill=fill_color,
            ))
        dwg.add(group)

    return SVG_HEADER + dwg.tostring()


def save_svg(svg_text: str, output_path: Path) -> None:
    """Write serialized SVG to disk."""
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(svg_text)
    print(f"Saved SVG to {output_path}")
