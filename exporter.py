"""
exporter.py - Export tilegram tiles to TopoJSON and SVG

Primary reference:
https://github.com/mbostock/topojson/wiki/Introduction

For GeoJSON geometry specifications see:
https://datatracker.ietf.org/doc/html/rfc7946

The primary export aggregates tiles into one feature per region and hands
the collection to the topojson library for quantization and shared-arc
extraction. The delta encoder in topology_codec is exposed here as
from_geojson for callers that want uncompressed, self-contained output.
"""

import json
from dataclasses import dataclass, fields
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import topojson as tp

from geography import GeographyResource, lookup_region_name
from hex_geometry import build_region_geometry
from hexgrid import GridGeometry
from region_aggregator import aggregate_tiles, max_tile_y
from svg_export import render_tiles_svg
from tile_model import (
    ConfigError,
    Dataset,
    Feature,
    Tile,
    dataset_lookup,
    find_metric,
    validate_dataset,
)
from topology_codec import DEFAULT_GEOJSON_OBJECT_ID, from_geojson


DISTRIBUTION_NAME = "tilegram-export"

try:
    __version__ = version(DISTRIBUTION_NAME)
except PackageNotFoundError:
    # Running from a source checkout without installing
    __version__ = "0+unknown"

OBJECT_ID = "tiles"
DEFAULT_QUANTIZATION = 10 ** 10


@dataclass
class ExportConfig:
    """
    Export settings.

    Attributes:
        object_id: Object name of the tile collection in exported TopoJSON
        geojson_object_id: Object name used by from_geojson
        quantization: Quantization factor passed to the topology builder
        version: Exporter version written into the export metadata
    """
    object_id: str = OBJECT_ID
    geojson_object_id: str = DEFAULT_GEOJSON_OBJECT_ID
    quantization: int = DEFAULT_QUANTIZATION
    version: str = __version__

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExportConfig':
        """
        Build a config from a dict.

        Raises:
            ConfigError: If data is not a dict or has unknown keys
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Export config must be a JSON object, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                f"Unknown export config key(s): {', '.join(unknown)} (known: {', '.join(sorted(known))})"
            )
        return cls(**data)

    @classmethod
    def from_json(cls, json_path: Path) -> 'ExportConfig':
        with open(json_path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in config {json_path}: {e}") from None
        return cls.from_dict(data)


def _keep_properties(feature: Dict[str, Any]) -> Dict[str, Any]:
    return feature["properties"]


def build_topology(
    objects: Dict[str, Dict[str, Any]],
    property_transform: Optional[Callable[[Dict[str, Any]], Any]] = None,
    quantization: int = DEFAULT_QUANTIZATION,
) -> Dict[str, Any]:
    """
    Convert a named FeatureCollection to TopoJSON with the topojson library.

    Features without geometry are kept as TopoJSON null geometries in their
    original position. Every output geometry carries the feature id and the
    result of property_transform.

    Args:
        objects: {object_name: FeatureCollection}, exactly one entry
        property_transform: Feature -> properties to keep (default: properties)
        quantization: Quantization factor (prequantize)
    """
    if len(objects) != 1:
        raise ValueError(f"Expected exactly one named object, got {len(objects)}")
    (object_name, collection), = objects.items()

    transform = property_transform or _keep_properties
    features = collection["features"]
    with_geometry = [f for f in features if f.get("geometry") is not None]

    if with_geometry:
        topology = tp.Topology(
            {"type": "FeatureCollection", "features": with_geometry},
            object_name=object_name,
            prequantize=quantization,
        )
        result = topology.to_dict()
    else:
        result = {"type": "Topology", "objects": {}, "arcs": []}

    # A single input collection yields a single output object
    built_objects = list(result["objects"].values())
    built = iter(built_objects[0]["geometries"] if built_objects else [])
    result["objects"] = {}
    geometries = []
    for feature in features:
        geometry = {"type": None} if feature.get("geometry") is None else dict(next(built))
        geometry["id"] = feature.get("id")
        geometry["properties"] = transform(feature)
        geometries.append(geometry)

    result["objects"][object_name] = {
        "type": "GeometryCollection",
        "geometries": geometries,
    }
    return result


class Exporter:
    """
    Converts tiles to TopoJSON and SVG.

    Collaborators are passed in so tests can substitute fakes:
        grid: tile_center_point / get_points_around / get_tile_dimensions
        geography: get_geo_code_hash(geography) -> {code: {"name": ..}}
        topology_builder: build_topology-compatible callable
    """

    def __init__(
        self,
        grid=None,
        geography=None,
        topology_builder: Optional[Callable[..., Dict[str, Any]]] = None,
        config: Optional[ExportConfig] = None,
    ):
        self.grid = grid if grid is not None else GridGeometry()
        self.geography = geography if geography is not None else GeographyResource()
        self.topology_builder = topology_builder or build_topology
        self.config = config or ExportConfig()

    def build_features(self, tiles: Sequence[Tile], dataset: Dataset, geography: str) -> List[Feature]:
        """
        One feature per region, tile regions first then dataset-only regions.

        Raises:
            DatasetError: If a region id occurs more than once in the dataset
            RegionLookupError: If a region has no name or no dataset entry
        """
        validate_dataset(dataset)
        geo_code_to_name = self.geography.get_geo_code_hash(geography)
        tiles_by_region = aggregate_tiles(tiles, dataset)
        metrics = dataset_lookup(dataset)

        # No tiles means no rows to flip; skip the -inf maximum entirely
        max_y = max_tile_y(tiles) if tiles else None

        features = []
        for region_id, region_tiles in tiles_by_region.items():
            features.append(Feature(
                id=region_id,
                geometry=build_region_geometry(region_tiles, max_y, self.grid),
                name=lookup_region_name(geo_code_to_name, region_id, geography),
                metric_value=find_metric(dataset, region_id, metrics),
            ))
        return features

    def to_topojson(
        self,
        tiles: Sequence[Tile],
        dataset: Dataset,
        metric_per_tile: Any,
        geography: str,
    ) -> Dict[str, Any]:
        """
        Convert hexagon offset coordinates to TopoJSON.

        Args:
            tiles: Tiles in layout order
            dataset: (region_id, value) pairs
            metric_per_tile: Value one tile represents, stored as metadata
            geography: Name of the region-code table

        Returns:
            Topology dict with tilegram metadata under "properties"
        """
        features = self.build_features(tiles, dataset, geography)
        geojson_objects = {
            self.config.object_id: {
                "type": "FeatureCollection",
                "features": [feature.to_geojson() for feature in features],
            },
        }

        # Convert verbose GeoJSON to compressed TopoJSON format
        topo_json = self.topology_builder(
            geojson_objects,
            property_transform=_keep_properties,
            quantization=self.config.quantization,
        )
        topo_json["properties"] = {
            "tilegramMetricPerTile": metric_per_tile,
            "tilegramVersion": self.config.version,
            "tilegramTileSize": self.grid.get_tile_dimensions(),
            "tilegramGeography": geography,
        }
        return topo_json

    def to_svg(
        self,
        tiles: Sequence[Tile],
        geography: str,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> str:
        """Flat SVG of the tiles, one group per region."""
        return render_tiles_svg(
            tiles,
            self.grid,
            self.geography.get_geo_code_hash(geography),
            width=width,
            height=height,
        )

    def from_geojson(self, geojson: Any, object_id: Optional[str] = None) -> Dict[str, Any]:
        """Delta-encoded TopoJSON from GeoJSON; see topology_codec.from_geojson."""
        if object_id is None:
            object_id = self.config.geojson_object_id
        return from_geojson(geojson, object_id)


def save_topojson(topology: Dict[str, Any], output_path: Path) -> None:
    """Write a topology as compact JSON."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(topology, f, separators=(",", ":"))

    geometry_count = sum(
        len(obj.get("geometries", [])) for obj in topology.get("objects", {}).values()
    )
    print(f"Saved TopoJSON to {output_path} ({geometry_count} features, {len(topology.get('arcs', []))} arcs)")
