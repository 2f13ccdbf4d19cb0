"""
tile_model.py - Data model for tilegram exports

Tiles, datasets, per-region geometry and the errors raised while exporting.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd


Point = List[float]
Ring = List[Point]
Dataset = List[Tuple[str, float]]


# === Errors ===

class TilegramError(Exception):
    """Base class for export errors."""


class RegionLookupError(TilegramError, LookupError):
    """A region id has no name in the geography table or no dataset entry."""


class MalformedGeometryError(TilegramError, ValueError):
    """A feature cannot be delta-encoded (no paths, short path, holes...)."""


class DatasetError(TilegramError, ValueError):
    """Dataset rows are malformed or contain duplicate region ids."""


class ConfigError(TilegramError, ValueError):
    """Export settings or geography tables are malformed."""


# === Tiles ===

@dataclass(frozen=True)
class TilePosition:
    """Offset coordinate of a tile in the hex grid."""
    x: int
    y: int


@dataclass(frozen=True)
class Tile:
    """
    One hexagon cell assigned to a region.

    Attributes:
        id: Region identifier (e.g. a FIPS code)
        position: Offset coordinate in the grid
    """
    id: str
    position: TilePosition

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tile':
        """Build a tile from `{"id": .., "position": {"x": .., "y": ..}}`."""
        position = data["position"]
        return cls(
            id=str(data["id"]),
            position=TilePosition(x=int(position["x"]), y=int(position["y"])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": {"x": self.position.x, "y": self.position.y},
        }


# === Region geometry ===

@dataclass(frozen=True)
class EmptyGeometry:
    """Region listed in the dataset without any tiles."""

    @property
    def rings(self) -> List[Ring]:
        return []

    def to_geojson(self) -> None:
        return None


@dataclass(frozen=True)
class SingleGeometry:
    """Region made of exactly one tile."""
    ring: Ring

    @property
    def rings(self) -> List[Ring]:
        return [self.ring]

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Polygon",
            "coordinates": [self.ring],
        }


@dataclass(frozen=True)
class MultiGeometry:
    """
    Region made of two or more tiles.

    Every tile keeps its own ring; rings are never unioned, and their order
    is the order the tiles were given in.
    """
    rings: List[Ring] = field(default_factory=list)

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "MultiPolygon",
            "coordinates": [[ring] for ring in self.rings],
        }


RegionGeometry = Union[EmptyGeometry, SingleGeometry, MultiGeometry]


@dataclass(frozen=True)
class Feature:
    """A region with its geometry and display properties."""
    id: str
    geometry: RegionGeometry
    name: str
    metric_value: float

    @property
    def properties(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tilegramValue": self.metric_value,
        }

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry.to_geojson(),
            "id": self.id,
            "properties": self.properties,
        }


# === Loaders ===

def parse_tiles(data: Union[List[Dict[str, Any]], Dict[str, Any]]) -> List[Tile]:
    """
    Parse tiles from decoded JSON.

    Accepts either a list of tile dicts or an object with a "tiles" list.
    """
    if isinstance(data, dict):
        data = data.get("tiles", [])
    return [Tile.from_dict(item) for item in data]


def load_tiles(json_path: Path) -> List[Tile]:
    """Load tiles from a JSON file."""
    with open(json_path) as f:
        return parse_tiles(json.load(f))


def validate_dataset(dataset: Dataset) -> Dataset:
    """
    Check that every region id occurs once.

    Raises:
        DatasetError: On a duplicate id
    """
    seen = set()
    for region_id, _ in dataset:
        if region_id in seen:
            raise DatasetError(f"Duplicate region id in dataset: {region_id}")
        seen.add(region_id)
    return dataset


def load_dataset(csv_path: Path, id_column: str = "id", value_column: str = "value") -> Dataset:
    """
    Load a dataset CSV with `id,value` columns.

    Ids are read as strings so codes such as "01" keep their leading zero.

    Returns:
        List of (region_id, value) pairs in file order
    """
    df = pd.read_csv(csv_path, dtype=str)

    missing = [c for c in (id_column, value_column) if c not in df.columns]
    if missing:
        raise DatasetError(f"Dataset {csv_path} is missing column(s): {', '.join(missing)}")

    values = pd.to_numeric(df[value_column], errors="coerce")
    bad_rows = df[values.isna()]
    if not bad_rows.empty:
        raise DatasetError(
            f"Non-numeric values in {csv_path} for ids: {', '.join(bad_rows[id_column].astype(str))}"
        )

    dataset = [
        (str(region_id), value)
        for region_id, value in zip(df[id_column], values.tolist())
    ]
    return validate_dataset(dataset)


def dataset_lookup(dataset: Dataset) -> Dict[str, float]:
    """Map region id -> metric value."""
    return {region_id: value for region_id, value in dataset}


def find_metric(dataset: Dataset, region_id: str, lookup: Optional[Dict[str, float]] = None) -> float:
    """
    Metric value for a region.

    Raises:
        RegionLookupError: If the region is not in the dataset
    """
    if lookup is None:
        lookup = dataset_lookup(dataset)
    try:
        return lookup[region_id]
    except KeyError:
        raise RegionLookupError(f"Region {region_id!r} has tiles but no dataset entry") from None
