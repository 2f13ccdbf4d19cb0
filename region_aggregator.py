"""
region_aggregator.py - Group tiles by region

Builds the region id -> tiles mapping that every export starts from.
"""

from typing import Dict, List, Optional, Sequence

from tile_model import Dataset, Tile


def aggregate_tiles(tiles: Sequence[Tile], dataset: Dataset) -> Dict[str, Optional[List[Tile]]]:
    """
    Group tiles by region id and reconcile with the dataset.

    Keys are in insertion order: region ids in order of first tile, then
    dataset ids without tiles (mapped to None). Ids that only appear in
    tiles are kept; their metric lookup fails later.

    Args:
        tiles: Tiles in layout order
        dataset: (region_id, value) pairs

    Returns:
        Dict mapping region id to its tiles (input order) or None
    """
    tiles_by_region: Dict[str, Optional[List[Tile]]] = {}
    for tile in tiles:
        tiles_by_region.setdefault(tile.id, []).append(tile)

    # Even if no tiles, make sure every dataset entry is present
    for region_id, _ in dataset:
        if region_id not in tiles_by_region:
            tiles_by_region[region_id] = None

    return tiles_by_region


def max_tile_y(tiles: Sequence[Tile]) -> float:
    """Largest tile row, or -inf when there are no tiles."""
    return max((tile.position.y for tile in tiles), default=float("-inf"))
