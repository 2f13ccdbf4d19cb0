"""
hex_geometry.py - Tile rings for exported geometry

Converts tiles into closed hexagon rings, flipping the grid vertically so
row 0 ends up at the bottom of the exported map.
"""

import math
from typing import List, Optional, Sequence

from tile_model import EmptyGeometry, MultiGeometry, RegionGeometry, Ring, SingleGeometry, Tile


def flip_row(y: int, max_y: int) -> int:
    """
    Row index after flipping the grid vertically.

    Subtracting the parity of max_y keeps every row's parity, so the odd-row
    stagger stays on the same rows after the flip. The parity takes the sign
    of max_y (-1 for a negative odd max_y, unlike max_y % 2).
    """
    return (max_y - y) - int(math.fmod(max_y, 2))


def build_ring(tile: Tile, max_y: int, grid) -> Ring:
    """
    Closed hexagon ring for one tile.

    Args:
        tile: Tile to convert
        max_y: Largest tile row over the whole export
        grid: Grid geometry providing tile_center_point / get_points_around

    Returns:
        Vertex list with the first vertex repeated at the end
    """
    center = grid.tile_center_point({
        "x": tile.position.x,
        "y": flip_row(tile.position.y, max_y),
    })
    ring = [list(point) for point in grid.get_points_around(center, True)]
    ring.append(list(ring[0]))  # close the loop
    return ring


def build_region_geometry(tiles: Optional[Sequence[Tile]], max_y: Optional[int], grid) -> RegionGeometry:
    """
    Geometry for one region.

    No tiles -> EmptyGeometry, one tile -> SingleGeometry, more ->
    MultiGeometry with one ring per tile in tile order.
    """
    if not tiles:
        return EmptyGeometry()

    rings: List[Ring] = [build_ring(tile, max_y, grid) for tile in tiles]
    if len(rings) == 1:
        return SingleGeometry(ring=rings[0])
    return MultiGeometry(rings=rings)
