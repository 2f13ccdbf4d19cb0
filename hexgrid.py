"""
hexgrid.py - Hex grid geometry for tilegrams

Pointy-top hexagons in odd-row offset coordinates (x, y): odd rows are
shifted right by half a tile. Pixel space has y increasing downward.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple, Union

from tile_model import TilePosition


DEFAULT_TILE_EDGE = 20.0

# Inset applied to non-contiguous hexagons so drawn tiles show a hairline gap
TILE_GAP = 0.5

PositionLike = Union[TilePosition, Dict[str, Any], Sequence[int]]


def _position_xy(position: PositionLike) -> Tuple[int, int]:
    if isinstance(position, TilePosition):
        return position.x, position.y
    if isinstance(position, dict):
        return position["x"], position["y"]
    x, y = position
    return x, y


@dataclass
class GridGeometry:
    """
    Pixel geometry of a hex grid.

    Attributes:
        tile_edge: Hex size = radius from center to vertex (pixels)
        origin_x: X of the grid's top-left corner
        origin_y: Y of the grid's top-left corner
    """
    tile_edge: float = DEFAULT_TILE_EDGE
    origin_x: float = 0.0
    origin_y: float = 0.0

    @property
    def tile_width(self) -> float:
        """Width of hex (flat edge to flat edge) for pointy-top orientation."""
        return math.sqrt(3) * self.tile_edge

    @property
    def tile_height(self) -> float:
        """Height of hex (point to point) for pointy-top orientation."""
        return 2 * self.tile_edge

    @property
    def col_spacing(self) -> float:
        """Horizontal distance between hex centers in the same row."""
        return self.tile_width

    @property
    def row_spacing(self) -> float:
        """Vertical distance between adjacent rows."""
        # Rows interlock, so only 3/4 of the point-to-point height
        return 1.5 * self.tile_edge

    def tile_center_point(self, position: PositionLike) -> List[float]:
        """
        Center of the tile at an offset position.

        Args:
            position: TilePosition, {"x", "y"} mapping or (x, y) pair

        Returns:
            [x, y] in pixels
        """
        x, y = _position_xy(position)
        cx = self.origin_x + (x + 0.5 * (y % 2)) * self.col_spacing + self.tile_width / 2
        cy = self.origin_y + y * self.row_spacing + self.tile_height / 2
        return [cx, cy]

    def get_points_around(self, center: Sequence[float], contiguous: bool = True) -> List[List[float]]:
        """
        The six vertices of the hexagon around a center point.

        Vertices run clockwise (in y-down pixel space) starting at the top
        point. The ring is NOT closed; callers append the first vertex.

        Args:
            center: [x, y] tile center
            contiguous: Full-size hexagon when True, inset by TILE_GAP otherwise
        """
        cx, cy = center
        radius = self.tile_edge if contiguous else self.tile_edge - TILE_GAP

        vertices = []
        for i in range(6):
            angle = math.radians(60 * i - 90)  # -90°, -30°, 30°, 90°, 150°, 210°
            vertices.append([
                cx + radius * math.cos(angle),
                cy + radius * math.sin(angle),
            ])
        return vertices

    def get_tile_dimensions(self) -> Dict[str, float]:
        """Tile size in pixels as {"width", "height"}."""
        return {"width": self.tile_width, "height": self.tile_height}

    def position_for_point(self, x: float, y: float) -> TilePosition:
        """
        Nearest tile position for a pixel point.

        Exact for tile centers; points near a hex edge may resolve to the
        neighbouring tile.
        """
        row = round((y - self.origin_y - self.tile_height / 2) / self.row_spacing)
        col = round((x - self.origin_x - self.tile_width / 2) / self.col_spacing - 0.5 * (row % 2))
        return TilePosition(x=int(col), y=int(row))
