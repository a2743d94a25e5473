from __future__ import annotations

import math
from dataclasses import dataclass

from domain.models import PERCENT_MAX, Point, Size

DEFAULT_MARGIN = 0.05


@dataclass(frozen=True)
class CoordinateSpace:
    """Maps the 0..100 percentage space onto a drawing surface.

    The court occupies the surface minus an inset margin on every side, the
    margin being a fraction of each surface dimension.
    """

    width: float
    height: float
    margin: float = DEFAULT_MARGIN

    def __post_init__(self) -> None:
        if not (self.width > 0 and self.height > 0):
            msg = f"Surface size must be positive, got {self.width}x{self.height}"
            raise ValueError(msg)
        if not 0 <= self.margin < 0.5:
            msg = f"Margin fraction must be in [0, 0.5), got {self.margin}"
            raise ValueError(msg)

    def inset_origin(self) -> Point:
        return Point(self.width * self.margin, self.height * self.margin)

    def inset_size(self) -> Size:
        scale = 1 - 2 * self.margin
        return Size(self.width * scale, self.height * scale)

    def to_surface(self, percent_x: float, percent_y: float) -> Point:
        origin = self.inset_origin()
        size = self.inset_size()
        return Point(
            percent_x / PERCENT_MAX * size.width + origin.x,
            percent_y / PERCENT_MAX * size.height + origin.y,
        )

    def to_percent(self, px: float, py: float) -> Point:
        origin = self.inset_origin()
        size = self.inset_size()
        return Point(
            (px - origin.x) / size.width * PERCENT_MAX,
            (py - origin.y) / size.height * PERCENT_MAX,
        )

    def surface_distance(self, a: Point, b: Point) -> float:
        return math.hypot(a.x - b.x, a.y - b.y)
