"""
Working frame for grid fitting

The parcel is rotated so its principal axis lies along +X, the grid is
fitted with axis-aligned boxes, and every derived feature is rotated back
with the same angle about the same pivot.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from shapely.affinity import rotate
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .geometry_utils import GeometryUtils


@dataclass(frozen=True)
class LocalFrame:
    """Rotation about a pivot; angle in degrees counter-clockwise"""
    pivot: Tuple[float, float]
    angle: float

    def to_local(self, geom: BaseGeometry) -> BaseGeometry:
        """Global metric geometry -> working frame"""
        return rotate(geom, -self.angle, origin=Point(self.pivot))

    def to_global(self, geom: BaseGeometry) -> BaseGeometry:
        """Working frame geometry -> global metric frame"""
        return rotate(geom, self.angle, origin=Point(self.pivot))

    def global_bearing(self, dx: float, dy: float) -> float:
        """Compass bearing, in the global frame, of a working-frame direction"""
        rad = math.radians(self.angle)
        gx = dx * math.cos(rad) - dy * math.sin(rad)
        gy = dx * math.sin(rad) + dy * math.cos(rad)
        return GeometryUtils.bearing(gx, gy)
