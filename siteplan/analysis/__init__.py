"""
Geometry primitives and analysis modules for the Site Layout Generator
"""

from .geometry_utils import GeometryUtils
from .projection import LocalProjection
from .planar import PlanarGeometry, GeometryResult, GeometryError
from .local_frame import LocalFrame
from .statistics import StatisticsAggregator

__all__ = [
    "GeometryUtils",
    "LocalProjection",
    "PlanarGeometry",
    "GeometryResult",
    "GeometryError",
    "LocalFrame",
    "StatisticsAggregator",
]
