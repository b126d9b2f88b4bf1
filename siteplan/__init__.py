"""
Site Layout Generator

Procedural subdivision plans (blocks, lots, buildings, parks, trees,
markings, walls and a gated entrance) from a parcel boundary.
"""

from .models import (
    LatLng, SiteConfig, UserConstraint, ConstraintType, CustomRoad,
    GeneratedGeometry, ProjectStats, GenerationResult, LayoutOverrides
)
from .pipeline import SiteLayoutGenerator, generate
from .generators.overrides import apply_overrides
from .analysis.geometry_utils import GeometryUtils

__all__ = [
    "LatLng",
    "SiteConfig",
    "UserConstraint",
    "ConstraintType",
    "CustomRoad",
    "GeneratedGeometry",
    "ProjectStats",
    "GenerationResult",
    "LayoutOverrides",
    "SiteLayoutGenerator",
    "generate",
    "apply_overrides",
    "GeometryUtils",
]
