"""
Boundary normalization and alignment

Turns raw boundary points into a validated parcel polygon:
- Closes the ring and drops duplicate/collinear vertices
- Enforces counter-clockwise (right-hand rule) winding
- Rejects self-intersecting and undersized parcels
- Finds the principal axis (longest edge) and the working frame that
  aligns it with +X
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Union

from loguru import logger
from shapely.geometry import LinearRing, Point, Polygon
from shapely.geometry.polygon import orient

from ..analysis.geometry_utils import GeometryUtils
from ..analysis.local_frame import LocalFrame
from ..analysis.projection import LocalProjection
from ..config import LayoutRules, get_config
from ..models import LatLng

PointInput = Union[LatLng, Mapping[str, Any]]


class BoundaryErrorKind(Enum):
    """Fatal boundary problems"""
    TOO_FEW_POINTS = "too_few_points"
    SELF_INTERSECTING = "self_intersecting"
    TOO_SMALL = "too_small"


class BoundaryError(Exception):
    """Raised when the parcel cannot be used for generation"""

    def __init__(self, kind: BoundaryErrorKind, message: str, site_boundary: Optional[Polygon] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.site_boundary = site_boundary  # lon/lat polygon, when one could be built


@dataclass
class NormalizedBoundary:
    """A validated parcel in every frame the pipeline needs"""
    geographic: Polygon  # lon/lat, counter-clockwise
    local: Polygon  # meters, global metric frame
    working: Polygon  # meters, principal axis along +X
    projection: LocalProjection
    frame: LocalFrame
    site_area: float  # m²

    @property
    def alignment_angle(self) -> float:
        return self.frame.angle


def coerce_points(points: Sequence[PointInput]) -> List[LatLng]:
    """Accept LatLng models or {lat, lng} mappings"""
    coerced = []
    for p in points:
        if isinstance(p, LatLng):
            coerced.append(p)
        else:
            coerced.append(LatLng.model_validate(p))
    return coerced


class BoundaryNormalizer:
    """Validates the parcel boundary and computes the working frame"""

    def __init__(self, rules: Optional[LayoutRules] = None):
        self.rules = rules or get_config().layout

    def normalize(self, points: Sequence[PointInput]) -> NormalizedBoundary:
        """
        Normalize raw boundary points

        Args:
            points: Ordered boundary vertices; the ring may be open or closed

        Returns:
            NormalizedBoundary

        Raises:
            BoundaryError: fewer than 3 distinct points, self-intersection,
                or area below the minimum
        """
        if not points or len(points) < 3:
            raise BoundaryError(
                BoundaryErrorKind.TOO_FEW_POINTS,
                "At least 3 boundary points are required"
            )

        lat_lngs = coerce_points(points)
        ref_lon = sum(p.lng for p in lat_lngs) / len(lat_lngs)
        ref_lat = sum(p.lat for p in lat_lngs) / len(lat_lngs)
        projection = LocalProjection(ref_lon, ref_lat)

        local_coords = [projection.point_to_local(p.lng, p.lat) for p in lat_lngs]
        cleaned = GeometryUtils.clean_ring(local_coords, self.rules.collinear_tolerance)

        if len(cleaned) < 3:
            raise BoundaryError(BoundaryErrorKind.TOO_FEW_POINTS, "Invalid Geometry")

        if not LinearRing(cleaned).is_simple:
            logger.warning("Site boundary intersects itself")
            site = projection.to_geographic(Polygon(cleaned))
            raise BoundaryError(
                BoundaryErrorKind.SELF_INTERSECTING,
                "Polygon self-intersects",
                site_boundary=site
            )

        local = orient(Polygon(cleaned), sign=1.0)
        site_area = local.area
        if site_area < self.rules.min_site_area_sqm:
            logger.warning(f"Site area {site_area:.1f} m² is below the {self.rules.min_site_area_sqm} m² minimum")
            raise BoundaryError(BoundaryErrorKind.TOO_SMALL, "Area too small")

        angle = GeometryUtils.principal_axis(list(local.exterior.coords))
        centroid = local.centroid
        frame = LocalFrame(pivot=(centroid.x, centroid.y), angle=angle)

        logger.debug(
            f"Boundary: {len(cleaned)} vertices, {site_area:.1f} m², principal axis {angle:.2f}°"
        )

        return NormalizedBoundary(
            geographic=projection.to_geographic(local),
            local=local,
            working=frame.to_local(local),
            projection=projection,
            frame=frame,
            site_area=site_area,
        )

    def to_working(self, boundary: NormalizedBoundary, position: LatLng) -> Point:
        """Project and rotate a geographic point into the working frame"""
        x, y = boundary.projection.point_to_local(position.lng, position.lat)
        return boundary.frame.to_local(Point(x, y))
