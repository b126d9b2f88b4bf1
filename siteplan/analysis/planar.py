"""
Safe polygon algebra

Wraps the shapely boolean operations used by the generators so a failing
or degenerate operation comes back as a GeometryResult carrying a
GeometryError instead of raising. Every call site decides its own fallback.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from loguru import logger
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely import unary_union
from shapely.validation import make_valid

AreaShape = Union[Polygon, MultiPolygon]
LineShape = Union[LineString, MultiLineString]

EMPTY = "empty"


@dataclass(frozen=True)
class GeometryError:
    """Why a geometric operation produced nothing usable"""
    operation: str
    reason: str

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.reason}"


@dataclass(frozen=True)
class GeometryResult:
    """Either a geometry or the error that prevented it"""
    value: Optional[BaseGeometry] = None
    error: Optional[GeometryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @property
    def consumed(self) -> bool:
        """The operation ran but nothing polygonal was left"""
        return self.error is not None and self.error.reason == EMPTY

    def unwrap_or(self, default):
        return self.value if self.ok else default

    @classmethod
    def success(cls, value: BaseGeometry) -> "GeometryResult":
        return cls(value=value)

    @classmethod
    def failure(cls, operation: str, reason: str) -> "GeometryResult":
        return cls(error=GeometryError(operation, reason))


class PlanarGeometry:
    """Boolean operations on planar (meter) geometry that never raise"""

    def __init__(self, min_area: float = 1e-6):
        self.min_area = min_area

    def intersection(self, a: BaseGeometry, b: BaseGeometry) -> GeometryResult:
        return self._run("intersection", lambda: self._valid(a).intersection(self._valid(b)))

    def difference(self, a: BaseGeometry, b: BaseGeometry) -> GeometryResult:
        return self._run("difference", lambda: self._valid(a).difference(self._valid(b)))

    def union(self, geoms: Iterable[BaseGeometry], grid_size: Optional[float] = None) -> GeometryResult:
        shapes = [g for g in geoms if g is not None and not g.is_empty]
        if not shapes:
            return GeometryResult.failure("union", "no input")
        return self._run("union", lambda: unary_union([self._valid(g) for g in shapes], grid_size=grid_size))

    def buffer(self, geom: BaseGeometry, distance: float, **kwargs) -> GeometryResult:
        """Buffer to a polygonal result; negative distances shrink"""
        return self._run("buffer", lambda: geom.buffer(distance, **kwargs))

    def line_difference(self, line: BaseGeometry, mask: BaseGeometry) -> GeometryResult:
        """Cut a mask out of a line work, keeping only the linear parts"""
        try:
            result = line.difference(self._valid(mask))
        except (GEOSException, ValueError) as e:
            logger.debug(f"line difference failed: {e}")
            return GeometryResult.failure("line_difference", str(e))

        lines = self.lines(result)
        if not lines:
            return GeometryResult.failure("line_difference", EMPTY)
        if len(lines) == 1:
            return GeometryResult.success(lines[0])
        return GeometryResult.success(MultiLineString(lines))

    # ============================================================
    # Part extraction
    # ============================================================

    def polygons(self, geom: Optional[BaseGeometry]) -> List[Polygon]:
        """Non-degenerate polygon parts of any geometry"""
        if geom is None or geom.is_empty:
            return []
        if isinstance(geom, Polygon):
            return [geom] if geom.area > self.min_area else []
        parts = []
        for part in getattr(geom, "geoms", []):
            parts.extend(self.polygons(part))
        return parts

    def lines(self, geom: Optional[BaseGeometry]) -> List[LineString]:
        if geom is None or geom.is_empty:
            return []
        if isinstance(geom, LineString):
            return [geom] if geom.length > 0 else []
        parts = []
        for part in getattr(geom, "geoms", []):
            parts.extend(self.lines(part))
        return parts

    def polygonal(self, geom: Optional[BaseGeometry]) -> Optional[AreaShape]:
        """Collapse any geometry to a Polygon, MultiPolygon, or None"""
        parts = self.polygons(geom)
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return MultiPolygon(parts)

    def _run(self, operation: str, func) -> GeometryResult:
        try:
            result = func()
        except (GEOSException, ValueError) as e:
            logger.debug(f"{operation} failed: {e}")
            return GeometryResult.failure(operation, str(e))

        shape = self.polygonal(result)
        if shape is None:
            return GeometryResult.failure(operation, EMPTY)
        return GeometryResult.success(shape)

    def _valid(self, geom: BaseGeometry) -> BaseGeometry:
        if geom.is_valid:
            return geom
        fixed = make_valid(geom)
        if fixed.geom_type == "GeometryCollection":
            return self.polygonal(fixed) or fixed
        return fixed


def area_of(geom: Optional[BaseGeometry]) -> float:
    """Area of a possibly missing geometry"""
    if geom is None or geom.is_empty:
        return 0.0
    return geom.area
