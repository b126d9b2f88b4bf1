"""
Access point detection and gate construction

Candidate entrances are where the grid road centrelines cross the parcel
boundary with open road (not a block or park) just inside. One candidate
is chosen by index, a gate is built there and the perimeter wall is opened
around it.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from shapely.affinity import rotate
from shapely.geometry import LineString, Point, box
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge

from ..analysis.geometry_utils import GeometryUtils
from ..analysis.planar import PlanarGeometry
from ..config import AccessRules, get_config
from .boundary import NormalizedBoundary
from .grid import GridSpec


@dataclass
class AccessCandidate:
    """A possible entrance, in the global metric frame"""
    point: Point
    bearing: float  # Compass bearing of the road that reaches the boundary here


@dataclass
class Gate:
    """Gate structure in the global metric frame"""
    island: BaseGeometry
    guard_house: Optional[BaseGeometry]
    barriers: List[LineString] = field(default_factory=list)
    entry_point: Optional[Point] = None
    rotation: float = 0.0


class AccessPointFinder:
    """Finds and ranks perimeter entrances"""

    def __init__(self, rules: Optional[AccessRules] = None):
        self.rules = rules or get_config().access

    def find(
        self,
        boundary: NormalizedBoundary,
        spec: GridSpec,
        obstacles: Sequence[BaseGeometry]
    ) -> List[AccessCandidate]:
        """
        Detect entrance candidates

        Args:
            boundary: Normalized parcel
            spec: Grid placement (road centrelines)
            obstacles: Superblocks and parks in the working frame

        Returns:
            Deduplicated candidates ordered by bearing from the parcel
            centroid, in the global metric frame
        """
        site = boundary.working
        ring = site.exterior
        minx, miny, maxx, maxy = site.bounds
        reach = max(maxx - minx, maxy - miny)

        lines: List[Tuple[LineString, Tuple[float, float]]] = []
        for x in spec.vertical_road_centers():
            lines.append((LineString([(x, miny - reach), (x, maxy + reach)]), (0.0, 1.0)))
        for y in spec.horizontal_road_centers():
            lines.append((LineString([(minx - reach, y), (maxx + reach, y)]), (1.0, 0.0)))

        raw: List[AccessCandidate] = []
        for line, direction in lines:
            if not line.intersects(ring):
                continue
            for pt in self._crossing_points(line.intersection(ring)):
                inside = self._inside_probe(site, pt, direction)
                if inside is None:
                    continue
                if any(obstacle.covers(inside) for obstacle in obstacles):
                    continue
                raw.append(AccessCandidate(
                    point=boundary.frame.to_global(pt),
                    bearing=boundary.frame.global_bearing(*direction),
                ))

        unique: List[AccessCandidate] = []
        for candidate in raw:
            if not any(candidate.point.distance(u.point) < self.rules.dedup_distance_m for u in unique):
                unique.append(candidate)

        center = boundary.local.centroid
        unique.sort(key=lambda c: GeometryUtils.signed_bearing((center.x, center.y), (c.point.x, c.point.y)))

        logger.debug(f"Access: {len(raw)} open crossings, {len(unique)} after deduplication")
        return unique

    @staticmethod
    def select(candidates: Sequence[AccessCandidate], entry_index: int) -> Optional[AccessCandidate]:
        """Pick the entrance for entry_index, wrapping around the candidate list"""
        if not candidates:
            return None
        return candidates[entry_index % len(candidates)]

    def _inside_probe(
        self,
        site: BaseGeometry,
        pt: Point,
        direction: Tuple[float, float]
    ) -> Optional[Point]:
        d = self.rules.probe_distance_m
        forward = Point(pt.x + direction[0] * d, pt.y + direction[1] * d)
        if site.covers(forward):
            return forward
        backward = Point(pt.x - direction[0] * d, pt.y - direction[1] * d)
        if site.covers(backward):
            return backward
        return None

    @staticmethod
    def _crossing_points(geom: BaseGeometry) -> List[Point]:
        """Point parts of a line/ring intersection; overlapping stretches are ignored"""
        if geom.is_empty:
            return []
        if geom.geom_type == "Point":
            return [geom]
        points = []
        for part in getattr(geom, "geoms", []):
            if part.geom_type == "Point":
                points.append(part)
        return points


class GateBuilder:
    """Builds the gate and the perimeter wall opening"""

    def __init__(self, rules: Optional[AccessRules] = None, planar: Optional[PlanarGeometry] = None):
        self.rules = rules or get_config().access
        self.planar = planar or PlanarGeometry()

    def build(self, candidate: AccessCandidate, road_width: float) -> Gate:
        """
        Gate centred on the entry point and turned to the road bearing

        The island and guard house are laid out along north, then rotated
        clockwise by the bearing. Barriers run across the road from the
        island edge to the road edge on both sides.
        """
        rules = self.rules
        pt = candidate.point
        bearing = candidate.bearing

        half_w = rules.island_width_m / 2
        half_l = rules.island_length_m / 2
        island = rotate(box(pt.x - half_w, pt.y - half_l, pt.x + half_w, pt.y + half_l), -bearing, origin=pt)

        house_w = rules.guard_house_width_m / 2
        house_l = rules.guard_house_length_m / 4
        guard_house = rotate(box(pt.x - house_w, pt.y - house_l, pt.x + house_w, pt.y + house_l), -bearing, origin=pt)

        barriers = []
        for side in (-90, 90):
            start = GeometryUtils.destination((pt.x, pt.y), half_w, bearing + side)
            end = GeometryUtils.destination((pt.x, pt.y), road_width / 2, bearing + side)
            barriers.append(LineString([start, end]))

        return Gate(
            island=island,
            guard_house=guard_house,
            barriers=barriers,
            entry_point=pt,
            rotation=bearing,
        )

    def perimeter_walls(
        self,
        site: BaseGeometry,
        gate: Optional[Gate],
        road_width: float
    ) -> List[LineString]:
        """
        Boundary ring as wall lines, opened around the gate

        Args:
            site: Parcel polygon, global metric frame
            gate: Selected gate, or None
            road_width: Road width in meters

        Returns:
            Wall lines; the whole ring when there is no gate or the cut fails
        """
        ring = LineString(site.exterior.coords)
        if gate is None or gate.entry_point is None:
            return [ring]

        radius = self.rules.wall_cut_ratio * (road_width / 2)
        opening = gate.entry_point.buffer(radius, quad_segs=max(1, self.rules.wall_cut_segments // 4))
        cut = self.planar.line_difference(ring, opening)
        if not cut.ok:
            logger.warning(f"Could not open the perimeter wall at the gate ({cut.error}); keeping the full ring")
            return [ring]

        merged = linemerge(self.planar.lines(cut.value))
        return self.planar.lines(merged)
