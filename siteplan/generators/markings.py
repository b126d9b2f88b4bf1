"""
Zebra crossings at road intersections next to parks
"""

from typing import List, Optional, Sequence

from loguru import logger
from shapely.geometry import MultiPolygon, Point, box
from shapely.geometry.base import BaseGeometry

from ..config import MarkingRules, get_config
from .grid import GridSpec


class RoadMarkingGenerator:
    """Generates zebra stripe polygons in the working frame"""

    def __init__(self, rules: Optional[MarkingRules] = None):
        self.rules = rules or get_config().markings

    def generate(
        self,
        spec: GridSpec,
        site: BaseGeometry,
        parks: Sequence[BaseGeometry]
    ) -> List[MultiPolygon]:
        """
        Crossings on up to four sides of every intersection near a park

        An intersection qualifies when it lies on the parcel, outside every
        park, and within park_proximity_factor road widths of a park edge.

        Args:
            spec: Grid placement
            site: Parcel polygon (working frame)
            parks: Park polygons (working frame)

        Returns:
            One MultiPolygon of stripes per crossing
        """
        if not parks:
            return []

        road = spec.road_width
        reach = self.rules.park_proximity_factor * road
        offset = self.rules.offset_factor * road
        park_edges = [park.boundary for park in parks]

        markings = []
        for ix, iy in spec.road_intersections():
            center = Point(ix, iy)
            if not site.covers(center):
                continue
            if any(park.covers(center) for park in parks):
                continue
            if not any(edge.distance(center) < reach for edge in park_edges):
                continue

            for dx, dy, across_x in ((0, offset, False), (0, -offset, False), (offset, 0, True), (-offset, 0, True)):
                cx, cy = ix + dx, iy + dy
                if not site.covers(Point(cx, cy)):
                    continue
                zebra = self._stripes(cx, cy, across_x, road, parks)
                if zebra is not None:
                    markings.append(zebra)

        logger.debug(f"Generated {len(markings)} zebra crossings")
        return markings

    def _stripes(
        self,
        cx: float,
        cy: float,
        across_x: bool,
        road_width: float,
        parks: Sequence[BaseGeometry]
    ) -> Optional[MultiPolygon]:
        """Stripes stacked across the road; across_x stripes run along X and stack along Y"""
        rules = self.rules
        span = road_width * rules.span_factor
        step = rules.stripe_width_m + rules.gap_width_m
        half_len = rules.crossing_length_m / 2

        stripes = []
        pos = (cy if across_x else cx) - span / 2
        end = pos + span
        while pos < end:
            if across_x:
                stripe = box(cx - half_len, pos, cx + half_len, pos + rules.stripe_width_m)
            else:
                stripe = box(pos, cy - half_len, pos + rules.stripe_width_m, cy + half_len)
            if not any(stripe.intersects(park) for park in parks):
                stripes.append(stripe)
            pos += step

        return MultiPolygon(stripes) if stripes else None
