"""
Custom roads

User-drawn road segments are buffered to the road width, clipped to the
parcel, and cut out of the features they cross.
"""

from typing import List, Optional, Sequence, Tuple

from loguru import logger
from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry

from ..analysis.planar import PlanarGeometry

Segment = Tuple[Tuple[float, float], Tuple[float, float]]


class CustomRoadBuilder:
    """Builds custom road polygons and cuts them out of layout features"""

    def __init__(self, planar: Optional[PlanarGeometry] = None):
        self.planar = planar or PlanarGeometry()

    def build(self, segments: Sequence[Segment], road_width: float, site: BaseGeometry) -> List[BaseGeometry]:
        """
        Road polygons for two-point segments (meters)

        Segments that miss the parcel or fail to buffer are skipped.
        """
        roads = []
        for p1, p2 in segments:
            if p1 == p2:
                logger.debug("Skipping zero-length custom road")
                continue
            corridor = self.planar.buffer(LineString([p1, p2]), road_width / 2)
            if not corridor.ok:
                logger.debug(f"Custom road skipped: {corridor.error}")
                continue
            clipped = self.planar.intersection(corridor.value, site)
            if clipped.ok:
                roads.append(clipped.value)
        return roads

    def cut(
        self,
        features: Sequence[Optional[BaseGeometry]],
        roads: Sequence[BaseGeometry]
    ) -> List[Optional[BaseGeometry]]:
        """
        Subtract every road from every feature

        A feature the roads consume entirely becomes None. A failed
        difference leaves the feature as it was before that road.
        """
        result = []
        for feature in features:
            current = feature
            for road in roads:
                if current is None:
                    break
                if not current.intersects(road):
                    continue
                diff = self.planar.difference(current, road)
                if diff.ok:
                    current = diff.value
                elif diff.consumed:
                    current = None
                else:
                    logger.debug(f"Road cut failed, feature kept: {diff.error}")
            result.append(current)
        return result
