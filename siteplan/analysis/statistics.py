"""
Layout statistics

Areas are measured on the final geometry in the local metric frame. Road
area is whatever is left of the site once lots and parks are taken out; it
is not measured on its own and can go negative when upstream geometry
overlaps, which is left visible rather than clamped.
"""

from typing import Iterable, Optional

from loguru import logger
from shapely.geometry.base import BaseGeometry

from ..models import ProjectStats
from .planar import area_of


class StatisticsAggregator:
    """Sums layout areas into ProjectStats"""

    def aggregate(
        self,
        site_area: float,
        lots: Iterable[Optional[BaseGeometry]],
        parks: Iterable[Optional[BaseGeometry]],
        possible_entrances: int
    ) -> ProjectStats:
        """
        Build the statistics record

        Args:
            site_area: Parcel area in m²
            lots: Lot polygons in meters; None entries are removed lots
            parks: Park polygons in meters; None entries are removed parks
            possible_entrances: Number of deduplicated access candidates

        Returns:
            ProjectStats
        """
        lot_areas = [area_of(lot) for lot in lots if lot is not None]
        net_sellable_area = sum(lot_areas)
        park_area = sum(area_of(park) for park in parks if park is not None)
        road_area = site_area - net_sellable_area - park_area
        efficiency = net_sellable_area / site_area if site_area > 0 else 0.0

        if road_area < 0:
            logger.warning(
                f"Lots and parks exceed the site area by {-road_area:.1f} m² - overlapping geometry upstream"
            )

        return ProjectStats(
            site_area=site_area,
            net_sellable_area=net_sellable_area,
            road_area=road_area,
            park_area=park_area,
            total_lots=len(lot_areas),
            efficiency=efficiency,
            possible_entrances=possible_entrances,
        )
