"""
Park/residential classification and park merging
"""

from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger
from shapely.geometry import Point, Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from ..analysis.planar import PlanarGeometry
from ..config import LayoutRules, get_config
from .grid import CellType, GridCell


class ParkClassifier:
    """Assigns each grid cell to park or residential use"""

    def classify(
        self,
        cells: Sequence[GridCell],
        anchors: Sequence[Point],
        park_percentage: float
    ) -> Tuple[List[GridCell], List[GridCell]]:
        """
        Classify cells in place

        Cells covering a park anchor are parks. The remaining cells are
        visited smallest first and become parks while the park total is
        below park_percentage of the total block area; the rest are
        residential.

        Args:
            cells: Grid cells in the working frame
            anchors: PARK_ANCHOR positions in the working frame
            park_percentage: Target park share, 0-100

        Returns:
            (park cells, residential cells), both in grid order
        """
        for cell in cells:
            if any(cell.polygon.covers(anchor) for anchor in anchors):
                cell.cell_type = CellType.PARK

        total_area = sum(cell.area for cell in cells)
        target_area = total_area * (park_percentage / 100)
        current_area = sum(cell.area for cell in cells if cell.cell_type == CellType.PARK)

        candidates = sorted(
            (cell for cell in cells if cell.cell_type == CellType.UNKNOWN),
            key=lambda c: c.area
        )
        for cell in candidates:
            if current_area < target_area:
                cell.cell_type = CellType.PARK
                current_area += cell.area
            else:
                cell.cell_type = CellType.RESIDENTIAL

        parks = [c for c in cells if c.cell_type == CellType.PARK]
        residential = [c for c in cells if c.cell_type != CellType.PARK]
        logger.debug(
            f"Classified {len(parks)} park / {len(residential)} residential cells "
            f"({current_area:.0f} of {target_area:.0f} m² park target)"
        )
        return parks, residential


class ParkMerger:
    """Joins neighbouring park cells across the road gaps between them"""

    def __init__(self, rules: Optional[LayoutRules] = None, planar: Optional[PlanarGeometry] = None):
        self.rules = rules or get_config().layout
        self.planar = planar or PlanarGeometry()

    def merge(self, park_cells: Sequence[GridCell], site: BaseGeometry) -> List[BaseGeometry]:
        """
        Merge park cells into contiguous park polygons

        Args:
            park_cells: Cells classified as park
            site: Parcel polygon in the working frame; gap fillers are clipped to it

        Returns:
            One polygon per connected park, counter-clockwise. If the union
            fails the cell polygons are returned unmerged.
        """
        if not park_cells:
            return []

        pieces = [cell.polygon for cell in park_cells]
        pieces.extend(self._gap_fillers(park_cells, site))

        merged = self.planar.union(pieces)
        if not merged.ok:
            logger.warning(f"Park merge failed ({merged.error}); keeping {len(park_cells)} cells unmerged")
            return [cell.polygon for cell in park_cells]

        parks = [orient(poly, sign=1.0) for poly in self.planar.polygons(merged.value)]
        logger.debug(f"Merged {len(park_cells)} park cells into {len(parks)} parks")
        return parks

    def _gap_fillers(self, park_cells: Sequence[GridCell], site: BaseGeometry) -> List[BaseGeometry]:
        """Road-gap boxes between each park cell and its right/top park neighbours"""
        eps = self.rules.gap_epsilon_m
        by_index: Dict[Tuple[int, int], GridCell] = {(c.col, c.row): c for c in park_cells}
        fillers = []

        for cell in park_cells:
            minx, miny, maxx, maxy = cell.bbox

            right = by_index.get((cell.col + 1, cell.row))
            if right:
                gap = box(
                    maxx - eps, max(miny, right.bbox[1]),
                    right.bbox[0] + eps, min(maxy, right.bbox[3])
                )
                fillers.extend(self._clip(gap, site))

            top = by_index.get((cell.col, cell.row + 1))
            if top:
                gap = box(
                    max(minx, top.bbox[0]), maxy - eps,
                    min(maxx, top.bbox[2]), top.bbox[1] + eps
                )
                fillers.extend(self._clip(gap, site))

        return fillers

    def _clip(self, gap: Polygon, site: BaseGeometry) -> List[BaseGeometry]:
        result = self.planar.intersection(gap, site)
        if not result.ok:
            return []
        return [result.value]
