"""
Lot subdivision and sliver repair

Each residential cell is split at its midline into a bottom band (lots
fronting the road below) and a top band (lots fronting the road above).
Bands are sliced into lot-width strips, undersized strips are merged into
a neighbour or dropped, and every surviving lot gets an id, a building and
a tree.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from ..analysis.planar import PlanarGeometry
from ..config import LayoutRules, get_config
from ..models import SiteConfig
from .assets import LotAssetGenerator, LotAssets
from .grid import GridCell


@dataclass(frozen=True)
class LotIdSequence:
    """Run-wide lot id source; advance() returns the id and the next sequence"""
    next_id: int = 0

    def advance(self) -> Tuple[int, "LotIdSequence"]:
        return self.next_id, LotIdSequence(self.next_id + 1)


@dataclass
class Lot:
    lot_id: int
    polygon: BaseGeometry  # working frame
    is_bottom_row: bool
    assets: LotAssets = field(default_factory=LotAssets)


@dataclass
class BlockSubdivision:
    """Outcome of subdividing one residential cell"""
    block: BaseGeometry  # Cell polygon with the road bands removed
    lots: List[Lot] = field(default_factory=list)


class LotSubdivider:
    """Subdivides residential cells into lots"""

    def __init__(
        self,
        site_config: SiteConfig,
        rules: Optional[LayoutRules] = None,
        assets: Optional[LotAssetGenerator] = None,
        planar: Optional[PlanarGeometry] = None
    ):
        self.site_config = site_config
        self.rules = rules or get_config().layout
        self.planar = planar or PlanarGeometry()
        self.assets = assets or LotAssetGenerator(planar=self.planar)

    @property
    def nominal_lot_area(self) -> float:
        return self.site_config.lot_width * self.site_config.lot_depth

    def subdivide(
        self,
        cell: GridCell,
        site: BaseGeometry,
        sequence: LotIdSequence
    ) -> Tuple[BlockSubdivision, LotIdSequence]:
        """
        Subdivide one residential cell

        Args:
            cell: Residential grid cell (working frame)
            site: Parcel polygon (working frame)
            sequence: Next free lot id

        Returns:
            (BlockSubdivision, advanced LotIdSequence)
        """
        minx, miny, maxx, maxy = cell.bbox
        mid_y = miny + (maxy - miny) / 2
        road = self.site_config.road_width

        block = cell.polygon
        for road_box in (box(minx, miny - road, maxx, miny), box(minx, maxy, maxx, maxy + road)):
            if road_box.intersects(site):
                block = self.planar.difference(block, road_box).unwrap_or(block)

        result = BlockSubdivision(block=block)
        for band_box, is_bottom in ((box(minx, miny, maxx, mid_y), True), (box(minx, mid_y, maxx, maxy), False)):
            band = self.planar.intersection(block, band_box)
            if not band.ok:
                continue
            for zone in self.planar.polygons(band.value):
                lots, sequence = self._process_zone(zone, is_bottom, sequence)
                result.lots.extend(lots)

        logger.debug(f"Cell ({cell.col}, {cell.row}): {len(result.lots)} lots")
        return result, sequence

    def _process_zone(
        self,
        zone: BaseGeometry,
        is_bottom: bool,
        sequence: LotIdSequence
    ) -> Tuple[List[Lot], LotIdSequence]:
        if zone.area < self.nominal_lot_area * self.rules.min_band_ratio:
            return [], sequence

        candidates = self.slice_zone(zone)
        if not candidates:
            return [], sequence

        lots = []
        for polygon in self.repair(candidates):
            if polygon.area < self.rules.min_lot_area_sqm:
                continue
            lot_id, sequence = sequence.advance()
            lots.append(Lot(
                lot_id=lot_id,
                polygon=polygon,
                is_bottom_row=is_bottom,
                assets=self.assets.generate(polygon, is_bottom),
            ))
        return lots, sequence

    def slice_zone(self, zone: BaseGeometry) -> List[BaseGeometry]:
        """Cut a band polygon into equal-width vertical strips"""
        minx, miny, maxx, maxy = zone.bounds
        count = max(1, math.floor((maxx - minx) / self.site_config.lot_width))
        slice_width = (maxx - minx) / count

        strips = []
        for k in range(count):
            start = minx + k * slice_width
            end = maxx + self.rules.slice_epsilon_m if k == count - 1 else minx + (k + 1) * slice_width
            strip = self.planar.intersection(box(start, miny, end, maxy), zone)
            if strip.ok:
                strips.append(strip.value)
        return strips

    def repair(self, candidates: List[BaseGeometry]) -> List[BaseGeometry]:
        """
        Merge or drop sliver lots

        The smallest lot below the viable area is merged with its smaller
        neighbour (the left one on a tie). A lot with no neighbour is
        dropped when below the discard ratio, otherwise accepted as a
        corner lot. A lot whose merge fails is accepted as is. Every pass
        removes a lot or accepts one, so the loop ends.

        Args:
            candidates: Strips in left-to-right order

        Returns:
            Repaired lots, left to right
        """
        lots = list(candidates)
        accepted = [False] * len(lots)
        min_viable = self.nominal_lot_area * self.rules.min_viable_lot_ratio
        discard_below = self.nominal_lot_area * self.rules.discard_lot_ratio

        while lots:
            worst = None
            for i, lot in enumerate(lots):
                if accepted[i] or lot.area >= min_viable:
                    continue
                if worst is None or lot.area < lots[worst].area:
                    worst = i
            if worst is None:
                break

            has_left = worst > 0
            has_right = worst < len(lots) - 1
            if has_left and has_right:
                target = worst - 1 if lots[worst - 1].area <= lots[worst + 1].area else worst + 1
            elif has_left:
                target = worst - 1
            elif has_right:
                target = worst + 1
            else:
                if lots[worst].area < discard_below:
                    lots.pop(worst)
                    accepted.pop(worst)
                else:
                    accepted[worst] = True
                continue

            first, second = min(worst, target), max(worst, target)
            merged = self.merge(lots[first], lots[second])
            if merged is not None:
                lots[first:second + 1] = [merged]
                accepted[first:second + 1] = [False]
            else:
                accepted[worst] = True

        return lots

    def merge(self, a: BaseGeometry, b: BaseGeometry) -> Optional[BaseGeometry]:
        """Union two neighbouring strips into one polygon, snapping when they only touch by a hairline"""
        merged = self.planar.union([a, b])
        if merged.ok and merged.value.geom_type == "Polygon":
            return merged.value

        snapped = self.planar.union([a, b], grid_size=self.rules.merge_grid_size_m)
        if snapped.ok and snapped.value.geom_type == "Polygon":
            return snapped.value

        logger.debug(f"Sliver merge failed: {snapped.error or snapped.value.geom_type}")
        return None
