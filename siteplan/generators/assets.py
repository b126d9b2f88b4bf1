"""
Building and tree placement

Lot assets are placed in the working frame, where every lot faces a road
along the X axis: bottom-row lots front onto the road below them, top-row
lots onto the road above. Buildings sit against the rear of the lot and the
lot tree stands near the front.
"""

import math
import random
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from shapely.affinity import scale, translate
from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

from ..analysis.planar import PlanarGeometry
from ..config import AssetRules, get_config


@dataclass
class LotAssets:
    """Building footprint and tree for one lot; either may be missing"""
    building: Optional[BaseGeometry] = None
    height_factor: float = 1.0
    color_variant: int = 0
    tree: Optional[Point] = None


class LotAssetGenerator:
    """Generates building footprints and lot trees"""

    def __init__(
        self,
        rules: Optional[AssetRules] = None,
        rng: Optional[random.Random] = None,
        planar: Optional[PlanarGeometry] = None
    ):
        self.rules = rules or get_config().assets
        self.rng = rng or random.Random()
        self.planar = planar or PlanarGeometry()

    def generate(self, lot: BaseGeometry, is_bottom_row: bool) -> LotAssets:
        """
        Place a building and a tree on a lot in the working frame

        Args:
            lot: Lot polygon (working frame, meters)
            is_bottom_row: True when the lot fronts the road below it

        Returns:
            LotAssets; the building is omitted when the setbacks leave less
            than the minimum footprint, the tree when it falls off the lot
        """
        rules = self.rules
        minx, miny, maxx, maxy = lot.bounds
        depth = (maxy - miny) * self.rng.uniform(rules.min_depth_factor, rules.max_depth_factor)

        b_minx = minx + rules.side_setback_m
        b_maxx = maxx - rules.side_setback_m
        if is_bottom_row:
            b_maxy = maxy - rules.rear_setback_m
            b_miny = b_maxy - depth
        else:
            b_miny = miny + rules.rear_setback_m
            b_maxy = b_miny + depth

        assets = LotAssets()
        min_dim = rules.min_building_dimension_m
        if b_minx < b_maxx - min_dim and b_miny < b_maxy - min_dim:
            clipped = self.planar.intersection(box(b_minx, b_miny, b_maxx, b_maxy), lot)
            if clipped.ok:
                assets.building = clipped.value
                assets.height_factor = self.rng.uniform(rules.min_height_factor, rules.max_height_factor)
                assets.color_variant = self.rng.randrange(rules.color_variants)
            else:
                logger.debug(f"Building clip failed: {clipped.error}")

        left_side = self.rng.random() > 0.5
        tree_x = minx + rules.tree_side_margin_m if left_side else maxx - rules.tree_side_margin_m
        tree_y = miny + rules.tree_front_setback_m if is_bottom_row else maxy - rules.tree_front_setback_m
        tree = Point(min(max(tree_x, minx), maxx), min(max(tree_y, miny), maxy))
        if lot.covers(tree):
            assets.tree = tree

        return assets

    def regenerate(
        self,
        lot: BaseGeometry,
        is_bottom_row: Optional[bool],
        alignment_angle: float
    ) -> LotAssets:
        """
        Rebuild assets for a lot whose shape was edited

        Works in the global metric frame. The lot is shrunk by the side
        setback and pushed toward its rear, then clipped to the rear limit.
        Lots without a known row get a plain inset. The tree moves from the
        centroid toward the front when that stays on the lot.

        Args:
            lot: Edited lot polygon (meters)
            is_bottom_row: Row of the original lot, None when unknown
            alignment_angle: Principal axis of the layout, degrees counter-clockwise from east
        """
        rules = self.rules
        building = None

        inset = self.planar.buffer(lot, -rules.side_setback_m)
        if inset.ok:
            if is_bottom_row is not None:
                rear = math.radians(alignment_angle + (90 if is_bottom_row else -90))
                shift = rules.edited_front_setback_m - rules.side_setback_m
                shifted = translate(inset.value, math.cos(rear) * shift, math.sin(rear) * shift)
                rear_limit = self.planar.buffer(lot, -rules.edited_rear_setback_m)
                if rear_limit.ok:
                    building = self.planar.intersection(shifted, rear_limit.value).unwrap_or(shifted)
                else:
                    building = shifted
            else:
                building = self.planar.buffer(lot, -rules.edited_inset_m).unwrap_or(inset.value)

        if building is None:
            logger.debug("Edited lot too narrow for an inset footprint; scaling the lot instead")
            scaled = scale(lot, rules.edited_fallback_scale, rules.edited_fallback_scale, origin="centroid")
            building = scaled if not scaled.is_empty else None

        assets = LotAssets(building=building)
        if building is not None:
            assets.height_factor = self.rng.uniform(rules.min_height_factor, rules.max_height_factor)
            assets.color_variant = self.rng.randrange(rules.color_variants)

        centroid = lot.centroid
        assets.tree = centroid
        if is_bottom_row is not None:
            front = math.radians(alignment_angle + (-90 if is_bottom_row else 90))
            moved = translate(
                centroid,
                math.cos(front) * rules.edited_tree_shift_m,
                math.sin(front) * rules.edited_tree_shift_m
            )
            if lot.covers(moved):
                assets.tree = moved

        return assets


class ParkTreePlanter:
    """Best-effort random tree placement with a minimum spacing"""

    def __init__(
        self,
        rules: Optional[AssetRules] = None,
        rng: Optional[random.Random] = None,
        planar: Optional[PlanarGeometry] = None
    ):
        self.rules = rules or get_config().assets
        self.rng = rng or random.Random()
        self.planar = planar or PlanarGeometry()

    def target_count(self, park: BaseGeometry, max_count: Optional[int] = None) -> int:
        cap = max_count if max_count is not None else self.rules.park_tree_max_count
        wanted = max(self.rules.park_tree_min_count, int(park.area // self.rules.park_tree_density_sqm))
        return min(wanted, cap)

    def plant(
        self,
        park: BaseGeometry,
        max_count: Optional[int] = None,
        attempt_factor: Optional[int] = None
    ) -> List[Point]:
        """
        Scatter trees over a park

        Candidates are drawn uniformly from the park bounding box and kept
        when they fall inside the park shrunk by the inset (the park itself
        if the inset swallows it) and no closer than the spacing to an
        earlier tree. Stops at the target count or when the attempt budget
        runs out, so dense or thin parks get fewer trees.

        Args:
            park: Park polygon (meters)
            max_count: Tree cap; defaults to park_tree_max_count
            attempt_factor: Attempts per target tree; defaults to park_tree_attempt_factor

        Returns:
            List of tree points
        """
        rules = self.rules
        factor = attempt_factor if attempt_factor is not None else rules.park_tree_attempt_factor
        target = self.target_count(park, max_count)

        search_area = self.planar.buffer(park, -rules.park_tree_inset_m).unwrap_or(park)
        prepared = prep(search_area)
        minx, miny, maxx, maxy = park.bounds

        trees: List[Point] = []
        attempts = 0
        max_attempts = target * factor
        while len(trees) < target and attempts < max_attempts:
            attempts += 1
            candidate = Point(self.rng.uniform(minx, maxx), self.rng.uniform(miny, maxy))
            if not prepared.contains(candidate):
                continue
            if any(candidate.distance(t) < rules.park_tree_spacing_m for t in trees):
                continue
            trees.append(candidate)

        if len(trees) < target:
            logger.debug(f"Park tree under-fill: {len(trees)}/{target} after {attempts} attempts")
        return trees
