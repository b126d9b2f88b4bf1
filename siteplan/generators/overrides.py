"""
Layout edits

Applies consumer edits on top of a generated layout: replaced or removed
lots, blocks and parks (keyed "lot-3", "block-0", "park-1"), replaced
buildings ("bldg-3"), and custom roads cut through the plan. Assets of
edited lots and parks are regenerated and statistics recomputed.

Edits never raise. A geometric operation that fails leaves the affected
feature as it was.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from loguru import logger
from shapely.geometry.base import BaseGeometry

from ..analysis.planar import PlanarGeometry, area_of
from ..analysis.projection import LocalProjection
from ..analysis.statistics import StatisticsAggregator
from ..config import GeneratorConfig, get_config
from ..models import (
    AreaFeature, BuildingFeature, BuildingProps, GenerationResult, LayoutOverrides,
    LotFeature, LotProps, ParkFeature, ParkProps, SiteConfig, TreeFeature, TreeProps,
    area_geometry, point_geometry, to_shape
)
from .assets import LotAssetGenerator, ParkTreePlanter
from .roads import CustomRoadBuilder

OVERRIDE_KINDS = ("lot", "block", "park", "bldg")


@dataclass
class ParsedOverrides:
    """Override geometries (local meters) by kind and index; None removes the feature"""
    lots: Dict[int, Optional[BaseGeometry]] = field(default_factory=dict)
    blocks: Dict[int, Optional[BaseGeometry]] = field(default_factory=dict)
    parks: Dict[int, Optional[BaseGeometry]] = field(default_factory=dict)
    buildings: Dict[int, AreaFeature] = field(default_factory=dict)


def parse_override_key(key: str) -> Optional[Tuple[str, int]]:
    """'lot-12' -> ('lot', 12); None for anything else"""
    kind, _, index = key.partition("-")
    if kind not in OVERRIDE_KINDS or not index.isdigit():
        return None
    return kind, int(index)


class LayoutEditor:
    """Applies LayoutOverrides to a GenerationResult"""

    def __init__(self, config: Optional[GeneratorConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or get_config()
        self.rng = rng or random.Random()
        self.planar = PlanarGeometry()
        self.roads = CustomRoadBuilder(self.planar)
        self.lot_assets = LotAssetGenerator(self.config.assets, self.rng, self.planar)
        self.tree_planter = ParkTreePlanter(self.config.assets, self.rng, self.planar)
        self.statistics = StatisticsAggregator()

    def apply(self, result: GenerationResult, edits: LayoutOverrides, site_config: SiteConfig) -> GenerationResult:
        """
        Apply edits and return a new result

        Args:
            result: Output of the generator (left untouched)
            edits: Feature overrides and custom roads
            site_config: Parameters the layout was generated with

        Returns:
            Edited GenerationResult with recomputed statistics
        """
        geometry = result.geometry
        if not geometry.is_valid or geometry.site_boundary is None:
            logger.warning("Cannot edit an invalid layout; returning it unchanged")
            return result.model_copy(deep=True)

        site_geo = to_shape(geometry.site_boundary)
        center = site_geo.centroid
        projection = LocalProjection(center.x, center.y)
        site = projection.to_local(site_geo)

        def local(feature) -> Optional[BaseGeometry]:
            return projection.to_local(to_shape(feature)) if feature is not None else None

        def geographic(geom: BaseGeometry) -> BaseGeometry:
            return projection.to_geographic(geom)

        parsed = self._parse(edits, local)

        orig_lots = [local(f) for f in geometry.lots]
        orig_blocks = [local(f) for f in geometry.superblocks]
        orig_parks = [local(f) for f in geometry.parks]

        lots = [parsed.lots[i] if i in parsed.lots else g for i, g in enumerate(orig_lots)]
        blocks = [parsed.blocks[i] if i in parsed.blocks else g for i, g in enumerate(orig_blocks)]
        parks = [parsed.parks[i] if i in parsed.parks else g for i, g in enumerate(orig_parks)]
        edited_lots: Set[int] = {i for i in parsed.lots if i < len(orig_lots)}

        # ============================================================
        # Blocks follow their edited lots
        # ============================================================
        for i in sorted(edited_lots):
            self._reshape_block(orig_lots[i], lots[i], orig_blocks, blocks)

        # ============================================================
        # Custom roads
        # ============================================================
        roads = [local(f) for f in geometry.roads]
        segments = [
            (projection.point_to_local(r.p1.lng, r.p1.lat), projection.point_to_local(r.p2.lng, r.p2.lat))
            for r in edits.custom_roads
        ]
        custom = self.roads.build(segments, site_config.road_width, site)
        roads.extend(custom)
        if custom:
            lots = self.roads.cut(lots, custom)
            blocks = self.roads.cut(blocks, custom)
            parks = self.roads.cut(parks, custom)
            logger.info(f"Cut {len(custom)} custom roads through the layout")

        # ============================================================
        # Lots, buildings and lot trees
        # ============================================================
        orig_buildings = {b.properties.lot_id: b for b in geometry.buildings}
        orig_lot_trees = {t.properties.lot_id: t for t in geometry.trees if t.properties.lot_id is not None}

        lot_features: List[Optional[LotFeature]] = []
        buildings: List[BuildingFeature] = []
        trees: List[TreeFeature] = []
        for i, lot in enumerate(lots):
            original = geometry.lots[i]
            if lot is None:
                lot_features.append(None)
                continue

            if original is not None and lot is orig_lots[i]:
                lot_features.append(original)
            else:
                props = original.properties if original is not None else LotProps(
                    lot_id=i, is_bottom_row=False, alignment_angle=0.0
                )
                lot_features.append(LotFeature(geometry=area_geometry(geographic(lot)), properties=props))

            if i in parsed.buildings:
                previous = orig_buildings.get(i)
                buildings.append(BuildingFeature(
                    geometry=parsed.buildings[i].geometry,
                    properties=previous.properties if previous else BuildingProps(
                        lot_id=i, height_factor=1.0, color_variant=0, stories=site_config.stories
                    ),
                ))
                if i in orig_lot_trees:
                    trees.append(orig_lot_trees[i])
                continue

            modified = i in edited_lots or any(lot.intersects(road) for road in custom)
            if modified:
                is_bottom = original.properties.is_bottom_row if original is not None else None
                angle = original.properties.alignment_angle if original is not None else 0.0
                assets = self.lot_assets.regenerate(lot, is_bottom, angle)
                if assets.building is not None and not assets.building.is_empty:
                    buildings.append(BuildingFeature(
                        geometry=area_geometry(geographic(assets.building)),
                        properties=BuildingProps(
                            lot_id=i,
                            height_factor=assets.height_factor,
                            color_variant=assets.color_variant,
                            stories=site_config.stories,
                        ),
                    ))
                if assets.tree is not None:
                    trees.append(TreeFeature(
                        geometry=point_geometry(geographic(assets.tree)),
                        properties=TreeProps(kind="lot-tree", lot_id=i),
                    ))
            else:
                if i in orig_buildings:
                    buildings.append(orig_buildings[i])
                if i in orig_lot_trees:
                    trees.append(orig_lot_trees[i])

        # ============================================================
        # Parks and park trees
        # ============================================================
        park_features: List[Optional[ParkFeature]] = []
        rules = self.config.assets
        for i, park in enumerate(parks):
            if park is None:
                park_features.append(None)
                continue

            original = orig_parks[i]
            unchanged = (
                original is not None
                and i not in parsed.parks
                and abs(area_of(original) - area_of(park)) < rules.park_area_change_tolerance_sqm
            )
            if unchanged and park is original:
                park_features.append(geometry.parks[i])
            else:
                park_features.append(ParkFeature(
                    geometry=area_geometry(geographic(park)),
                    properties=ParkProps(park_id=i),
                ))

            if unchanged:
                trees.extend(t for t in geometry.trees if t.properties.park_id == i)
            else:
                planted = self.tree_planter.plant(
                    park,
                    max_count=rules.edited_park_tree_max_count,
                    attempt_factor=rules.edited_park_tree_attempt_factor,
                )
                trees.extend(
                    TreeFeature(geometry=point_geometry(geographic(t)), properties=TreeProps(kind="park-tree", park_id=i))
                    for t in planted
                )

        block_features = [
            geometry.superblocks[i] if block is orig_blocks[i] else (
                AreaFeature(geometry=area_geometry(geographic(block))) if block is not None else None
            )
            for i, block in enumerate(blocks)
        ]
        road_features = list(geometry.roads) + [AreaFeature(geometry=area_geometry(geographic(r))) for r in custom]

        edited = geometry.model_copy(update={
            "lots": lot_features,
            "superblocks": block_features,
            "parks": park_features,
            "roads": road_features,
            "buildings": buildings,
            "trees": trees,
        })
        stats = self.statistics.aggregate(
            site_area=result.stats.site_area,
            lots=lots,
            parks=parks,
            possible_entrances=result.stats.possible_entrances,
        )
        logger.info(
            f"Applied {len(edits.overrides)} overrides and {len(custom)} custom roads: "
            f"{stats.total_lots} lots, efficiency {stats.efficiency:.1%}"
        )
        return GenerationResult(geometry=edited, stats=stats)

    def _parse(self, edits: LayoutOverrides, local) -> ParsedOverrides:
        parsed = ParsedOverrides()
        for key, feature in edits.overrides.items():
            target = parse_override_key(key)
            if target is None:
                logger.warning(f"Ignoring unknown override key '{key}'")
                continue

            kind, index = target
            if kind == "bldg":
                if feature is not None:
                    parsed.buildings[index] = feature
                continue

            geom = local(feature)
            if geom is not None and not geom.is_valid:
                geom = self.planar.buffer(geom, 0).unwrap_or(geom)
            getattr(parsed, {"lot": "lots", "block": "blocks", "park": "parks"}[kind])[index] = geom
        return parsed

    def _reshape_block(
        self,
        original_lot: Optional[BaseGeometry],
        new_lot: Optional[BaseGeometry],
        orig_blocks: List[Optional[BaseGeometry]],
        blocks: List[Optional[BaseGeometry]]
    ) -> None:
        """Grow the lot's block to the new lot and give back the area it vacated"""
        if original_lot is None:
            return

        block_idx = next(
            (i for i, b in enumerate(orig_blocks) if b is not None and b.intersects(original_lot)),
            None
        )
        if block_idx is None or blocks[block_idx] is None:
            return

        current = blocks[block_idx]
        if new_lot is not None:
            current = self.planar.union([current, new_lot]).unwrap_or(current)
            vacated = self.planar.difference(original_lot, new_lot)
            if vacated.ok:
                current = self.planar.difference(current, vacated.value).unwrap_or(current)
        else:
            current = self.planar.difference(current, original_lot).unwrap_or(current)
        blocks[block_idx] = current


def apply_overrides(
    result: GenerationResult,
    edits: LayoutOverrides,
    site_config: SiteConfig,
    rng: Optional[random.Random] = None
) -> GenerationResult:
    """Apply layout edits with a fresh LayoutEditor"""
    return LayoutEditor(rng=rng).apply(result, edits, site_config)
