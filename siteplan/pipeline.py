"""
Site Layout Generation Pipeline

Derives a complete subdivision plan from a parcel boundary:

  1. Normalize the boundary (clean, wind, validate)
  2. Align the parcel to its principal axis
  3. Fit the block grid
  4. Classify park/residential cells and merge parks
  5. Subdivide residential cells into lots (+ buildings, trees)
  6. Road markings, entrance detection, gate and perimeter walls
  7. Rotate back to the parcel orientation and project to lon/lat
  8. Aggregate statistics

Every run is independent. A rejected boundary or an unexpected failure
comes back as an invalid result rather than an exception.
"""

import json
import os
import random
import traceback
from typing import Any, List, Mapping, Optional, Sequence, Union

from loguru import logger
from shapely.geometry.base import BaseGeometry

from .analysis import PlanarGeometry, StatisticsAggregator
from .config import GeneratorConfig, get_config
from .generators.access import AccessPointFinder, GateBuilder
from .generators.assets import LotAssetGenerator, ParkTreePlanter
from .generators.boundary import BoundaryError, BoundaryNormalizer, NormalizedBoundary, PointInput
from .generators.grid import GridBuilder
from .generators.lots import Lot, LotIdSequence, LotSubdivider
from .generators.markings import RoadMarkingGenerator
from .generators.parks import ParkClassifier, ParkMerger
from .models import (
    AccessControl, AreaFeature, BuildingFeature, BuildingProps, ConstraintType,
    GeneratedGeometry, GenerationResult, LatLng, LineFeature, LotFeature,
    LotProps, ParkFeature, ParkProps, ProjectStats, SiteConfig, TreeFeature,
    TreeProps, UserConstraint, area_geometry, line_geometry, point_geometry
)

ConstraintInput = Union[UserConstraint, Mapping[str, Any]]


def invalid_result(error: Optional[str] = None, site_boundary: Optional[BaseGeometry] = None) -> GenerationResult:
    """Empty, invalid result; site_boundary is a lon/lat polygon when known"""
    geometry = GeneratedGeometry(is_valid=False, error=error)
    if site_boundary is not None:
        geometry.site_boundary = AreaFeature(geometry=area_geometry(site_boundary))
    return GenerationResult(geometry=geometry, stats=ProjectStats())


class SiteLayoutGenerator:
    """
    Generates a site layout from a parcel boundary

    Usage:
        generator = SiteLayoutGenerator()
        result = generator.generate(points, SiteConfig(...))
        generator.save(result, "output/layout.json")
    """

    def __init__(self, config: Optional[GeneratorConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or get_config()
        self.rng = rng or random.Random()
        self.planar = PlanarGeometry()

        self.normalizer = BoundaryNormalizer(self.config.layout)
        self.grid_builder = GridBuilder(self.config.layout, self.planar)
        self.classifier = ParkClassifier()
        self.park_merger = ParkMerger(self.config.layout, self.planar)
        self.lot_assets = LotAssetGenerator(self.config.assets, self.rng, self.planar)
        self.tree_planter = ParkTreePlanter(self.config.assets, self.rng, self.planar)
        self.marking_generator = RoadMarkingGenerator(self.config.markings)
        self.access_finder = AccessPointFinder(self.config.access)
        self.gate_builder = GateBuilder(self.config.access, self.planar)
        self.statistics = StatisticsAggregator()

    def generate(
        self,
        boundary_points: Sequence[PointInput],
        site_config: Union[SiteConfig, Mapping[str, Any]],
        constraints: Sequence[ConstraintInput] = ()
    ) -> GenerationResult:
        """
        Run the pipeline

        Args:
            boundary_points: Parcel vertices as LatLng or {lat, lng}
            site_config: Per-run parameters (SiteConfig or its JSON form)
            constraints: User constraints (PARK_ANCHOR points)

        Returns:
            GenerationResult; geometry.is_valid is False with an error
            message when the boundary is rejected or generation fails
        """
        if not boundary_points or len(boundary_points) < 3:
            logger.warning("Fewer than 3 boundary points; nothing to generate")
            return invalid_result()

        try:
            return self._generate(boundary_points, site_config, constraints)
        except BoundaryError as e:
            logger.warning(f"Boundary rejected: {e.message}")
            return invalid_result(e.message, e.site_boundary)
        except Exception as e:
            logger.error(f"Layout generation failed: {e}")
            logger.error(traceback.format_exc())
            return invalid_result("Calculation Failed")

    def save(self, result: GenerationResult, output_path: str) -> str:
        """Save a generation result to JSON (camelCase keys)"""
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.model_dump(by_alias=True), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved layout to {output_path}")
        return output_path

    def _generate(
        self,
        boundary_points: Sequence[PointInput],
        site_config: Union[SiteConfig, Mapping[str, Any]],
        constraints: Sequence[ConstraintInput]
    ) -> GenerationResult:
        if not isinstance(site_config, SiteConfig):
            site_config = SiteConfig.model_validate(site_config)
        constraints = [
            c if isinstance(c, UserConstraint) else UserConstraint.model_validate(c)
            for c in constraints
        ]

        # ============================================================
        # STAGE 1-2: Boundary and alignment
        # ============================================================
        boundary = self.normalizer.normalize(boundary_points)
        site = boundary.working
        anchors = [
            self.normalizer.to_working(boundary, c.position)
            for c in constraints if c.type == ConstraintType.PARK_ANCHOR
        ]
        logger.info(
            f"Site: {boundary.site_area:.0f} m², aligned to {boundary.alignment_angle:.1f}°, "
            f"{len(anchors)} park anchors"
        )

        # ============================================================
        # STAGE 3-4: Grid and park classification
        # ============================================================
        spec = self.grid_builder.build_spec(site, site_config)
        cells = self.grid_builder.build_cells(site, spec)
        park_cells, residential_cells = self.classifier.classify(cells, anchors, site_config.park_percentage)
        logger.info(f"Grid: {len(cells)} cells ({len(park_cells)} park, {len(residential_cells)} residential)")

        # ============================================================
        # STAGE 5: Lots; blocks that yield none become parks
        # ============================================================
        subdivider = LotSubdivider(site_config, self.config.layout, self.lot_assets, self.planar)
        sequence = LotIdSequence()
        superblocks: List[BaseGeometry] = []
        lots: List[Lot] = []
        parks: List[BaseGeometry] = []

        for cell in residential_cells:
            subdivision, sequence = subdivider.subdivide(cell, site, sequence)
            if subdivision.lots:
                lots.extend(subdivision.lots)
                superblocks.append(subdivision.block)
            elif subdivision.block.area > self.config.layout.min_park_area_sqm:
                parks.append(subdivision.block)
                superblocks.append(subdivision.block)

        for park in self.park_merger.merge(park_cells, site):
            parks.append(park)
            superblocks.append(park)

        park_trees = [self.tree_planter.plant(park) for park in parks]
        logger.info(f"Lots: {len(lots)}, parks: {len(parks)}, park trees: {sum(len(t) for t in park_trees)}")

        # ============================================================
        # STAGE 6: Markings, access and walls
        # ============================================================
        markings = self.marking_generator.generate(spec, site, parks)

        candidates = []
        if superblocks:
            # superblocks already include every park
            candidates = self.access_finder.find(boundary, spec, superblocks)
        selected = self.access_finder.select(candidates, site_config.entry_index)
        gate = self.gate_builder.build(selected, site_config.road_width) if selected else None
        walls = self.gate_builder.perimeter_walls(boundary.local, gate, site_config.road_width)
        logger.info(f"Entrances: {len(candidates)} candidates, gate {'built' if gate else 'not built'}")

        # ============================================================
        # STAGE 7: Back to the parcel orientation and lon/lat
        # ============================================================
        def area_feature(geom: BaseGeometry, working: bool = True) -> AreaFeature:
            return AreaFeature(geometry=area_geometry(self._to_geographic(boundary, geom, working)))

        def line_feature(geom: BaseGeometry) -> LineFeature:
            return LineFeature(geometry=line_geometry(self._to_geographic(boundary, geom, working=False)))

        def lat_lng(point: BaseGeometry) -> LatLng:
            geo = self._to_geographic(boundary, point, working=False)
            return LatLng(lat=geo.y, lng=geo.x)

        lot_features = []
        building_features = []
        tree_features = []
        for lot in lots:
            lot_features.append(LotFeature(
                geometry=area_geometry(self._to_geographic(boundary, lot.polygon)),
                properties=LotProps(
                    lot_id=lot.lot_id,
                    is_bottom_row=lot.is_bottom_row,
                    alignment_angle=boundary.alignment_angle,
                ),
            ))
            if lot.assets.building is not None:
                building_features.append(BuildingFeature(
                    geometry=area_geometry(self._to_geographic(boundary, lot.assets.building)),
                    properties=BuildingProps(
                        lot_id=lot.lot_id,
                        height_factor=lot.assets.height_factor,
                        color_variant=lot.assets.color_variant,
                        stories=site_config.stories,
                    ),
                ))
            if lot.assets.tree is not None:
                tree_features.append(TreeFeature(
                    geometry=point_geometry(self._to_geographic(boundary, lot.assets.tree)),
                    properties=TreeProps(kind="lot-tree", lot_id=lot.lot_id),
                ))

        park_features = []
        for park_id, (park, trees) in enumerate(zip(parks, park_trees)):
            park_features.append(ParkFeature(
                geometry=area_geometry(self._to_geographic(boundary, park)),
                properties=ParkProps(park_id=park_id),
            ))
            for tree in trees:
                tree_features.append(TreeFeature(
                    geometry=point_geometry(self._to_geographic(boundary, tree)),
                    properties=TreeProps(kind="park-tree", park_id=park_id),
                ))

        access_control = None
        if gate is not None:
            access_control = AccessControl(
                island=area_feature(gate.island, working=False),
                guard_house=area_feature(gate.guard_house, working=False) if gate.guard_house is not None else None,
                barriers=[line_feature(b) for b in gate.barriers],
                entry_point=lat_lng(gate.entry_point),
                rotation=gate.rotation,
            )

        geometry = GeneratedGeometry(
            site_boundary=AreaFeature(geometry=area_geometry(boundary.geographic)),
            superblocks=[area_feature(b) for b in superblocks],
            roads=[],
            lots=lot_features,
            buildings=building_features,
            parks=park_features,
            trees=tree_features,
            perimeter_walls=[line_feature(w) for w in walls],
            access_control=access_control,
            road_markings=[area_feature(m) for m in markings],
            stop_signs=[],
            entrance_candidates=[lat_lng(c.point) for c in candidates],
            is_valid=True,
        )

        # ============================================================
        # STAGE 8: Statistics
        # ============================================================
        stats = self.statistics.aggregate(
            site_area=boundary.site_area,
            lots=[lot.polygon for lot in lots],
            parks=parks,
            possible_entrances=len(candidates),
        )
        logger.info(
            f"Layout complete: {stats.total_lots} lots, efficiency {stats.efficiency:.1%}, "
            f"park {stats.park_area:.0f} m²"
        )
        return GenerationResult(geometry=geometry, stats=stats)

    @staticmethod
    def _to_geographic(boundary: NormalizedBoundary, geom: BaseGeometry, working: bool = True) -> BaseGeometry:
        """Working-frame (or global metric) geometry to lon/lat"""
        if working:
            geom = boundary.frame.to_global(geom)
        return boundary.projection.to_geographic(geom)


def generate(
    boundary_points: Sequence[PointInput],
    config: Union[SiteConfig, Mapping[str, Any]],
    constraints: Sequence[ConstraintInput] = ()
) -> GenerationResult:
    """Generate a layout with a fresh SiteLayoutGenerator"""
    return SiteLayoutGenerator().generate(boundary_points, config, constraints)
