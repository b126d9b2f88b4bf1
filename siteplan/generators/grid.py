"""
Block grid builder

Lays a regular grid of block cells over the aligned parcel. Blocks are
lots_per_block_row lots wide and two lots deep, separated by road-width
gaps, centred in the parcel bounding box with buffer columns/rows on every
side so concave and rotated corners are still covered.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from loguru import logger
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from ..analysis.planar import PlanarGeometry
from ..config import LayoutRules, get_config
from ..models import SiteConfig

BBox = Tuple[float, float, float, float]


class CellType(str, Enum):
    UNKNOWN = "unknown"
    PARK = "park"
    RESIDENTIAL = "residential"


@dataclass
class GridCell:
    """One block cell clipped to the parcel, in the working frame"""
    col: int
    row: int
    bbox: BBox  # Unclipped cell box (minx, miny, maxx, maxy)
    polygon: BaseGeometry  # cell ∩ parcel
    cell_type: CellType = CellType.UNKNOWN

    @property
    def area(self) -> float:
        return self.polygon.area


@dataclass
class GridSpec:
    """Grid sizing and placement in the working frame (meters)"""
    block_width: float
    block_depth: float
    road_width: float
    start_x: float
    start_y: float
    num_cols: int
    num_rows: int
    buffer_cells: int
    site_bounds: BBox

    @property
    def x_step(self) -> float:
        return self.block_width + self.road_width

    @property
    def y_step(self) -> float:
        return self.block_depth + self.road_width

    def cell_origin(self, i: int, j: int) -> Tuple[float, float]:
        return (self.start_x + i * self.x_step, self.start_y + j * self.y_step)

    def cell_bbox(self, i: int, j: int) -> BBox:
        x, y = self.cell_origin(i, j)
        return (x, y, x + self.block_width, y + self.block_depth)

    def column_range(self) -> range:
        return range(-self.buffer_cells, self.num_cols + self.buffer_cells)

    def row_range(self) -> range:
        return range(-self.buffer_cells, self.num_rows + self.buffer_cells)

    def road_intersections(self) -> List[Tuple[float, float]]:
        """Centre of the road crossing at the top-right corner of every cell"""
        points = []
        for i in self.column_range():
            for j in self.row_range():
                x, y = self.cell_origin(i, j)
                points.append((
                    x + self.block_width + self.road_width / 2,
                    y + self.block_depth + self.road_width / 2
                ))
        return points

    def vertical_road_centers(self) -> List[float]:
        """X of every vertical road centreline, one past the last column"""
        return [
            self.start_x + i * self.x_step + self.block_width + self.road_width / 2
            for i in range(-self.buffer_cells, self.num_cols + self.buffer_cells + 1)
        ]

    def horizontal_road_centers(self) -> List[float]:
        return [
            self.start_y + j * self.y_step + self.block_depth + self.road_width / 2
            for j in range(-self.buffer_cells, self.num_rows + self.buffer_cells + 1)
        ]


class GridBuilder:
    """Builds the block grid for an aligned parcel"""

    def __init__(self, rules: Optional[LayoutRules] = None, planar: Optional[PlanarGeometry] = None):
        self.rules = rules or get_config().layout
        self.planar = planar or PlanarGeometry()

    def build_spec(self, site: BaseGeometry, site_config: SiteConfig) -> GridSpec:
        """
        Size the grid and centre it in the parcel bounding box

        Args:
            site: Parcel polygon in the working frame
            site_config: Per-run parameters

        Returns:
            GridSpec
        """
        minx, miny, maxx, maxy = site.bounds
        block_width = site_config.lot_width * self.rules.lots_per_block_row
        block_depth = site_config.lot_depth * 2
        x_step = block_width + site_config.road_width
        y_step = block_depth + site_config.road_width

        width = maxx - minx
        height = maxy - miny
        num_cols = math.ceil(width / x_step)
        num_rows = math.ceil(height / y_step)

        return GridSpec(
            block_width=block_width,
            block_depth=block_depth,
            road_width=site_config.road_width,
            start_x=minx + (width - num_cols * x_step) / 2,
            start_y=miny + (height - num_rows * y_step) / 2,
            num_cols=num_cols,
            num_rows=num_rows,
            buffer_cells=self.rules.buffer_cells,
            site_bounds=(minx, miny, maxx, maxy),
        )

    def build_cells(self, site: BaseGeometry, spec: GridSpec) -> List[GridCell]:
        """
        Clip every grid cell to the parcel

        Cells whose clipped area is at or below min_cell_area_sqm are dropped.
        Indices are zero-based from the first buffer column/row.
        """
        cells = []
        for col, i in enumerate(spec.column_range()):
            for row, j in enumerate(spec.row_range()):
                bbox = spec.cell_bbox(i, j)
                cell_box = box(*bbox)
                if not cell_box.intersects(site):
                    continue

                result = self.planar.intersection(cell_box, site)
                if not result.ok:
                    logger.debug(f"Cell ({col}, {row}) skipped: {result.error}")
                    continue

                if result.value.area > self.rules.min_cell_area_sqm:
                    cells.append(GridCell(col=col, row=row, bbox=bbox, polygon=result.value))

        logger.debug(
            f"Grid {spec.num_cols}x{spec.num_rows} (+{spec.buffer_cells} buffer): {len(cells)} cells on the parcel"
        )
        return cells
