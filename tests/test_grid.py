"""
Tests for grid sizing and cell clipping
"""

import pytest
from shapely.geometry import Polygon, box

from siteplan.generators.grid import CellType, GridBuilder


@pytest.fixture
def site():
    return box(0, 0, 200, 150)


@pytest.fixture
def spec(site, site_config):
    return GridBuilder().build_spec(site, site_config)


def test_grid_is_sized_and_centred(spec):
    assert spec.block_width == 64
    assert spec.block_depth == 36
    assert spec.x_step == 76
    assert spec.y_step == 48
    assert spec.num_cols == 3
    assert spec.num_rows == 4
    assert spec.start_x == pytest.approx(-14)
    assert spec.start_y == pytest.approx(-21)
    assert spec.cell_bbox(1, 2) == pytest.approx((62, 75, 126, 111))


def test_road_centrelines_and_intersections(spec):
    assert len(spec.vertical_road_centers()) == spec.num_cols + 2 * spec.buffer_cells + 1
    assert len(spec.horizontal_road_centers()) == spec.num_rows + 2 * spec.buffer_cells + 1
    assert 56 in spec.vertical_road_centers()
    assert (56, 21) in spec.road_intersections()
    assert len(spec.road_intersections()) == len(spec.column_range()) * len(spec.row_range())


def test_cells_are_clipped_to_the_site(site, spec):
    cells = GridBuilder().build_cells(site, spec)

    assert len(cells) == 12
    assert sum(c.area for c in cells) == pytest.approx(20064)
    for cell in cells:
        assert site.covers(cell.polygon)
        assert cell.cell_type == CellType.UNKNOWN

    corner = next(c for c in cells if c.bbox[0] == pytest.approx(-14) and c.bbox[1] == pytest.approx(-21))
    assert corner.area == pytest.approx(50 * 15)
    # Indices count from the first buffer column/row
    assert (corner.col, corner.row) == (2, 2)


def test_small_cell_pieces_are_dropped(site_config):
    # A sliver of the parcel reaches into the next column
    site = Polygon([(0, 0), (64, 0), (64, 36), (0, 36)]).union(box(64, 0, 80, 2))
    builder = GridBuilder()
    spec = builder.build_spec(site, site_config)
    cells = builder.build_cells(site, spec)
    assert all(cell.area > 50 for cell in cells)
