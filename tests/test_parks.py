"""
Tests for park classification and merging
"""

import pytest
from shapely.geometry import Point, box

from siteplan.generators.grid import CellType, GridCell
from siteplan.generators.parks import ParkClassifier, ParkMerger


def make_cell(col, row, bbox, polygon=None):
    return GridCell(col=col, row=row, bbox=bbox, polygon=polygon if polygon is not None else box(*bbox))


@pytest.fixture
def cells():
    # 64 x 36 blocks with 12 m roads; the first cell is clipped to a quarter
    return [
        make_cell(0, 0, (0, 0, 64, 36), box(0, 0, 32, 18)),
        make_cell(1, 0, (76, 0, 140, 36)),
        make_cell(2, 0, (152, 0, 216, 36)),
        make_cell(0, 1, (0, 48, 64, 84)),
    ]


def test_smallest_cells_become_parks_first(cells):
    parks, residential = ParkClassifier().classify(cells, [], 10)
    # 576 m² is below 10% of 7488 m², so the next smallest cell is taken too
    assert [(c.col, c.row) for c in parks] == [(0, 0), (1, 0)]
    assert len(residential) == 2
    assert all(c.cell_type == CellType.RESIDENTIAL for c in residential)


def test_zero_percentage_gives_no_parks(cells):
    parks, residential = ParkClassifier().classify(cells, [], 0)
    assert parks == []
    assert len(residential) == 4


def test_full_percentage_makes_everything_park(cells):
    parks, residential = ParkClassifier().classify(cells, [], 100)
    assert len(parks) == 4
    assert residential == []


def test_anchor_forces_a_park(cells):
    parks, _ = ParkClassifier().classify(cells, [Point(30, 60)], 0)
    assert [(c.col, c.row) for c in parks] == [(0, 1)]


def test_adjacent_park_cells_merge_across_the_road():
    site = box(-10, -10, 300, 100)
    left = make_cell(0, 0, (0, 0, 64, 36))
    right = make_cell(1, 0, (76, 0, 140, 36))

    parks = ParkMerger().merge([left, right], site)

    assert len(parks) == 1
    assert parks[0].area == pytest.approx(64 * 36 * 2 + 12 * 36)
    assert parks[0].exterior.is_ccw


def test_vertical_neighbours_merge():
    site = box(-10, -10, 300, 100)
    bottom = make_cell(0, 0, (0, 0, 64, 36))
    top = make_cell(0, 1, (0, 48, 64, 84))

    parks = ParkMerger().merge([bottom, top], site)
    assert len(parks) == 1
    assert parks[0].area == pytest.approx(64 * 36 * 2 + 64 * 12)


def test_gap_fillers_stay_on_the_site():
    site = box(0, 0, 140, 20)
    left = make_cell(0, 0, (0, 0, 64, 36), box(0, 0, 64, 20))
    right = make_cell(1, 0, (76, 0, 140, 36), box(76, 0, 140, 20))

    parks = ParkMerger().merge([left, right], site)
    assert len(parks) == 1
    assert parks[0].area == pytest.approx(140 * 20)
    assert site.covers(parks[0])


def test_distant_park_cells_stay_apart():
    site = box(-10, -10, 300, 100)
    cells = [make_cell(0, 0, (0, 0, 64, 36)), make_cell(2, 0, (152, 0, 216, 36))]
    assert len(ParkMerger().merge(cells, site)) == 2
    assert ParkMerger().merge([], site) == []
