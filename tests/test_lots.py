"""
Tests for lot subdivision, sliver repair and lot ids
"""

import pytest
from shapely.geometry import box

from siteplan.generators.grid import GridCell
from siteplan.generators.lots import LotIdSequence, LotSubdivider


@pytest.fixture
def subdivider(site_config):
    return LotSubdivider(site_config)


def strips(*widths, depth=18):
    """Adjacent boxes of the given widths, left to right"""
    boxes = []
    x = 0.0
    for w in widths:
        boxes.append(box(x, 0, x + w, depth))
        x += w
    return boxes


def test_sequence_advances_without_mutation():
    seq = LotIdSequence()
    first, nxt = seq.advance()
    second, after = nxt.advance()
    assert (first, second) == (0, 1)
    assert seq.next_id == 0
    assert after.next_id == 2


def test_slice_zone_into_lot_width_strips(subdivider):
    pieces = subdivider.slice_zone(box(0, 0, 64, 18))
    assert len(pieces) == 8
    assert all(p.area == pytest.approx(144) for p in pieces)

    # Narrow bands still give one strip
    assert len(subdivider.slice_zone(box(0, 0, 5, 18))) == 1


def test_sliver_merges_into_its_only_neighbour(subdivider):
    lots = subdivider.repair(strips(2, 8, 8))
    assert [round(l.area) for l in lots] == [180, 144]


def test_tie_prefers_the_left_neighbour(subdivider):
    lots = subdivider.repair(strips(8, 2, 8))
    assert [round(l.area) for l in lots] == [180, 144]
    assert lots[0].bounds == pytest.approx((0, 0, 10, 18))


def test_smaller_neighbour_wins(subdivider):
    lots = subdivider.repair(strips(9, 2, 8))
    assert [round(l.area) for l in lots] == [162, 180]


def test_isolated_sliver_below_discard_ratio_is_removed(subdivider):
    # 36 m² is below 40% of the 144 m² nominal lot
    assert subdivider.repair(strips(2)) == []


def test_isolated_small_lot_is_kept_as_corner_lot(subdivider):
    lots = subdivider.repair(strips(4))
    assert len(lots) == 1
    assert lots[0].area == pytest.approx(72)


def test_viable_lots_are_untouched(subdivider):
    candidates = strips(8, 8, 8)
    assert subdivider.repair(candidates) == candidates


def test_subdivide_full_cell(subdivider):
    cell = GridCell(col=0, row=0, bbox=(0, 0, 64, 36), polygon=box(0, 0, 64, 36))
    result, sequence = subdivider.subdivide(cell, box(-20, -20, 100, 100), LotIdSequence(5))

    assert len(result.lots) == 16
    assert [lot.lot_id for lot in result.lots] == list(range(5, 21))
    assert sequence.next_id == 21
    assert [lot.is_bottom_row for lot in result.lots] == [True] * 8 + [False] * 8
    assert all(lot.polygon.area == pytest.approx(144) for lot in result.lots)
    assert result.block.area == pytest.approx(64 * 36)

    for lot in result.lots:
        if lot.assets.building is not None:
            assert lot.polygon.buffer(1e-9).covers(lot.assets.building)


def test_clipped_cell_is_split_at_its_midline(subdivider):
    # The parcel edge cuts the top of the cell
    site = box(0, -6, 64, 30)
    cell = GridCell(col=0, row=0, bbox=(0, 0, 64, 36), polygon=box(0, 0, 64, 30))
    result, _ = subdivider.subdivide(cell, site, LotIdSequence())

    assert result.block.area == pytest.approx(64 * 30)
    bottom = [lot for lot in result.lots if lot.is_bottom_row]
    top = [lot for lot in result.lots if not lot.is_bottom_row]
    assert len(bottom) == 8
    # 12 m top band: 96 m² strips pair up into 192 m² lots
    assert len(top) == 4
    assert all(lot.polygon.area == pytest.approx(192) for lot in top)


def test_tiny_band_gets_no_lots(subdivider):
    cell = GridCell(col=0, row=0, bbox=(0, 0, 64, 36), polygon=box(0, 0, 8, 4))
    result, sequence = subdivider.subdivide(cell, box(-20, -20, 100, 100), LotIdSequence())
    assert result.lots == []
    assert sequence.next_id == 0


def test_neighbouring_strips_share_an_edge(subdivider):
    # A width that does not divide evenly into lot widths
    pieces = subdivider.slice_zone(box(-100.123456789, 0, 0.987654321, 18))
    assert len(pieces) == 12
    for left, right in zip(pieces, pieces[1:]):
        assert left.bounds[2] == right.bounds[0]


def test_merged_slivers_stay_single_polygons(subdivider):
    # Every 9 m deep strip is a sliver, so repair merges repeatedly
    pieces = subdivider.slice_zone(box(-100.123456789, 0, 0.987654321, 9))
    lots = subdivider.repair(pieces)
    assert lots
    assert all(lot.geom_type == "Polygon" and lot.is_valid for lot in lots)
    assert sum(lot.area for lot in lots) == pytest.approx(sum(p.area for p in pieces))


def test_hairline_gap_is_snapped_on_merge(subdivider):
    lots = subdivider.repair([box(0, 0, 2, 18), box(2 + 1e-13, 0, 10, 18)])
    assert len(lots) == 1
    assert lots[0].geom_type == "Polygon"
    assert lots[0].area == pytest.approx(180)


def test_sliver_apart_from_its_neighbour_is_kept(subdivider):
    lots = subdivider.repair([box(0, 0, 2, 18), box(5, 0, 13, 18)])
    assert [round(l.area) for l in lots] == [36, 144]
