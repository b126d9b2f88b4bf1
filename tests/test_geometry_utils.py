"""
Tests for geometry utilities, the local projection and the working frame
"""

import math

import pytest
from shapely.geometry import Point, box

from siteplan.analysis.geometry_utils import GeometryUtils
from siteplan.analysis.local_frame import LocalFrame
from siteplan.analysis.projection import LocalProjection


def test_geo_to_cartesian_origin_and_scale():
    assert GeometryUtils.geo_to_cartesian(-99.13, 19.43, -99.13, 19.43) == (0.0, 0.0)

    x, y = GeometryUtils.geo_to_cartesian(-99.13, 20.43, -99.13, 19.43)
    assert x == pytest.approx(0.0)
    assert y == pytest.approx(6371000 * math.pi / 180)

    x, _ = GeometryUtils.geo_to_cartesian(-98.13, 19.43, -99.13, 19.43)
    assert x == pytest.approx(6371000 * math.pi / 180 * math.cos(math.radians(19.43)))


def test_degrees_round_trip():
    local = [(0.0, 0.0), (120.0, -45.5), (-300.0, 80.0)]
    degrees = GeometryUtils.local_to_degrees(local, 2.35, 48.85)
    back = GeometryUtils.degrees_to_local(degrees, 2.35, 48.85)
    for (x1, y1), (x2, y2) in zip(local, back):
        assert x1 == pytest.approx(x2, abs=1e-6)
        assert y1 == pytest.approx(y2, abs=1e-6)


@pytest.mark.parametrize("dx, dy, expected", [
    (0, 1, 0),
    (1, 0, 90),
    (0, -1, 180),
    (-1, 0, 270),
    (1, 1, 45),
])
def test_bearing(dx, dy, expected):
    assert GeometryUtils.bearing(dx, dy) == pytest.approx(expected)


def test_destination_follows_bearing():
    x, y = GeometryUtils.destination((10.0, 10.0), 5.0, 90)
    assert (x, y) == pytest.approx((15.0, 10.0))
    x, y = GeometryUtils.destination((10.0, 10.0), 5.0, 180)
    assert (x, y) == pytest.approx((10.0, 5.0))


def test_principal_axis_picks_longest_edge():
    coords = [(0, 0), (50, 0), (50, 200), (0, 200), (0, 0)]
    assert GeometryUtils.principal_axis(coords) == pytest.approx(90)

    tilted = [(0, 0), (math.cos(math.radians(30)) * 100, math.sin(math.radians(30)) * 100), (0, 20), (0, 0)]
    assert GeometryUtils.principal_axis(tilted) == pytest.approx(30)

    assert GeometryUtils.principal_axis([(0, 0)]) == 0.0


def test_clean_ring_drops_duplicates_and_collinear_points():
    ring = [(0, 0), (0, 0), (50, 0), (100, 0), (100, 100), (0, 100), (0, 0)]
    cleaned = GeometryUtils.clean_ring(ring)
    assert cleaned == [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)]


def test_clean_ring_collapses_a_line():
    assert len(GeometryUtils.clean_ring([(0, 0), (10, 0), (20, 0)])) < 3


def test_projection_round_trip():
    projection = LocalProjection(-99.13, 19.43)
    x, y = projection.point_to_local(-99.13, 19.43)
    assert (x, y) == pytest.approx((0.0, 0.0), abs=1e-6)

    square = box(-50, -50, 50, 50)
    geo = projection.to_geographic(square)
    back = projection.to_local(geo)
    assert back.area == pytest.approx(square.area, rel=1e-9)
    assert back.symmetric_difference(square).area < 1e-6


def test_local_frame_round_trip_and_bearing():
    frame = LocalFrame(pivot=(10.0, 20.0), angle=30.0)
    pt = Point(50, -5)
    back = frame.to_global(frame.to_local(pt))
    assert back.x == pytest.approx(pt.x)
    assert back.y == pytest.approx(pt.y)

    # +X in the working frame points 30 degrees north of east globally
    assert frame.global_bearing(1, 0) == pytest.approx(60)
    assert frame.global_bearing(0, 1) == pytest.approx(330)
