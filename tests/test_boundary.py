"""
Tests for boundary normalization and alignment
"""

import copy
import math

import pytest

from siteplan.generators.boundary import BoundaryError, BoundaryErrorKind, BoundaryNormalizer
from siteplan.models import LatLng


@pytest.fixture
def normalizer():
    return BoundaryNormalizer()


def test_rectangle_is_normalized(normalizer, rectangle_points):
    boundary = normalizer.normalize(rectangle_points)

    assert boundary.site_area == pytest.approx(30000, rel=1e-3)
    assert boundary.local.exterior.is_ccw
    assert len(boundary.local.exterior.coords) == 5
    assert boundary.working.area == pytest.approx(boundary.site_area)

    minx, miny, maxx, maxy = boundary.working.bounds
    assert maxx - minx == pytest.approx(200, abs=0.1)
    assert maxy - miny == pytest.approx(150, abs=0.1)


def test_clockwise_and_closed_rings_are_equivalent(normalizer, rectangle_points):
    reference = normalizer.normalize(rectangle_points)

    clockwise = normalizer.normalize(list(reversed(rectangle_points)))
    assert clockwise.local.exterior.is_ccw
    assert clockwise.site_area == pytest.approx(reference.site_area)

    closed = normalizer.normalize(rectangle_points + [rectangle_points[0]])
    assert closed.site_area == pytest.approx(reference.site_area)
    assert len(closed.local.exterior.coords) == len(reference.local.exterior.coords)


def test_models_and_mappings_are_accepted(normalizer, rectangle_points):
    models = [LatLng(**p) for p in rectangle_points]
    assert normalizer.normalize(models).site_area == pytest.approx(normalizer.normalize(rectangle_points).site_area)


def test_input_is_not_mutated(normalizer, rectangle_points):
    before = copy.deepcopy(rectangle_points)
    normalizer.normalize(rectangle_points)
    assert rectangle_points == before


def test_rotated_parcel_is_aligned_to_its_longest_edge(normalizer, to_lat_lngs):
    angle = math.radians(30)
    corners = [(-100, -50), (100, -50), (100, 50), (-100, 50)]
    rotated = [
        (x * math.cos(angle) - y * math.sin(angle), x * math.sin(angle) + y * math.cos(angle))
        for x, y in corners
    ]
    boundary = normalizer.normalize(to_lat_lngs(rotated))

    assert boundary.alignment_angle % 180 == pytest.approx(30, abs=0.1)
    minx, miny, maxx, maxy = boundary.working.bounds
    assert maxx - minx == pytest.approx(200, abs=0.1)
    assert maxy - miny == pytest.approx(100, abs=0.1)


def test_too_few_points(normalizer, to_lat_lngs):
    with pytest.raises(BoundaryError) as exc:
        normalizer.normalize(to_lat_lngs([(0, 0), (100, 0)]))
    assert exc.value.kind == BoundaryErrorKind.TOO_FEW_POINTS


def test_duplicates_collapse_to_invalid_geometry(normalizer, to_lat_lngs):
    with pytest.raises(BoundaryError) as exc:
        normalizer.normalize(to_lat_lngs([(0, 0), (0, 0), (100, 0)]))
    assert exc.value.kind == BoundaryErrorKind.TOO_FEW_POINTS
    assert exc.value.message == "Invalid Geometry"


def test_self_intersection_keeps_the_site(normalizer, to_lat_lngs):
    with pytest.raises(BoundaryError) as exc:
        normalizer.normalize(to_lat_lngs([(0, 0), (100, 100), (100, 0), (0, 100)]))
    assert exc.value.kind == BoundaryErrorKind.SELF_INTERSECTING
    assert exc.value.message == "Polygon self-intersects"
    assert exc.value.site_boundary is not None


def test_small_parcel_is_rejected(normalizer, to_lat_lngs):
    with pytest.raises(BoundaryError) as exc:
        normalizer.normalize(to_lat_lngs([(0, 0), (10, 0), (0, 10)]))
    assert exc.value.kind == BoundaryErrorKind.TOO_SMALL
    assert exc.value.message == "Area too small"


def test_anchor_to_working_frame(normalizer, rectangle_points, to_lat_lngs):
    boundary = normalizer.normalize(rectangle_points)
    anchor = to_lat_lngs([(0, 20)])[0]
    pt = normalizer.to_working(boundary, LatLng(**anchor))
    assert boundary.working.covers(pt)
    assert abs(pt.y) == pytest.approx(20, abs=0.1)
