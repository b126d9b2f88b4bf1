"""
Shared fixtures for the Site Layout Generator tests

Sites are described in local meters around a reference point in Mexico
City and converted to {lat, lng} the way a map consumer would send them.
"""

import random
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from siteplan.analysis.projection import LocalProjection
from siteplan.models import SiteConfig

REF_LON = -99.13
REF_LAT = 19.43


def lat_lngs(local_coords, ref_lon=REF_LON, ref_lat=REF_LAT):
    """Local [x, y] meters -> [{"lat", "lng"}]"""
    projection = LocalProjection(ref_lon, ref_lat)
    points = []
    for x, y in local_coords:
        lon, lat = projection.point_to_geographic(x, y)
        points.append({"lat": lat, "lng": lon})
    return points


@pytest.fixture
def to_lat_lngs():
    return lat_lngs


@pytest.fixture
def rectangle_points():
    """200 m x 150 m rectangle centred on the reference point"""
    return lat_lngs([(-100, -75), (100, -75), (100, 75), (-100, 75)])


@pytest.fixture
def site_config():
    return SiteConfig(
        road_width=12,
        lot_width=8,
        lot_depth=18,
        park_percentage=15,
        stories=2,
        entry_index=0,
    )


@pytest.fixture
def rng():
    return random.Random(42)
