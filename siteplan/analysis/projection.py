"""
Local metric projection

All layout math runs in meters on a plane tangent to the site. The
projection is an azimuthal equidistant one centred on the site, which keeps
distances and areas accurate at parcel scale.
"""

from typing import Tuple

import shapely
from pyproj import Transformer
from shapely.geometry.base import BaseGeometry


class LocalProjection:
    """WGS84 lon/lat <-> local meters around a reference point"""

    def __init__(self, ref_lon: float, ref_lat: float):
        self.ref_lon = ref_lon
        self.ref_lat = ref_lat
        local_crs = (
            f"+proj=aeqd +lat_0={ref_lat} +lon_0={ref_lon} "
            "+x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
        )
        self._forward = Transformer.from_crs("EPSG:4326", local_crs, always_xy=True)
        self._inverse = Transformer.from_crs(local_crs, "EPSG:4326", always_xy=True)

    def to_local(self, geom: BaseGeometry) -> BaseGeometry:
        """Project a lon/lat geometry to local meters"""
        return shapely.transform(geom, self._forward.transform, interleaved=False)

    def to_geographic(self, geom: BaseGeometry) -> BaseGeometry:
        """Project a local meter geometry back to lon/lat"""
        return shapely.transform(geom, self._inverse.transform, interleaved=False)

    def point_to_local(self, lon: float, lat: float) -> Tuple[float, float]:
        x, y = self._forward.transform(lon, lat)
        return (x, y)

    def point_to_geographic(self, x: float, y: float) -> Tuple[float, float]:
        lon, lat = self._inverse.transform(x, y)
        return (lon, lat)
