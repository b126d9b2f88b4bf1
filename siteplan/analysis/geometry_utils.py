"""
Geometry utilities for coordinate transformations and calculations
"""

import math
from typing import List, Sequence, Tuple

EARTH_RADIUS_M = 6371000


class GeometryUtils:
    """Utility functions for geometric operations"""

    @staticmethod
    def geo_to_cartesian(
        lon: float,
        lat: float,
        center_lon: float,
        center_lat: float
    ) -> Tuple[float, float]:
        """
        Convert a [lon, lat] coordinate to a flat [x, y] offset in meters

        Equirectangular approximation around the reference point. Only valid
        for small extents (a few kilometers); used to export layouts to
        planar drawings.
        """
        lat_rad = math.radians(center_lat)
        x = math.radians(lon - center_lon) * EARTH_RADIUS_M * math.cos(lat_rad)
        y = math.radians(lat - center_lat) * EARTH_RADIUS_M
        return (x, y)

    @staticmethod
    def degrees_to_local(
        coords: Sequence[Sequence[float]],
        ref_lon: float,
        ref_lat: float
    ) -> List[Tuple[float, float]]:
        """
        Convert [lon, lat] coordinates to local [x, y] meters from reference
        """
        return [
            GeometryUtils.geo_to_cartesian(lon, lat, ref_lon, ref_lat)
            for lon, lat in coords
        ]

    @staticmethod
    def local_to_degrees(
        local_coords: Sequence[Sequence[float]],
        ref_lon: float,
        ref_lat: float
    ) -> List[List[float]]:
        """
        Convert local [x, y] meters to [lon, lat] degrees
        """
        lat_rad = math.radians(ref_lat)
        deg_coords = []
        for x, y in local_coords:
            lon = ref_lon + math.degrees(x / (EARTH_RADIUS_M * math.cos(lat_rad)))
            lat = ref_lat + math.degrees(y / EARTH_RADIUS_M)
            deg_coords.append([lon, lat])

        return deg_coords

    @staticmethod
    def bearing(dx: float, dy: float) -> float:
        """Compass bearing of a planar direction: 0 = north, 90 = east, in [0, 360)"""
        angle = math.degrees(math.atan2(dx, dy))
        if angle < 0:
            angle += 360
        return angle

    @staticmethod
    def signed_bearing(origin: Tuple[float, float], target: Tuple[float, float]) -> float:
        """Bearing from origin to target in (-180, 180], clockwise from north"""
        return math.degrees(math.atan2(target[0] - origin[0], target[1] - origin[1]))

    @staticmethod
    def destination(
        point: Tuple[float, float],
        distance_m: float,
        bearing: float
    ) -> Tuple[float, float]:
        """Point reached by travelling distance_m meters along a compass bearing"""
        rad = math.radians(bearing)
        return (point[0] + distance_m * math.sin(rad), point[1] + distance_m * math.cos(rad))

    @staticmethod
    def principal_axis(coords: Sequence[Sequence[float]]) -> float:
        """
        Direction of the longest edge of a ring

        Returns the angle in degrees counter-clockwise from the +X axis, in
        (-180, 180]. 0 for degenerate input.
        """
        if len(coords) < 2:
            return 0.0

        max_len = 0.0
        best_angle = 0.0
        for i in range(len(coords) - 1):
            dx = coords[i + 1][0] - coords[i][0]
            dy = coords[i + 1][1] - coords[i][1]
            length = math.hypot(dx, dy)
            if length > max_len:
                max_len = length
                best_angle = math.degrees(math.atan2(dy, dx))

        return best_angle

    @staticmethod
    def clean_ring(
        coords: Sequence[Sequence[float]],
        tolerance: float = 1e-6
    ) -> List[Tuple[float, float]]:
        """
        Remove duplicate and collinear vertices from a ring

        Returns an open ring (no closing vertex). A vertex is collinear when
        the cross product of its two edges is within tolerance.
        """
        points = [(float(c[0]), float(c[1])) for c in coords]
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]

        # Duplicates
        deduped = []
        for p in points:
            if not deduped or p != deduped[-1]:
                deduped.append(p)
        if len(deduped) > 1 and deduped[0] == deduped[-1]:
            deduped.pop()

        # Collinear vertices; repeat until stable since removals expose new ones
        changed = True
        while changed and len(deduped) >= 3:
            changed = False
            n = len(deduped)
            for i in range(n):
                prev = deduped[i - 1]
                cur = deduped[i]
                nxt = deduped[(i + 1) % n]
                cross = (cur[0] - prev[0]) * (nxt[1] - cur[1]) - (cur[1] - prev[1]) * (nxt[0] - cur[0])
                if abs(cross) <= tolerance:
                    deduped.pop(i)
                    changed = True
                    break

        return deduped
