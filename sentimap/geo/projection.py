"""
Projection between WGS84 lon/lat and map scene coordinates.

The scene is laid out in Web Mercator (EPSG:3857) kilometres with Y
flipped so north is up in Qt's Y-down scene space.  Pixel distances only
exist once a view scale is known: ``view_scale`` is pixels per scene unit,
i.e. ``QGraphicsView.transform().m11()``.

Usage
-----
    x, y = project(116.4074, 39.9042)
    lng, lat = unproject(x, y)
    scale = zoom_to_view_scale(4)      # slippy-map zoom 4 in px / km
"""
from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
import pyproj

WGS84 = pyproj.CRS("EPSG:4326")
WEB_MERCATOR = pyproj.CRS("EPSG:3857")

_to_merc = pyproj.Transformer.from_crs(WGS84, WEB_MERCATOR, always_xy=True)
_to_lonlat = pyproj.Transformer.from_crs(WEB_MERCATOR, WGS84, always_xy=True)

SCENE_SCALE = 1.0 / 1000.0          # scene units per projected metre
MAX_MERCATOR_LAT = 85.05112878      # poles are not representable

_EARTH_CIRCUMFERENCE_M = 2 * math.pi * 6378137.0
_TILE_PX = 256


def _clamp_lat(lat):
    return np.clip(lat, -MAX_MERCATOR_LAT, MAX_MERCATOR_LAT)


def project(lng: float, lat: float) -> Tuple[float, float]:
    """Project one (lng, lat) to scene (x, y)."""
    mx, my = _to_merc.transform(lng, float(_clamp_lat(lat)))
    return mx * SCENE_SCALE, -my * SCENE_SCALE


def unproject(x: float, y: float) -> Tuple[float, float]:
    """Inverse of :func:`project`; returns (lng, lat)."""
    lng, lat = _to_lonlat.transform(x / SCENE_SCALE, -y / SCENE_SCALE)
    return lng, lat


def project_many(lngs: Sequence[float], lats: Sequence[float]) -> np.ndarray:
    """Vectorised projection.  Returns an (N, 2) array of scene coordinates."""
    lngs = np.asarray(lngs, dtype=float)
    lats = _clamp_lat(np.asarray(lats, dtype=float))
    if lngs.size == 0:
        return np.empty((0, 2), dtype=float)
    mx, my = _to_merc.transform(lngs, lats)
    return np.column_stack((np.asarray(mx) * SCENE_SCALE,
                            -np.asarray(my) * SCENE_SCALE))


def zoom_to_view_scale(zoom: float) -> float:
    """Pixels per scene unit at a slippy-map zoom level."""
    px_per_m = _TILE_PX * (2.0 ** zoom) / _EARTH_CIRCUMFERENCE_M
    return px_per_m / SCENE_SCALE


def view_scale_to_zoom(view_scale: float) -> float:
    if view_scale <= 0:
        return 0.0
    px_per_m = view_scale * SCENE_SCALE
    return math.log2(px_per_m * _EARTH_CIRCUMFERENCE_M / _TILE_PX)
