"""
Backdrop outlines for the event map.

The preferred backdrop is the country boundary GeoJSON fetched by
:mod:`sentimap.ingest.boundary_client`.  When that is unavailable the map
uses a coarse embedded outline so points always have some geographic
context.  Neither path ever blocks point rendering.

Usage
-----
    from sentimap.geo.boundary import parse_boundary_geojson, default_backdrop
    backdrop = parse_boundary_geojson(geojson_dict)
    for path in backdrop.polylines:      # (N, 2) scene coordinates
        ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Tuple

import numpy as np
from shapely.geometry import LineString, MultiLineString, Polygon, MultiPolygon, shape
from shapely.geometry.base import BaseGeometry

from .projection import project_many

log = logging.getLogger(__name__)

# Degrees; keeps ~100k-vertex national boundaries light enough for QPainterPath
_SIMPLIFY_TOLERANCE = 0.02


@dataclass
class Backdrop:
    """Projected outline polylines ready for the scene."""
    polylines: List[np.ndarray] = field(default_factory=list)
    source: str = "fallback"     # "remote" or "fallback"
    names: List[str] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return int(sum(len(p) for p in self.polylines))


# ═══════════════════════════════════════════════════════════════════════
# EMBEDDED FALLBACK OUTLINE (lon, lat), coarse national border
# ═══════════════════════════════════════════════════════════════════════

_FALLBACK_OUTLINE_LONLAT = [
    (73.6, 39.4), (74.9, 37.2), (78.0, 35.5), (79.5, 32.5),
    (78.8, 30.5), (81.2, 30.0), (85.0, 28.3), (88.8, 27.3),
    (92.0, 26.9), (97.3, 28.2), (98.7, 25.0), (97.7, 23.9),
    (99.5, 22.1), (101.7, 21.2), (105.3, 23.3), (106.7, 22.0),
    (108.0, 21.5), (110.4, 20.3), (111.9, 21.6), (114.2, 22.3),
    (117.2, 23.6), (119.6, 25.6), (121.0, 28.0), (122.0, 30.0),
    (121.3, 31.9), (120.3, 34.3), (119.2, 35.0), (120.7, 36.5),
    (122.5, 37.2), (121.0, 37.8), (118.9, 38.0), (117.7, 38.9),
    (119.5, 39.8), (121.2, 40.8), (122.3, 40.5), (124.4, 40.0),
    (126.0, 41.0), (128.1, 41.9), (130.6, 42.4), (131.3, 45.0),
    (133.1, 45.1), (134.7, 48.3), (132.5, 47.7), (130.9, 48.9),
    (127.5, 49.8), (125.7, 52.9), (123.4, 53.5), (120.8, 53.3),
    (119.8, 50.3), (117.4, 49.6), (115.5, 45.4), (111.9, 43.7),
    (110.4, 42.6), (105.0, 41.6), (100.8, 42.6), (96.4, 42.7),
    (95.3, 44.3), (90.9, 45.3), (90.3, 47.9), (87.8, 49.2),
    (85.5, 47.1), (82.7, 45.4), (80.0, 44.9), (80.2, 42.2),
    (77.0, 41.0), (73.6, 39.4),
]

_FALLBACK_ISLANDS_LONLAT = [
    [(108.6, 19.2), (109.6, 18.2), (110.5, 18.7), (111.0, 19.7),
     (110.1, 20.1), (108.6, 19.2)],
]


def default_backdrop() -> Backdrop:
    """The embedded outline, projected."""
    rings = [_FALLBACK_OUTLINE_LONLAT] + _FALLBACK_ISLANDS_LONLAT
    polylines = []
    for ring in rings:
        lngs, lats = zip(*ring)
        polylines.append(project_many(lngs, lats))
    return Backdrop(polylines=polylines, source="fallback")


# ═══════════════════════════════════════════════════════════════════════
# GEOJSON PARSING
# ═══════════════════════════════════════════════════════════════════════

def _geometry_lines(geom: BaseGeometry) -> Iterator[List[Tuple[float, float]]]:
    """Yield every boundary ring / line of *geom* as (lon, lat) lists."""
    if geom.is_empty:
        return
    if isinstance(geom, Polygon):
        yield list(geom.exterior.coords)
        for interior in geom.interiors:
            yield list(interior.coords)
    elif isinstance(geom, (MultiPolygon, MultiLineString)):
        for part in geom.geoms:
            yield from _geometry_lines(part)
    elif isinstance(geom, LineString):
        yield list(geom.coords)
    elif hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _geometry_lines(part)


def parse_boundary_geojson(data: Dict[str, Any], simplify: float = _SIMPLIFY_TOLERANCE) -> Backdrop:
    """Convert a GeoJSON FeatureCollection into a projected :class:`Backdrop`.

    Features that cannot be parsed are skipped.  Raises ``ValueError`` if
    nothing usable remains, so the caller can fall back.
    """
    if not isinstance(data, dict):
        raise ValueError("boundary payload is not a JSON object")
    if data.get("type") == "FeatureCollection":
        features = data.get("features") or []
    elif data.get("type") == "Feature":
        features = [data]
    else:
        features = [{"type": "Feature", "geometry": data, "properties": {}}]

    polylines: List[np.ndarray] = []
    names: List[str] = []
    skipped = 0
    for feat in features:
        try:
            geom = shape(feat["geometry"])
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            skipped += 1
            log.debug("Skipping boundary feature: %s", exc)
            continue
        if simplify > 0:
            geom = geom.simplify(simplify, preserve_topology=False)
        props = feat.get("properties") or {}
        if props.get("name"):
            names.append(str(props["name"]))
        for coords in _geometry_lines(geom):
            if len(coords) < 2:
                continue
            arr = np.asarray(coords, dtype=float)[:, :2]
            polylines.append(project_many(arr[:, 0], arr[:, 1]))

    if not polylines:
        raise ValueError(f"no usable boundary geometry ({skipped} features skipped)")

    backdrop = Backdrop(polylines=polylines, source="remote", names=names)
    log.info("Boundary backdrop: %d polylines, %d vertices, %d regions (%d skipped)",
             len(polylines), backdrop.vertex_count, len(names), skipped)
    return backdrop
