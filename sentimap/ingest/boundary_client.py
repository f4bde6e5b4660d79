"""
Country boundary client for the map backdrop.

Fetches the national boundary GeoJSON (DataV area service by default)
and turns it into a projected :class:`~sentimap.geo.boundary.Backdrop`.
Any failure, network or parse, degrades to the embedded outline with a
warning; the caller always gets a usable backdrop.

Usage
-----
    from sentimap.ingest.boundary_client import load_backdrop
    backdrop = load_backdrop()            # remote, or fallback on failure
    print(backdrop.source, len(backdrop.polylines))
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import DEFAULT_BOUNDARY_URL
from ..geo.boundary import Backdrop, default_backdrop, parse_boundary_geojson
from . import fetch_json

log = logging.getLogger(__name__)


def fetch_boundary_geojson(url: str = DEFAULT_BOUNDARY_URL, timeout: float = 15.0) -> Dict[str, Any]:
    """Download and decode the boundary GeoJSON.  Raises on failure."""
    return fetch_json(url, timeout=timeout, retries=1)


def load_backdrop(url: str = DEFAULT_BOUNDARY_URL, timeout: float = 15.0) -> Backdrop:
    """Fetch + parse the boundary, falling back to the embedded outline."""
    try:
        data = fetch_boundary_geojson(url, timeout=timeout)
        return parse_boundary_geojson(data)
    except Exception as exc:
        log.warning("Boundary backdrop unavailable (%s), using embedded outline", exc)
        return default_backdrop()
