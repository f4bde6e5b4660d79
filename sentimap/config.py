"""
Map widget configuration.

Defaults match the sentiment dashboard map: centred on China at country
zoom, 400 px tall, clustering on with a 50 px radius.  A few values can be
overridden from the environment so kiosk / offline deployments need no
code changes:

    SENTIMAP_BOUNDARY_URL   boundary GeoJSON URL for the backdrop
    SENTIMAP_OFFLINE        "1" disables the backdrop fetch entirely
    SENTIMAP_CLICK_EPSILON  per-axis click tolerance in degrees
    SENTIMAP_DEBOUNCE_MS    layer rebuild debounce (0 = synchronous)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_BOUNDARY_URL = "https://geo.datav.aliyun.com/areas_v3/bound/100000_full.json"


@dataclass(frozen=True)
class MapConfig:
    """Static settings for one map widget instance."""

    center_lnglat: Tuple[float, float] = (104.0, 35.5)
    zoom: int = 4
    height: int = 400

    enable_cluster: bool = True
    cluster_radius: float = 50.0
    min_cluster_size: int = 2

    click_epsilon: float = 1e-4
    debounce_ms: int = 300

    load_backdrop: bool = True
    boundary_url: str = DEFAULT_BOUNDARY_URL
    fetch_timeout_s: float = 15.0

    init_retry_limit: int = 20

    @classmethod
    def from_env(cls, base: Optional["MapConfig"] = None) -> "MapConfig":
        """Return *base* (or the defaults) with environment overrides applied."""
        cfg = base or cls()
        overrides = {}

        url = os.environ.get("SENTIMAP_BOUNDARY_URL")
        if url:
            overrides["boundary_url"] = url

        if os.environ.get("SENTIMAP_OFFLINE", "").strip().lower() in ("1", "true", "yes"):
            overrides["load_backdrop"] = False

        eps = _env_float("SENTIMAP_CLICK_EPSILON")
        if eps is not None and eps > 0:
            overrides["click_epsilon"] = eps

        debounce = _env_float("SENTIMAP_DEBOUNCE_MS")
        if debounce is not None and debounce >= 0:
            overrides["debounce_ms"] = int(debounce)

        if overrides:
            log.info("MapConfig environment overrides: %s", ", ".join(sorted(overrides)))
            cfg = replace(cfg, **overrides)
        return cfg


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r (not a number)", name, raw)
        return None
