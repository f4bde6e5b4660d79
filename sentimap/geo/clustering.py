"""
Clustering policy and marker styles for the event point layer.

Rendering modes
───────────────
  discrete   every valid event is its own marker, sized by hotness and
             coloured by sentiment
  clustered  nearby markers (within ``radius_pixels`` on screen) are merged
             into one aggregate marker sized and coloured by member count

The mode is chosen once per layer rebuild by :func:`select_mode`.  Inside
clustered mode the partition itself depends on the view scale, so it is
recomputed by the layer whenever the view zooms, using the same points.

Cluster buckets
───────────────
  members   size   bucket
  ≤ 3       20 px  small    #52c41a
  ≤ 6       28 px  medium   #faad14
  ≤ 10      36 px  large    #fa8c16
  > 10      44 px  xlarge   #f5222d

Groups smaller than ``min_cluster_size`` are not clusters: their members
are emitted as individual points and render exactly like discrete markers.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .events import Sentiment

log = logging.getLogger(__name__)


SENTIMENT_COLORS: Dict[str, str] = {
    Sentiment.POSITIVE.value: "#52c41a",
    Sentiment.NEGATIVE.value: "#ff4d4f",
    Sentiment.NEUTRAL.value: "#1890ff",
}
DEFAULT_COLOR = "#d9d9d9"

# (max members, diameter px, bucket, colour); last row is open-ended
CLUSTER_BUCKETS: List[Tuple[Optional[int], float, str, str]] = [
    (3, 20.0, "small", "#52c41a"),
    (6, 28.0, "medium", "#faad14"),
    (10, 36.0, "large", "#fa8c16"),
    (None, 44.0, "xlarge", "#f5222d"),
]

POINT_MIN_PX = 10.0
POINT_MAX_PX = 30.0


class RenderMode(str, Enum):
    DISCRETE = "discrete"
    CLUSTERED = "clustered"


@dataclass(frozen=True)
class ClusterConfig:
    """Clustering settings, immutable for one render pass."""
    enabled: bool = True
    radius_pixels: float = 50.0
    min_cluster_size: int = 2

    def __post_init__(self):
        if self.radius_pixels < 0:
            raise ValueError(f"radius_pixels must be >= 0, got {self.radius_pixels}")
        if self.min_cluster_size < 1:
            raise ValueError(f"min_cluster_size must be >= 1, got {self.min_cluster_size}")


@dataclass(frozen=True)
class MarkerStyle:
    size: float         # diameter in device pixels
    color: str
    bucket: str         # sentiment value for points, bucket name for clusters


@dataclass
class Cluster:
    """Aggregate of nearby points at one view scale."""
    members: Tuple[int, ...]    # indices into the layer's point list
    x: float
    y: float

    @property
    def count(self) -> int:
        return len(self.members)


# ── Mode + styles ─────────────────────────────────────────────────────

def select_mode(valid_count: int, config: ClusterConfig) -> RenderMode:
    """Clustered iff enabled and there are at least ``min_cluster_size`` points."""
    if config.enabled and valid_count >= config.min_cluster_size:
        return RenderMode.CLUSTERED
    return RenderMode.DISCRETE


def point_size(hotness: Optional[float]) -> float:
    """Discrete marker diameter: ``hotness * 2.5 + 5`` clamped to 10–30 px."""
    if hotness is None or not np.isfinite(hotness) or hotness <= 0:
        return POINT_MIN_PX
    return float(max(POINT_MIN_PX, min(POINT_MAX_PX, hotness * 2.5 + 5.0)))


def sentiment_color(sentiment) -> str:
    key = sentiment.value if isinstance(sentiment, Sentiment) else str(sentiment)
    return SENTIMENT_COLORS.get(key, DEFAULT_COLOR)


def point_style(sentiment, hotness: Optional[float]) -> MarkerStyle:
    key = sentiment.value if isinstance(sentiment, Sentiment) else str(sentiment)
    return MarkerStyle(size=point_size(hotness), color=sentiment_color(key), bucket=key)


def _bucket_index(count: int) -> int:
    for i, (max_n, _size, _name, _color) in enumerate(CLUSTER_BUCKETS):
        if max_n is None or count <= max_n:
            return i
    return len(CLUSTER_BUCKETS) - 1


def visual_weight(count: int) -> int:
    """Rank of the bucket a cluster of *count* members falls into.

    Non-decreasing in *count*.
    """
    return _bucket_index(max(count, 0))


def cluster_style(count: int) -> MarkerStyle:
    _max_n, size, name, color = CLUSTER_BUCKETS[_bucket_index(count)]
    return MarkerStyle(size=size, color=color, bucket=name)


# ── Partition ─────────────────────────────────────────────────────────

class ClusterPolicy:
    """Greedy, grid-indexed pixel-radius clustering.

    Seeds are visited hottest first (input order breaks ties); each
    unassigned seed absorbs every unassigned point within the radius.
    Deterministic for a given input and view scale.
    """

    def __init__(self, config: ClusterConfig):
        self.config = config

    def radius_scene(self, view_scale: float) -> float:
        """Cluster radius converted from screen pixels to scene units."""
        if view_scale <= 0:
            return 0.0
        return self.config.radius_pixels / view_scale

    def partition(
        self,
        xy: np.ndarray,
        view_scale: float,
        priority: Optional[Sequence[float]] = None,
    ) -> Tuple[List[Cluster], List[int]]:
        """Split points into clusters and stand-alone points.

        Parameters
        ----------
        xy : ndarray, shape (N, 2)
            Scene coordinates of the points.
        view_scale : float
            Current pixels per scene unit.
        priority : sequence of float, optional
            Seed ordering weight (higher first); typically hotness.

        Returns
        -------
        (clusters, singles)
            ``clusters`` have at least ``min_cluster_size`` members;
            ``singles`` are indices of points rendered on their own.
        """
        xy = np.asarray(xy, dtype=float).reshape(-1, 2)
        n = len(xy)
        if n == 0:
            return [], []

        radius = self.radius_scene(view_scale)
        min_size = self.config.min_cluster_size
        if radius <= 0:
            return [], list(range(n))

        if priority is None:
            order = np.arange(n)
        else:
            prio = np.nan_to_num(np.asarray(priority, dtype=float), nan=0.0)
            # stable sort keeps input order for equal priority
            order = np.argsort(-prio, kind="stable")

        cells = np.floor(xy / radius).astype(np.int64)
        grid: Dict[Tuple[int, int], List[int]] = defaultdict(list)
        for i, (cx, cy) in enumerate(cells):
            grid[(int(cx), int(cy))].append(i)

        assigned = np.zeros(n, dtype=bool)
        r2 = radius * radius
        clusters: List[Cluster] = []
        singles: List[int] = []

        for seed in order:
            seed = int(seed)
            if assigned[seed]:
                continue
            cx, cy = int(cells[seed][0]), int(cells[seed][1])
            candidates = []
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    candidates.extend(grid.get((cx + dx, cy + dy), ()))
            cand = np.array(sorted(c for c in candidates if not assigned[c]), dtype=np.int64)
            d2 = np.sum((xy[cand] - xy[seed]) ** 2, axis=1)
            members = cand[d2 <= r2]
            assigned[members] = True

            if len(members) >= max(min_size, 2):
                centre = xy[members].mean(axis=0)
                clusters.append(Cluster(
                    members=tuple(int(m) for m in members),
                    x=float(centre[0]),
                    y=float(centre[1]),
                ))
            else:
                singles.extend(int(m) for m in members)

        singles.sort()
        log.debug("Partition: %d points -> %d clusters + %d singles (r=%.1f px)",
                  n, len(clusters), len(singles), self.config.radius_pixels)
        return clusters, singles
