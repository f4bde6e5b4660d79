"""
Event point layer: one scene item that owns every marker of a render pass.

The layer is built once per rebuild from the filtered events and carries
the render mode decided for that pass.  In clustered mode the partition
depends on the view scale, so :meth:`EventPointLayer.recluster` rebuilds
the child markers from the same points whenever the view zooms.  In
discrete mode the markers never change after the first pass.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np
from PyQt5 import QtCore, QtWidgets

from ..geo.clustering import (
    ClusterConfig,
    ClusterPolicy,
    RenderMode,
    cluster_style,
    point_size,
    point_style,
)
from ..geo.events import SentimentEvent
from ..geo.projection import project_many
from .items import ClusterItem, EventPointItem
from .scene import Z_POINTS

log = logging.getLogger(__name__)

LAYER_NAME = "event-points"


@dataclass
class RenderPoint:
    """Render-ready point derived from one valid event."""
    lng: float
    lat: float
    weight: float           # marker diameter in px, from hotness
    style_key: str          # sentiment value
    event: SentimentEvent
    x: float = 0.0          # scene coordinates
    y: float = 0.0


def build_render_points(valid: Sequence[SentimentEvent]) -> List[RenderPoint]:
    """Project filtered events into scene space, preserving order."""
    if not valid:
        return []
    lngs = [e.location.lng for e in valid]
    lats = [e.location.lat for e in valid]
    xy = project_many(lngs, lats)
    points = []
    for ev, (x, y) in zip(valid, xy):
        points.append(RenderPoint(
            lng=ev.location.lng,
            lat=ev.location.lat,
            weight=point_size(ev.hotness),
            style_key=ev.sentiment.value,
            event=ev,
            x=float(x),
            y=float(y),
        ))
    return points


def _hotness(event: SentimentEvent) -> float:
    h = event.hotness
    return float(h) if h is not None and np.isfinite(h) else 0.0


class EventPointLayer(QtWidgets.QGraphicsObject):
    """Container item for the markers of one render pass."""

    def __init__(
        self,
        points: List[RenderPoint],
        mode: RenderMode,
        config: ClusterConfig,
        on_point_click: Optional[Callable[[float, float], None]] = None,
        on_cluster_click: Optional[Callable[[ClusterItem], None]] = None,
    ):
        super().__init__()
        self.setObjectName(LAYER_NAME)
        self.setFlag(QtWidgets.QGraphicsItem.ItemHasNoContents, True)
        self.setZValue(Z_POINTS)

        self.points = points
        self.mode = mode
        self.config = config
        self._policy = ClusterPolicy(config)
        self._on_point_click = on_point_click
        self._on_cluster_click = on_cluster_click
        self._xy = np.array([(p.x, p.y) for p in points], dtype=float).reshape(-1, 2)
        self._priority = [_hotness(p.event) for p in points]
        self._markers: List[QtWidgets.QGraphicsItem] = []
        self._built_scale: Optional[float] = None

    def boundingRect(self) -> QtCore.QRectF:
        return QtCore.QRectF()

    def paint(self, painter, option, widget=None) -> None:
        pass

    # ── Counts ────────────────────────────────────────────────────────

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    @property
    def cluster_count(self) -> int:
        return sum(1 for m in self._markers if isinstance(m, ClusterItem))

    @property
    def markers(self) -> List[QtWidgets.QGraphicsItem]:
        return list(self._markers)

    # ── Marker construction ───────────────────────────────────────────

    def recluster(self, view_scale: float) -> None:
        """(Re)build child markers for *view_scale* (pixels per scene unit)."""
        if self.mode == RenderMode.DISCRETE:
            if self._built_scale is None:
                self._replace_markers([
                    self._point_item(p) for p in self.points
                ])
                self._built_scale = view_scale
            return

        if self._built_scale is not None and np.isclose(self._built_scale, view_scale):
            return

        clusters, singles = self._policy.partition(self._xy, view_scale, self._priority)
        total = len(self.points)
        markers: List[QtWidgets.QGraphicsItem] = [
            ClusterItem(c, cluster_style(c.count), total, self) for c in clusters
        ]
        markers.extend(self._point_item(self.points[i]) for i in singles)
        self._replace_markers(markers)
        self._built_scale = view_scale

    def _point_item(self, p: RenderPoint) -> EventPointItem:
        return EventPointItem(p, point_style(p.style_key, p.event.hotness), self)

    def _replace_markers(self, markers: List[QtWidgets.QGraphicsItem]) -> None:
        scene = self.scene()
        for old in self._markers:
            old.setParentItem(None)
            if scene is not None and old.scene() is not None:
                scene.removeItem(old)
        self._markers = markers
        for m in markers:
            m.setParentItem(self)

    def cluster_members(self, item: ClusterItem) -> List[SentimentEvent]:
        return [self.points[i].event for i in item.cluster.members]

    # ── Click forwarding ──────────────────────────────────────────────

    def point_clicked(self, lat: float, lng: float) -> None:
        if self._on_point_click is not None:
            self._on_point_click(lat, lng)

    def cluster_clicked(self, item: ClusterItem) -> None:
        if self._on_cluster_click is not None:
            self._on_cluster_click(item)
