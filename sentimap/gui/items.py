"""
Marker graphics items for the event point layer.

Both marker types ignore the view transform, so their diameter is in
device pixels at every zoom level while their position tracks the map.

  EventPointItem   one event (discrete mode, or a lone point in
                   clustered mode; the two render identically)
  ClusterItem      aggregate of nearby events with its member count
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from PyQt5 import QtCore, QtGui, QtWidgets

from ..geo.clustering import Cluster, MarkerStyle
from ..geo.events import SentimentEvent, to_dms
from ..geo.projection import unproject

if TYPE_CHECKING:
    from .layer import EventPointLayer, RenderPoint

log = logging.getLogger(__name__)

_STROKE_PX = 2.0
_CONTENT_PREVIEW = 50


# ── Tooltips ──────────────────────────────────────────────────────────

def point_tooltip(event: SentimentEvent) -> str:
    content = event.content or "No content"
    if len(content) > _CONTENT_PREVIEW:
        content = content[:_CONTENT_PREVIEW] + "..."
    loc = event.location
    where = to_dms(loc.lat, loc.lng) if loc is not None else "unknown"
    lines = [
        event.title or "Untitled event",
        f"Sentiment: {event.sentiment.label}",
        f"Content: {content}",
        f"Source: {event.source or 'unknown'}",
        f"Address: {event.address or 'unknown'}",
        f"Location: {where}",
        f"Hotness: {event.hotness if event.hotness is not None else 0:g}",
        f"Time: {event.timestamp}",
    ]
    if event.tags:
        lines.append("Tags: " + ", ".join(event.tags))
    return "\n".join(lines)


def cluster_tooltip(count: int, bucket: str, total: int) -> str:
    share = (count / total * 100.0) if total else 0.0
    return (
        f"{count} events\n"
        f"Cluster: {bucket}\n"
        f"{share:.1f}% of events in view\n"
        f"Click to zoom in on {count} events"
    )


# ── Items ─────────────────────────────────────────────────────────────

class _MarkerItem(QtWidgets.QGraphicsObject):
    """Filled circle with a white rim, sized in device pixels."""

    def __init__(self, style: MarkerStyle, layer: "EventPointLayer"):
        super().__init__()
        self.style = style
        self._layer = layer
        self._hovered = False
        r = style.size / 2.0 + _STROKE_PX
        self._rect = QtCore.QRectF(-r, -r, 2 * r, 2 * r)

        self.setFlag(QtWidgets.QGraphicsItem.ItemIgnoresTransformations, True)
        self.setAcceptHoverEvents(True)
        self.setCursor(QtCore.Qt.PointingHandCursor)

    def boundingRect(self) -> QtCore.QRectF:
        return self._rect

    def shape(self) -> QtGui.QPainterPath:
        path = QtGui.QPainterPath()
        path.addEllipse(self._rect)
        return path

    def _paint_disc(self, painter: QtGui.QPainter, opacity: float) -> None:
        r = self.style.size / 2.0
        color = QtGui.QColor(self.style.color)
        if self._hovered:
            color = QtGui.QColor("#0050b3")
        color.setAlphaF(opacity)
        pen = QtGui.QPen(QtGui.QColor(255, 255, 255))
        pen.setWidthF(_STROKE_PX)
        painter.setPen(pen)
        painter.setBrush(QtGui.QBrush(color))
        painter.drawEllipse(QtCore.QRectF(-r, -r, 2 * r, 2 * r))

    def hoverEnterEvent(self, event):
        self._hovered = True
        self.update()
        super().hoverEnterEvent(event)

    def hoverLeaveEvent(self, event):
        self._hovered = False
        self.update()
        super().hoverLeaveEvent(event)


class EventPointItem(_MarkerItem):
    """One event marker."""

    def __init__(self, point: "RenderPoint", style: MarkerStyle, layer: "EventPointLayer"):
        super().__init__(style, layer)
        self.point = point
        self.setPos(point.x, point.y)
        self.setToolTip(point_tooltip(point.event))

    @property
    def sentiment_event(self) -> SentimentEvent:
        return self.point.event

    def reported_lnglat(self):
        """Geographic position as the scene reports it (projection round trip)."""
        pos = self.scenePos()
        return unproject(pos.x(), pos.y())

    def paint(self, painter: QtGui.QPainter, option, widget=None) -> None:
        self._paint_disc(painter, 0.8)

    def mousePressEvent(self, event):
        if event.button() != QtCore.Qt.LeftButton:
            super().mousePressEvent(event)
            return
        event.accept()
        lng, lat = self.reported_lnglat()
        self._layer.point_clicked(lat, lng)


class ClusterItem(_MarkerItem):
    """Aggregate marker labelled with its member count."""

    def __init__(self, cluster: Cluster, style: MarkerStyle, total: int, layer: "EventPointLayer"):
        super().__init__(style, layer)
        self.cluster = cluster
        self.setPos(cluster.x, cluster.y)
        self.setToolTip(cluster_tooltip(cluster.count, style.bucket, total))

    @property
    def count(self) -> int:
        return self.cluster.count

    def paint(self, painter: QtGui.QPainter, option, widget=None) -> None:
        self._paint_disc(painter, 0.9)
        r = self.style.size / 2.0
        font = painter.font()
        font.setPixelSize(max(9, int(r * 0.9)))
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QtGui.QColor(255, 255, 255))
        painter.drawText(QtCore.QRectF(-r, -r, 2 * r, 2 * r),
                         QtCore.Qt.AlignCenter, str(self.cluster.count))

    def mousePressEvent(self, event):
        if event.button() != QtCore.Qt.LeftButton:
            super().mousePressEvent(event)
            return
        event.accept()
        self._layer.cluster_clicked(self)


MARKER_TYPES = (EventPointItem, ClusterItem)


def marker_at(view: QtWidgets.QGraphicsView, pos: QtCore.QPoint) -> Optional[_MarkerItem]:
    """Topmost marker under a viewport position, ignoring backdrop items."""
    for item in view.items(pos):
        if isinstance(item, MARKER_TYPES):
            return item
    return None
