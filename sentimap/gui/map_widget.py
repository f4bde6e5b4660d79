"""
Interactive sentiment event map widget.

Features
--------
- Events plotted on a Web Mercator scene, sized by hotness and coloured by
  sentiment, or clustered by on-screen proximity
- Wheel zoom anchored under the cursor; clusters re-partition on zoom
- Click a point to resolve it back to its event (``event_clicked``)
- Click a cluster to zoom in on it
- Country outline backdrop fetched in the background, embedded fallback
- Stats / legend / loading / empty-state overlays

The widget owns exactly one scene.  The scene is created the first time
the widget is shown (the container must be attached to a window) and is
released by :meth:`EventMapWidget.dispose` or when the widget is closed.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Sequence

from PyQt5 import QtCore, QtGui, QtWidgets

from ..config import MapConfig
from ..geo.boundary import Backdrop, default_backdrop
from ..geo.clustering import (
    SENTIMENT_COLORS,
    ClusterConfig,
    RenderMode,
)
from ..geo.events import Sentiment, SentimentEvent, sentiment_breakdown
from ..geo.projection import unproject, view_scale_to_zoom, zoom_to_view_scale
from ..ingest.boundary_client import load_backdrop
from .items import ClusterItem, marker_at
from .layer import EventPointLayer
from .pipeline import LayerPipeline
from .resolver import InteractionResolver
from .scene import SceneHandle, Viewport, Z_BACKDROP, initialize, teardown

log = logging.getLogger(__name__)

_OVERLAY_SS = (
    "color: #595959; font-size: 11px; padding: 3px 6px; "
    "background: rgba(255,255,255,220); border: 1px solid #e8e8e8; border-radius: 3px;"
)
_NOTICE_SS = (
    "color: #8c8c8c; font-size: 13px; padding: 8px 14px; "
    "background: rgba(255,255,255,230); border-radius: 4px;"
)


class EventMapWidget(QtWidgets.QWidget):
    """Map of sentiment events with optional clustering.

    Signals
    -------
    event_clicked(object)
        Emitted with the :class:`SentimentEvent` behind a clicked point.
    ready()
        Emitted once when the scene becomes ready.
    layer_rebuilt(int, str)
        Emitted after each layer rebuild with the plotted event count and
        the render mode (``"discrete"``, ``"clustered"`` or ``"empty"``).
    """

    event_clicked = QtCore.pyqtSignal(object)
    ready = QtCore.pyqtSignal()
    layer_rebuilt = QtCore.pyqtSignal(int, str)

    MIN_ZOOM = 2.0
    MAX_ZOOM = 18.0
    _WHEEL_FACTOR = 1.12
    _CLUSTER_ZOOM_FACTOR = 2.0

    def __init__(
        self,
        events: Optional[Sequence[SentimentEvent]] = None,
        height: Optional[int] = None,
        enable_cluster: Optional[bool] = None,
        cluster_radius: Optional[float] = None,
        min_cluster_size: Optional[int] = None,
        on_event_click: Optional[Callable[[SentimentEvent], None]] = None,
        config: Optional[MapConfig] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ):
        super().__init__(parent)
        self._config = config or MapConfig()
        cfg = self._config

        self._events: List[SentimentEvent] = list(events or [])
        self._cluster = ClusterConfig(
            enabled=cfg.enable_cluster if enable_cluster is None else enable_cluster,
            radius_pixels=cfg.cluster_radius if cluster_radius is None else cluster_radius,
            min_cluster_size=cfg.min_cluster_size if min_cluster_size is None else min_cluster_size,
        )
        self._on_event_click = on_event_click

        self._handle: Optional[SceneHandle] = None
        self._pipeline: Optional[LayerPipeline] = None
        self._resolver = InteractionResolver(cfg.click_epsilon, self._handle_event_click)
        self._disposed = False
        self._init_attempts = 0
        self._backdrop_token = 0
        self._backdrop_items: List[QtWidgets.QGraphicsPathItem] = []
        self._backdrop: Optional[Backdrop] = None

        self._debounce = QtCore.QTimer(self)
        self._debounce.setSingleShot(True)
        self._debounce.timeout.connect(self._rebuild_now)

        # ── Layout: fixed-height container, overlays float on top ──
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._container = QtWidgets.QWidget(self)
        self._container.setFixedHeight(height if height is not None else cfg.height)
        layout.addWidget(self._container)

        self._stats_label = QtWidgets.QLabel("", self._container)
        self._stats_label.setStyleSheet(_OVERLAY_SS)
        self._stats_label.setAttribute(QtCore.Qt.WA_TransparentForMouseEvents, True)
        self._stats_label.hide()

        self._legend_label = QtWidgets.QLabel(self._legend_html(), self._container)
        self._legend_label.setTextFormat(QtCore.Qt.RichText)
        self._legend_label.setStyleSheet(_OVERLAY_SS)
        self._legend_label.setAttribute(QtCore.Qt.WA_TransparentForMouseEvents, True)
        self._legend_label.hide()

        self._notice_label = QtWidgets.QLabel("Loading map...", self._container)
        self._notice_label.setAlignment(QtCore.Qt.AlignCenter)
        self._notice_label.setStyleSheet(_NOTICE_SS)
        self._notice_label.setAttribute(QtCore.Qt.WA_TransparentForMouseEvents, True)

    # ── Public API ────────────────────────────────────────────────────

    @property
    def config(self) -> MapConfig:
        return self._config

    @property
    def events(self) -> List[SentimentEvent]:
        return list(self._events)

    @property
    def cluster_config(self) -> ClusterConfig:
        return self._cluster

    @property
    def handle(self) -> Optional[SceneHandle]:
        return self._handle

    @property
    def pipeline(self) -> Optional[LayerPipeline]:
        return self._pipeline

    @property
    def resolver(self) -> InteractionResolver:
        return self._resolver

    @property
    def active_layer(self) -> Optional[EventPointLayer]:
        if self._handle is None or self._handle.is_disposed:
            return None
        return self._handle.layer

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def set_events(self, events: Sequence[SentimentEvent]) -> None:
        """Replace the plotted events.  Bursts are coalesced by the debounce."""
        self._events = list(events)
        self._schedule_rebuild()

    def set_cluster_options(
        self,
        enabled: Optional[bool] = None,
        radius_pixels: Optional[float] = None,
        min_cluster_size: Optional[int] = None,
    ) -> None:
        c = self._cluster
        self._cluster = ClusterConfig(
            enabled=c.enabled if enabled is None else enabled,
            radius_pixels=c.radius_pixels if radius_pixels is None else radius_pixels,
            min_cluster_size=c.min_cluster_size if min_cluster_size is None else min_cluster_size,
        )
        self._schedule_rebuild()

    def set_on_event_click(self, callback: Optional[Callable[[SentimentEvent], None]]) -> None:
        self._on_event_click = callback

    def fit_to_view(self) -> None:
        """Fit the view to the plotted events, or the default viewport."""
        handle = self._handle
        if handle is None or handle.is_disposed:
            return
        layer = handle.layer
        if layer is None or not layer.points:
            handle.apply_viewport(Viewport(self._config.center_lnglat, self._config.zoom))
        elif len(layer.points) == 1:
            p = layer.points[0]
            handle.apply_viewport(Viewport((p.lng, p.lat), 10))
        else:
            xs = [p.x for p in layer.points]
            ys = [p.y for p in layer.points]
            rect = QtCore.QRectF(QtCore.QPointF(min(xs), min(ys)),
                                 QtCore.QPointF(max(xs), max(ys)))
            pad_x = max(rect.width() * 0.1, 1.0)
            pad_y = max(rect.height() * 0.1, 1.0)
            rect.adjust(-pad_x, -pad_y, pad_x, pad_y)
            handle.view.fitInView(rect, QtCore.Qt.KeepAspectRatio)
            self._clamp_scale()
        self._recluster()

    def dispose(self) -> None:
        """Release the scene, listeners and pending work.  Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._debounce.stop()
        self._backdrop_token += 1
        handle = self._handle
        if handle is not None and not handle.is_disposed:
            try:
                handle.view.viewport().removeEventFilter(self)
            except RuntimeError:
                pass
        teardown(handle)
        self._backdrop_items = []
        log.info("Event map disposed")

    # ── Mount ─────────────────────────────────────────────────────────

    def showEvent(self, event):
        super().showEvent(event)
        if self._handle is None and not self._disposed:
            QtCore.QTimer.singleShot(0, self._mount)

    def _mount(self) -> None:
        if self._handle is not None or self._disposed:
            return
        cfg = self._config
        handle = initialize(
            self._container,
            Viewport(cfg.center_lnglat, cfg.zoom),
            on_resize=self._on_window_resize,
        )
        if handle is None:
            self._init_attempts += 1
            if self._init_attempts < cfg.init_retry_limit:
                QtCore.QTimer.singleShot(0, self._mount)
            else:
                log.error("Map scene could not be initialised after %d attempts",
                          self._init_attempts)
            return

        self._handle = handle
        self._pipeline = LayerPipeline(
            handle,
            self._resolver,
            on_cluster_click=self._expand_cluster,
            on_rebuilt=self._on_layer_rebuilt,
        )
        handle.view.viewport().installEventFilter(self)
        # deleted without close(): drop the listener, Qt frees the scene
        self.destroyed.connect(lambda *_, h=handle: teardown(h, release_widgets=False))
        handle.on_ready(self._on_scene_ready)
        self._raise_overlays()
        self._position_overlays()

        self._start_backdrop()
        self._rebuild_now()
        QtCore.QTimer.singleShot(0, handle.mark_ready)

    def _on_scene_ready(self) -> None:
        log.info("Event map ready (%d events)", len(self._events))
        if self._notice_label.text() == "Loading map...":
            self._notice_label.hide()
        self.ready.emit()

    # ── Rebuild ───────────────────────────────────────────────────────

    def _schedule_rebuild(self) -> None:
        if self._disposed:
            return
        if self._config.debounce_ms <= 0:
            self._rebuild_now()
        else:
            self._debounce.start(self._config.debounce_ms)

    def _rebuild_now(self) -> None:
        if self._pipeline is None or self._disposed:
            return
        self._pipeline.rebuild_layer(self._events, self._cluster)

    def _on_layer_rebuilt(self, layer: Optional[EventPointLayer], valid: List[SentimentEvent]) -> None:
        if layer is None:
            mode = "empty"
            self._notice_label.setText("No events with valid coordinates")
            self._notice_label.show()
            self._stats_label.hide()
            self._legend_label.hide()
        else:
            mode = layer.mode.value
            self._notice_label.hide()
            self._update_stats(valid, layer.mode)
            self._legend_label.setVisible(layer.mode == RenderMode.DISCRETE)
        self._position_overlays()
        self.layer_rebuilt.emit(len(valid), mode)

    def _recluster(self) -> None:
        handle = self._handle
        if handle is None or handle.is_disposed or handle.layer is None:
            return
        handle.layer.recluster(handle.view_scale)

    # ── Overlays ──────────────────────────────────────────────────────

    @staticmethod
    def _legend_html() -> str:
        rows = []
        for s in Sentiment:
            color = SENTIMENT_COLORS[s.value]
            rows.append(f"<span style='color:{color}'>&#9679;</span> {s.label}")
        return "<br>".join(rows)

    def _update_stats(self, valid: List[SentimentEvent], mode: RenderMode) -> None:
        counts = sentiment_breakdown(valid)
        text = (
            f"{len(valid)} events  |  "
            f"positive {counts[Sentiment.POSITIVE]}  "
            f"negative {counts[Sentiment.NEGATIVE]}  "
            f"neutral {counts[Sentiment.NEUTRAL]}"
        )
        if mode == RenderMode.CLUSTERED:
            text += "  |  clustering on"
        self._stats_label.setText(text)
        self._stats_label.adjustSize()
        self._stats_label.show()

    def _raise_overlays(self) -> None:
        for label in (self._stats_label, self._legend_label, self._notice_label):
            label.raise_()

    def _position_overlays(self) -> None:
        w = self._container.width()
        h = self._container.height()
        self._stats_label.adjustSize()
        self._stats_label.move(8, 8)
        self._legend_label.adjustSize()
        self._legend_label.move(8, max(8, h - self._legend_label.height() - 8))
        self._notice_label.adjustSize()
        self._notice_label.move(
            max(0, (w - self._notice_label.width()) // 2),
            max(0, (h - self._notice_label.height()) // 2),
        )

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._position_overlays()

    def _on_window_resize(self) -> None:
        self._position_overlays()
        self._recluster()

    # ── Interaction ───────────────────────────────────────────────────

    def eventFilter(self, obj, event):
        handle = self._handle
        if handle is None or handle.is_disposed or obj is not handle.view.viewport():
            return super().eventFilter(obj, event)

        etype = event.type()
        if etype == QtCore.QEvent.Wheel:
            factor = self._WHEEL_FACTOR if event.angleDelta().y() > 0 else 1.0 / self._WHEEL_FACTOR
            self._zoom_by(factor)
            event.accept()
            return True

        if etype == QtCore.QEvent.MouseButtonPress and event.button() == QtCore.Qt.LeftButton:
            if marker_at(handle.view, event.pos()) is None:
                sp = handle.view.mapToScene(event.pos())
                lng, lat = unproject(sp.x(), sp.y())
                self._resolver.dispatch(lat, lng)
        return super().eventFilter(obj, event)

    def _handle_event_click(self, event: SentimentEvent) -> None:
        log.info("Event clicked: %s (%s)", event.id, event.title)
        self.event_clicked.emit(event)
        if self._on_event_click is not None:
            self._on_event_click(event)

    def _zoom_by(self, factor: float) -> None:
        handle = self._handle
        if handle is None or handle.is_disposed:
            return
        current = handle.view_scale
        lo = zoom_to_view_scale(self.MIN_ZOOM)
        hi = zoom_to_view_scale(self.MAX_ZOOM)
        target = min(hi, max(lo, current * factor))
        if current > 0 and target != current:
            f = target / current
            handle.view.scale(f, f)
        self._recluster()

    def _clamp_scale(self) -> None:
        handle = self._handle
        current = handle.view_scale
        zoom = view_scale_to_zoom(current)
        if zoom > self.MAX_ZOOM or zoom < self.MIN_ZOOM:
            target = zoom_to_view_scale(min(self.MAX_ZOOM, max(self.MIN_ZOOM, zoom)))
            handle.view.scale(target / current, target / current)

    def _expand_cluster(self, item: ClusterItem) -> None:
        # The clicked item is replaced by the recluster, so zoom after the
        # press has been delivered.
        centre = item.scenePos()
        log.debug("Expanding cluster of %d events", item.count)
        QtCore.QTimer.singleShot(0, lambda: self._zoom_into(centre))

    def _zoom_into(self, centre: QtCore.QPointF) -> None:
        handle = self._handle
        if handle is None or handle.is_disposed:
            return
        handle.view.centerOn(centre)
        self._zoom_by(self._CLUSTER_ZOOM_FACTOR)
        handle.view.centerOn(centre)

    # ── Backdrop ──────────────────────────────────────────────────────

    @property
    def backdrop(self) -> Optional[Backdrop]:
        return self._backdrop

    @property
    def backdrop_token(self) -> int:
        return self._backdrop_token

    def _start_backdrop(self) -> None:
        cfg = self._config
        self._backdrop_token += 1
        token = self._backdrop_token

        if not cfg.load_backdrop:
            self._apply_backdrop(token, default_backdrop())
            return

        def _worker():
            backdrop = load_backdrop(cfg.boundary_url, timeout=cfg.fetch_timeout_s)
            try:
                QtCore.QMetaObject.invokeMethod(
                    self, "_on_backdrop_loaded",
                    QtCore.Qt.QueuedConnection,
                    QtCore.Q_ARG(int, token),
                    QtCore.Q_ARG(object, backdrop),
                )
            except RuntimeError:
                log.debug("Map widget deleted before backdrop arrived")

        threading.Thread(target=_worker, daemon=True, name="boundary-fetch").start()

    @QtCore.pyqtSlot(int, object)
    def _on_backdrop_loaded(self, token: int, backdrop: Backdrop) -> None:
        self._apply_backdrop(token, backdrop)

    def _apply_backdrop(self, token: int, backdrop: Backdrop) -> bool:
        handle = self._handle
        if token != self._backdrop_token or handle is None or handle.is_disposed:
            log.debug("Discarding stale backdrop result (token %d)", token)
            return False

        scene = handle.scene
        for item in self._backdrop_items:
            scene.removeItem(item)
        self._backdrop_items = []

        pen = QtGui.QPen(QtGui.QColor(140, 150, 160))
        pen.setWidthF(1.2)
        pen.setCosmetic(True)
        pen.setJoinStyle(QtCore.Qt.RoundJoin)
        brush = QtGui.QBrush(QtGui.QColor(230, 236, 242))

        for coords in backdrop.polylines:
            if len(coords) < 2:
                continue
            path = QtGui.QPainterPath()
            path.moveTo(float(coords[0][0]), float(coords[0][1]))
            for x, y in coords[1:]:
                path.lineTo(float(x), float(y))
            item = scene.addPath(path, pen, brush)
            item.setZValue(Z_BACKDROP)
            item.setAcceptedMouseButtons(QtCore.Qt.NoButton)
            self._backdrop_items.append(item)

        self._backdrop = backdrop
        log.info("Backdrop applied: %s (%d polylines, %d vertices)",
                 backdrop.source, len(backdrop.polylines), backdrop.vertex_count)
        return True

    # ── Qt lifecycle ──────────────────────────────────────────────────

    def closeEvent(self, event):
        self.dispose()
        super().closeEvent(event)
