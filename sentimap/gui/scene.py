"""
Scene lifecycle for the event map.

One :class:`SceneHandle` owns the ``QGraphicsScene`` + ``QGraphicsView``
pair bound to a container widget, the active point layer and the global
resize listener.  Each map widget instance owns its own handle.

States
──────
  UNINITIALIZED ──mark_ready()──▶ READY ──teardown()──▶ DISPOSED
        └──────────────────teardown()──────────────────────┘

Layer operations are only valid in READY; :class:`~sentimap.gui.pipeline.
LayerPipeline` defers anything issued earlier and drops anything issued
after disposal.

Usage
-----
    handle = initialize(container, Viewport((104.0, 35.5), 4))
    if handle is None:
        ...                      # container not attached yet, retry later
    handle.on_ready(lambda: log.info("map ready"))
    QtCore.QTimer.singleShot(0, handle.mark_ready)
    ...
    teardown(handle)             # idempotent
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets, sip

from ..geo.projection import MAX_MERCATOR_LAT, project, zoom_to_view_scale

log = logging.getLogger(__name__)

Z_BACKDROP = 1
Z_POINTS = 10


class SceneState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class Viewport:
    center_lnglat: Tuple[float, float]
    zoom: float


class _ResizeWatcher(QtCore.QObject):
    """Application-wide event filter forwarding resizes of one window."""

    def __init__(self, window: QtWidgets.QWidget, callback: Callable[[], None]):
        super().__init__()
        self._window = window
        self._callback = callback

    def eventFilter(self, obj, event):
        if event.type() == QtCore.QEvent.Resize and obj is self._window:
            self._callback()
        return False


class SceneHandle:
    """Rendering context owned by one map widget."""

    def __init__(
        self,
        container: QtWidgets.QWidget,
        scene: QtWidgets.QGraphicsScene,
        view: QtWidgets.QGraphicsView,
        on_resize: Optional[Callable[[], None]] = None,
    ):
        self.container = container
        self.scene = scene
        self.view = view
        self.layer = None            # active EventPointLayer, set by the pipeline
        self.state = SceneState.UNINITIALIZED
        self._ready_callbacks: List[Callable[[], None]] = []
        self._on_resize = on_resize
        self._resize_watcher: Optional[_ResizeWatcher] = None

    # ── State ─────────────────────────────────────────────────────────

    @property
    def is_ready(self) -> bool:
        return self.state == SceneState.READY

    @property
    def is_disposed(self) -> bool:
        return self.state == SceneState.DISPOSED

    @property
    def has_resize_listener(self) -> bool:
        return self._resize_watcher is not None

    @property
    def view_scale(self) -> float:
        """Current pixels per scene unit."""
        if self.is_disposed:
            return 0.0
        return self.view.transform().m11()

    def on_ready(self, callback: Callable[[], None]) -> None:
        """Run *callback* once the scene is ready (now, if it already is)."""
        if self.is_disposed:
            return
        if self.is_ready:
            self._run_callback(callback)
        else:
            self._ready_callbacks.append(callback)

    def mark_ready(self) -> None:
        """UNINITIALIZED → READY; fires the ready callbacks exactly once."""
        if self.state != SceneState.UNINITIALIZED:
            return
        self.state = SceneState.READY
        callbacks, self._ready_callbacks = self._ready_callbacks, []
        log.debug("Scene ready (%d ready callbacks)", len(callbacks))
        for cb in callbacks:
            self._run_callback(cb)

    @staticmethod
    def _run_callback(cb: Callable[[], None]) -> None:
        try:
            cb()
        except Exception:
            log.exception("Scene ready callback failed")

    # ── Resize listener ───────────────────────────────────────────────

    def _install_resize_listener(self) -> None:
        app = QtWidgets.QApplication.instance()
        if app is None:
            return
        self._resize_watcher = _ResizeWatcher(self.container.window(), self._handle_resize)
        app.installEventFilter(self._resize_watcher)

    def _remove_resize_listener(self) -> None:
        if self._resize_watcher is None:
            return
        app = QtWidgets.QApplication.instance()
        if app is not None:
            app.removeEventFilter(self._resize_watcher)
        self._resize_watcher = None

    def _handle_resize(self) -> None:
        if self.is_disposed or self._on_resize is None:
            return
        self._on_resize()

    # ── Viewport ──────────────────────────────────────────────────────

    def apply_viewport(self, viewport: Viewport) -> None:
        if self.is_disposed:
            return
        s = zoom_to_view_scale(viewport.zoom)
        self.view.resetTransform()
        self.view.scale(s, s)
        cx, cy = project(*viewport.center_lnglat)
        self.view.centerOn(cx, cy)


def _world_rect() -> QtCore.QRectF:
    x0, y0 = project(-180.0, MAX_MERCATOR_LAT)
    x1, y1 = project(180.0, -MAX_MERCATOR_LAT)
    return QtCore.QRectF(QtCore.QPointF(x0, y0), QtCore.QPointF(x1, y1))


def _is_attached(container) -> bool:
    if container is None or not isinstance(container, QtWidgets.QWidget):
        return False
    if sip.isdeleted(container):
        return False
    return container.isVisible()


def initialize(
    container: Optional[QtWidgets.QWidget],
    initial_viewport: Viewport,
    on_resize: Optional[Callable[[], None]] = None,
) -> Optional[SceneHandle]:
    """Build the scene + view inside *container*.

    Returns ``None`` (after logging) when the container is not attached to
    a visible window yet or the view cannot be constructed; the caller
    retries on its next mount tick.
    """
    if not _is_attached(container):
        log.warning("Map container not attached yet; deferring scene init")
        return None

    try:
        scene = QtWidgets.QGraphicsScene(container)
        scene.setSceneRect(_world_rect())
        scene.setBackgroundBrush(QtGui.QBrush(QtGui.QColor(245, 245, 245)))

        view = QtWidgets.QGraphicsView(scene, container)
        view.setRenderHints(
            QtGui.QPainter.Antialiasing | QtGui.QPainter.SmoothPixmapTransform
        )
        view.setDragMode(QtWidgets.QGraphicsView.ScrollHandDrag)
        view.setTransformationAnchor(QtWidgets.QGraphicsView.AnchorUnderMouse)
        view.setResizeAnchor(QtWidgets.QGraphicsView.AnchorViewCenter)
        view.setHorizontalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        view.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        view.setViewportUpdateMode(QtWidgets.QGraphicsView.SmartViewportUpdate)
        view.setStyleSheet("border: none; background: #f5f5f5;")

        layout = container.layout()
        if layout is None:
            layout = QtWidgets.QVBoxLayout(container)
            layout.setContentsMargins(0, 0, 0, 0)
            layout.setSpacing(0)
        layout.addWidget(view, 1)
        view.show()
    except Exception as exc:
        log.warning("Map scene construction failed: %s", exc)
        return None

    handle = SceneHandle(container, scene, view, on_resize=on_resize)
    handle.apply_viewport(initial_viewport)
    handle._install_resize_listener()
    log.info("Map scene initialised (centre %.2f,%.2f zoom %s)",
             initial_viewport.center_lnglat[0], initial_viewport.center_lnglat[1],
             initial_viewport.zoom)
    return handle


def teardown(handle: Optional[SceneHandle], release_widgets: bool = True) -> None:
    """Release every resource held by *handle*.  Safe to call repeatedly.

    Pass ``release_widgets=False`` when the owning widget is being destroyed:
    Qt deletes the scene and view with their parent.
    """
    if handle is None or handle.is_disposed:
        return

    handle._remove_resize_listener()
    handle.state = SceneState.DISPOSED
    handle._ready_callbacks = []
    handle.layer = None

    if not release_widgets:
        log.info("Map scene disposed with its owner")
        return

    scene, view = handle.scene, handle.view
    try:
        if not sip.isdeleted(scene):
            scene.clear()
        if not sip.isdeleted(view):
            view.setScene(None)
            view.hide()
            view.setParent(None)
            view.deleteLater()
        if not sip.isdeleted(scene):
            scene.deleteLater()
    except RuntimeError as exc:
        # Qt may already have destroyed the children with their parent
        log.debug("Scene teardown on deleted Qt objects: %s", exc)

    log.info("Map scene disposed")
