"""
Data-to-layer pipeline: turns the current event list into the single
point layer of a scene.

Each rebuild filters the events, picks the render mode, removes every
existing ``event-points`` layer and adds the new one.  Calls made before
the scene is ready are parked (only the latest is kept) and applied once
it becomes ready; calls made after disposal are dropped.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from ..geo.clustering import ClusterConfig, select_mode
from ..geo.events import SentimentEvent, filter_plottable
from .layer import LAYER_NAME, EventPointLayer, build_render_points
from .resolver import InteractionResolver
from .scene import SceneHandle

log = logging.getLogger(__name__)


class LayerPipeline:
    """Owns layer replacement for one :class:`SceneHandle`."""

    def __init__(
        self,
        handle: SceneHandle,
        resolver: InteractionResolver,
        on_cluster_click: Optional[Callable] = None,
        on_rebuilt: Optional[Callable[[Optional[EventPointLayer], List[SentimentEvent]], None]] = None,
    ):
        self.handle = handle
        self.resolver = resolver
        self._on_cluster_click = on_cluster_click
        self._on_rebuilt = on_rebuilt
        self.generation = 0
        self._pending: Optional[Tuple[int, List[SentimentEvent], ClusterConfig]] = None
        handle.on_ready(self._apply_pending)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def rebuild_layer(
        self,
        events: Sequence[SentimentEvent],
        config: ClusterConfig,
    ) -> Optional[EventPointLayer]:
        """Replace the point layer with one built from *events*.

        Returns the new layer, or ``None`` when the call was deferred,
        dropped, or there was nothing to plot.
        """
        self.generation += 1
        if self.handle.is_disposed:
            log.debug("Rebuild %d dropped: scene disposed", self.generation)
            return None
        if not self.handle.is_ready:
            self._pending = (self.generation, list(events), config)
            log.debug("Rebuild %d deferred until scene ready", self.generation)
            return None
        return self._build(list(events), config)

    def _apply_pending(self) -> None:
        if self._pending is None:
            return
        generation, events, config = self._pending
        self._pending = None
        if generation != self.generation:
            return
        self._build(events, config)

    def _remove_layers(self) -> int:
        scene = self.handle.scene
        stale = [
            item for item in scene.items()
            if isinstance(item, EventPointLayer) and item.objectName() == LAYER_NAME
        ]
        for item in stale:
            scene.removeItem(item)
        return len(stale)

    def _build(self, events: List[SentimentEvent], config: ClusterConfig) -> Optional[EventPointLayer]:
        valid = filter_plottable(events)
        mode = select_mode(len(valid), config)

        removed = self._remove_layers()
        self.handle.layer = None
        self.resolver.set_events(valid)

        if not valid:
            log.debug("Rebuild %d: no plottable events (removed %d layer)",
                      self.generation, removed)
            self._notify(None, valid)
            return None

        layer = EventPointLayer(
            build_render_points(valid),
            mode,
            config,
            on_point_click=self.resolver.dispatch,
            on_cluster_click=self._on_cluster_click,
        )
        layer.recluster(self.handle.view_scale)
        self.handle.scene.addItem(layer)
        self.handle.layer = layer
        log.debug("Rebuild %d: %d/%d events, mode=%s, %d markers",
                  self.generation, len(valid), len(events), mode.value, layer.marker_count)
        self._notify(layer, valid)
        return layer

    def _notify(self, layer: Optional[EventPointLayer], valid: List[SentimentEvent]) -> None:
        if self._on_rebuilt is None:
            return
        try:
            self._on_rebuilt(layer, valid)
        except Exception:
            log.exception("Layer rebuilt callback failed")
