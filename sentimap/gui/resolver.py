"""
Click resolution: map a reported coordinate back to the event behind it.

The coordinate a marker reports has been through a projection round trip,
so an exact comparison with the event's stored location would miss.  A
candidate matches when both axes are within ``epsilon`` degrees; among
several candidates the closest one wins and ties go to the earlier event.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..geo.events import SentimentEvent

log = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-4


class InteractionResolver:
    """Resolves clicks against the currently rendered (filtered) events."""

    def __init__(
        self,
        epsilon: float = DEFAULT_EPSILON,
        on_event_click: Optional[Callable[[SentimentEvent], None]] = None,
    ):
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        self.epsilon = epsilon
        self._callback = on_event_click
        self._events: List[SentimentEvent] = []
        self._lat = np.empty(0)
        self._lng = np.empty(0)

    def set_events(self, events: Sequence[SentimentEvent]) -> None:
        """Point the resolver at the events of the current render pass."""
        self._events = list(events)
        self._lat = np.array([e.location.lat for e in self._events], dtype=float)
        self._lng = np.array([e.location.lng for e in self._events], dtype=float)

    def set_callback(self, callback: Optional[Callable[[SentimentEvent], None]]) -> None:
        self._callback = callback

    @property
    def event_count(self) -> int:
        return len(self._events)

    def resolve(self, lat: float, lng: float) -> Optional[SentimentEvent]:
        if not self._events:
            return None
        d_lat = np.abs(self._lat - lat)
        d_lng = np.abs(self._lng - lng)
        mask = (d_lat < self.epsilon) & (d_lng < self.epsilon)
        if not mask.any():
            log.debug("Click at %.6f,%.6f matched no event", lat, lng)
            return None
        d2 = np.where(mask, d_lat ** 2 + d_lng ** 2, np.inf)
        # argmin returns the first index on ties
        return self._events[int(np.argmin(d2))]

    def dispatch(self, lat: float, lng: float) -> Optional[SentimentEvent]:
        """Resolve one physical click and notify the callback at most once."""
        event = self.resolve(lat, lng)
        if event is None or self._callback is None:
            return event
        try:
            self._callback(event)
        except Exception:
            log.exception("Event click callback failed for event %s", event.id)
        return event
