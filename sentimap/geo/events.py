"""
Sentiment event data model.

A SentimentEvent is supplied by the hosting page and is treated as
read-only.  Only ``location``, ``hotness`` and ``sentiment`` are
interpreted by the map; everything else is passed through to tooltips
and click payloads unchanged.

Example
-------
    ev = SentimentEvent.from_dict({
        "id": "1", "title": "Launch event",
        "sentiment": "positive", "score": 0.85,
        "location": {"lat": 39.9042, "lng": 116.4074},
        "hotness": 8,
    })
    has_valid_location(ev)   # True
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

log = logging.getLogger(__name__)


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"

    @classmethod
    def parse(cls, value: Any) -> "Sentiment":
        if isinstance(value, Sentiment):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NEUTRAL

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class GeoCoordinate:
    lat: float
    lng: float


@dataclass
class SentimentEvent:
    """One geolocated sentiment event."""
    id: str
    title: str = ""
    sentiment: Sentiment = Sentiment.NEUTRAL
    score: float = 0.0
    location: Optional[GeoCoordinate] = None
    hotness: Optional[float] = None     # scales marker size only

    # Opaque metadata (shown in tooltips, never interpreted)
    content: str = ""
    address: str = ""
    source: str = ""
    timestamp: str = ""
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentimentEvent":
        """Build an event from the page / JSON shape.

        Never rejects an event for a bad location: unparseable or missing
        coordinates are kept as-is (or ``None``) and dropped later by
        :func:`filter_plottable`.
        """
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "") or ""),
            sentiment=Sentiment.parse(data.get("sentiment")),
            score=_as_float(data.get("score"), 0.0),
            location=_parse_location(data.get("location")),
            hotness=_as_float(data.get("hotness"), None),
            content=str(data.get("content", "") or ""),
            address=str(data.get("address", "") or ""),
            source=str(data.get("source", "") or ""),
            timestamp=str(data.get("timestamp", "") or ""),
            tags=[str(t) for t in (data.get("tags") or [])],
        )

    def as_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict (for click payloads / JSON)."""
        d = asdict(self)
        d["sentiment"] = self.sentiment.value
        return d


def _as_float(value: Any, default: Optional[float]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_location(raw: Any) -> Optional[GeoCoordinate]:
    if isinstance(raw, GeoCoordinate):
        return raw
    if not isinstance(raw, dict):
        return None
    lat = _as_float(raw.get("lat"), None)
    lng = _as_float(raw.get("lng"), None)
    if lat is None or lng is None:
        return None
    return GeoCoordinate(lat=lat, lng=lng)


# ── Coordinate validation ────────────────────────────────────────────

def is_valid_latitude(lat: Any) -> bool:
    return (
        isinstance(lat, (int, float)) and not isinstance(lat, bool)
        and math.isfinite(lat) and -90.0 <= lat <= 90.0
    )


def is_valid_longitude(lng: Any) -> bool:
    return (
        isinstance(lng, (int, float)) and not isinstance(lng, bool)
        and math.isfinite(lng) and -180.0 <= lng <= 180.0
    )


def has_valid_location(event: SentimentEvent) -> bool:
    loc = getattr(event, "location", None)
    if loc is None:
        return False
    return is_valid_latitude(loc.lat) and is_valid_longitude(loc.lng)


def filter_plottable(events: Iterable[SentimentEvent]) -> List[SentimentEvent]:
    """Keep only events with finite, in-range coordinates, in input order.

    Dropped events are counted, not logged one by one.
    """
    events = list(events)
    valid = [e for e in events if has_valid_location(e)]
    dropped = len(events) - len(valid)
    if dropped:
        log.debug("Filtered %d/%d events without a plottable location",
                  dropped, len(events))
    return valid


def sentiment_breakdown(events: Iterable[SentimentEvent]) -> Dict[Sentiment, int]:
    counts = {s: 0 for s in Sentiment}
    for e in events:
        counts[e.sentiment] += 1
    return counts


# ── Display helpers ──────────────────────────────────────────────────

def to_dms(lat: float, lng: float) -> str:
    """Format a coordinate pair as degrees / minutes / seconds."""

    def _dms(coord: float, is_lat: bool) -> Tuple[int, int, float, str]:
        absolute = abs(coord)
        degrees = int(math.floor(absolute))
        minutes_f = (absolute - degrees) * 60
        minutes = int(math.floor(minutes_f))
        seconds = round((minutes_f - minutes) * 60, 2)
        if is_lat:
            hemi = "N" if coord >= 0 else "S"
        else:
            hemi = "E" if coord >= 0 else "W"
        return degrees, minutes, seconds, hemi

    d1, m1, s1, h1 = _dms(lat, True)
    d2, m2, s2, h2 = _dms(lng, False)
    return f"{d1}°{m1}'{s1}\"{h1} {d2}°{m2}'{s2}\"{h2}"
