"""
Unit tests for the event model and coordinate filtering.
"""

import math

import pytest

from sentimap.geo.events import (
    GeoCoordinate,
    Sentiment,
    SentimentEvent,
    filter_plottable,
    has_valid_location,
    is_valid_latitude,
    is_valid_longitude,
    sentiment_breakdown,
    to_dms,
)

from conftest import make_event


class TestFromDict:
    """Parsing the page / JSON event shape."""

    def test_full_event(self):
        ev = SentimentEvent.from_dict({
            "id": 7, "title": "Launch", "sentiment": "Positive", "score": "0.85",
            "location": {"lat": 39.9042, "lng": 116.4074}, "hotness": 8,
            "tags": ["a", "b"], "source": "Daily",
        })
        assert ev.id == "7"
        assert ev.sentiment is Sentiment.POSITIVE
        assert ev.score == pytest.approx(0.85)
        assert ev.location == GeoCoordinate(39.9042, 116.4074)
        assert ev.hotness == 8
        assert ev.tags == ["a", "b"]

    def test_unknown_sentiment_is_neutral(self):
        ev = SentimentEvent.from_dict({"id": "1", "sentiment": "furious"})
        assert ev.sentiment is Sentiment.NEUTRAL

    def test_missing_location_is_kept(self):
        ev = SentimentEvent.from_dict({"id": "1", "title": "No place"})
        assert ev.location is None
        assert not has_valid_location(ev)

    def test_unparseable_location_is_kept(self):
        ev = SentimentEvent.from_dict({"id": "1", "location": {"lat": "north", "lng": 1}})
        assert ev.location is None

    def test_nan_location_is_kept_for_filtering(self):
        ev = SentimentEvent.from_dict({"id": "1", "location": {"lat": float("nan"), "lng": 1.0}})
        assert ev.location is not None
        assert math.isnan(ev.location.lat)

    def test_as_dict_uses_sentiment_value(self):
        ev = make_event("1", 10.0, 20.0, sentiment="negative")
        d = ev.as_dict()
        assert d["sentiment"] == "negative"
        assert d["location"] == {"lat": 10.0, "lng": 20.0}


class TestValidity:

    @pytest.mark.parametrize("lat", [0.0, 90.0, -90.0, 39.9042])
    def test_valid_latitude(self, lat):
        assert is_valid_latitude(lat)

    @pytest.mark.parametrize("lat", [90.0001, -91, float("nan"), float("inf"), None, "39.9", True])
    def test_invalid_latitude(self, lat):
        assert not is_valid_latitude(lat)

    @pytest.mark.parametrize("lng", [180.0, -180.0, 116.4074])
    def test_valid_longitude(self, lng):
        assert is_valid_longitude(lng)

    @pytest.mark.parametrize("lng", [180.5, float("-inf"), float("nan"), None])
    def test_invalid_longitude(self, lng):
        assert not is_valid_longitude(lng)


class TestFilterPlottable:

    def test_keeps_only_valid_in_input_order(self):
        events = [
            make_event("1", 30.0, 120.0),
            make_event("2", float("nan"), 120.0),
            make_event("3", 95.0, 120.0),
            SentimentEvent.from_dict({"id": "4"}),
            make_event("5", -10.0, -170.0),
            make_event("6", 10.0, float("inf")),
        ]
        valid = filter_plottable(events)
        assert [e.id for e in valid] == ["1", "5"]

    def test_every_kept_event_is_valid(self):
        events = [make_event(i, lat, lng) for i, (lat, lng) in enumerate([
            (0, 0), (91, 0), (0, 181), (float("nan"), 0), (45, 90), (-90, -180),
        ])]
        valid = filter_plottable(events)
        assert all(has_valid_location(e) for e in valid)
        assert len(valid) == 3

    def test_empty(self):
        assert filter_plottable([]) == []


class TestDisplayHelpers:

    def test_sentiment_breakdown(self):
        events = [
            make_event("1", 0, 0, sentiment="positive"),
            make_event("2", 0, 0, sentiment="positive"),
            make_event("3", 0, 0, sentiment="neutral"),
        ]
        counts = sentiment_breakdown(events)
        assert counts[Sentiment.POSITIVE] == 2
        assert counts[Sentiment.NEGATIVE] == 0
        assert counts[Sentiment.NEUTRAL] == 1

    def test_to_dms_hemispheres(self):
        text = to_dms(-33.5, 151.25)
        assert text.startswith("33°30'")
        assert "S" in text and text.endswith("E")
