"""
Demo sentiment events for the map (major cities, one day of coverage).

Used by ``python -m sentimap`` when no ``--events`` file is given.
"""
from __future__ import annotations

from typing import List

from .events import SentimentEvent

_SAMPLE = [
    {
        "id": "1", "title": "Technology launch in Beijing draws strong response",
        "content": "A product launch held in Beijing attracted wide industry attention with positive user feedback",
        "sentiment": "positive", "score": 0.85,
        "location": {"lat": 39.9042, "lng": 116.4074},
        "address": "Chaoyang District, Beijing", "source": "Science & Technology Daily",
        "timestamp": "2024-01-24 14:30", "hotness": 8,
        "tags": ["technology", "product launch", "innovation"],
    },
    {
        "id": "2", "title": "Shanghai service platform outage hits users",
        "content": "A technical fault on an internet platform left some users unable to use the service",
        "sentiment": "negative", "score": -0.72,
        "location": {"lat": 31.2304, "lng": 121.4737},
        "address": "Pudong New Area, Shanghai", "source": "The Paper",
        "timestamp": "2024-01-24 13:45", "hotness": 6,
        "tags": ["outage", "user experience", "technology"],
    },
    {
        "id": "3", "title": "Shenzhen smart manufacturing expo opens",
        "content": "The 15th international smart manufacturing expo opened showing the latest industry 4.0 technology",
        "sentiment": "neutral", "score": 0.15,
        "location": {"lat": 22.3193, "lng": 114.1694},
        "address": "Futian District, Shenzhen", "source": "Shenzhen Special Zone Daily",
        "timestamp": "2024-01-24 12:00", "hotness": 5,
        "tags": ["expo", "smart manufacturing", "industry 4.0"],
    },
    {
        "id": "4", "title": "Guangzhou food festival sparks citywide buzz",
        "content": "The international food festival drew residents and tourists, with glowing reviews on social media",
        "sentiment": "positive", "score": 0.78,
        "location": {"lat": 23.1291, "lng": 113.2644},
        "address": "Tianhe District, Guangzhou", "source": "Nanfang Daily",
        "timestamp": "2024-01-24 11:30", "hotness": 7,
        "tags": ["food festival", "culture", "tourism"],
    },
    {
        "id": "5", "title": "Hangzhou ride-hailing price change stirs debate",
        "content": "Several ride-hailing platforms announced price adjustments and user reaction was mixed",
        "sentiment": "negative", "score": -0.45,
        "location": {"lat": 30.2741, "lng": 120.1551},
        "address": "Xihu District, Hangzhou", "source": "Qianjiang Evening News",
        "timestamp": "2024-01-24 10:15", "hotness": 4,
        "tags": ["ride-hailing", "pricing", "controversy"],
    },
    {
        "id": "6", "title": "Chengdu creative industry park project launches",
        "content": "A creative industry park in the high-tech zone officially started construction",
        "sentiment": "positive", "score": 0.62,
        "location": {"lat": 30.5728, "lng": 104.0668},
        "address": "High-tech Zone, Chengdu", "source": "Chengdu Business Daily",
        "timestamp": "2024-01-24 09:45", "hotness": 6,
        "tags": ["creative industry", "industrial park", "high-tech zone"],
    },
    {
        "id": "7", "title": "Progress on new Xi'an metro line",
        "content": "Construction of a new metro line reached an important milestone and is expected to open next year",
        "sentiment": "neutral", "score": 0.25,
        "location": {"lat": 34.3416, "lng": 108.9398},
        "address": "Yanta District, Xi'an", "source": "Xi'an Evening News",
        "timestamp": "2024-01-24 08:30", "hotness": 3,
        "tags": ["metro", "transport", "construction"],
    },
    {
        "id": "8", "title": "Wuhan University cherry blossom festival preparations begin",
        "content": "Preparations for the 2024 cherry blossom festival started and large visitor numbers are expected",
        "sentiment": "positive", "score": 0.55,
        "location": {"lat": 30.5928, "lng": 114.3055},
        "address": "Wuchang District, Wuhan", "source": "Changjiang Daily",
        "timestamp": "2024-01-24 07:20", "hotness": 5,
        "tags": ["cherry blossom", "tourism", "university"],
    },
]


def sample_events() -> List[SentimentEvent]:
    """Fresh copies of the demo events."""
    return [SentimentEvent.from_dict(d) for d in _SAMPLE]
