"""
Sentiment event map: PyQt5 widget for plotting sentiment events.

Entry point: python -m sentimap

Provides:
- Event data model and coordinate validation (geo/events)
- Web Mercator projection helpers (geo/projection)
- Pixel-radius point clustering and marker styles (geo/clustering)
- Country boundary backdrop with offline fallback (geo/boundary, ingest/)
- Scene lifecycle, point layer pipeline and click resolution (gui/)
"""

__version__ = "0.3.0"
