"""
Demo window for the sentiment event map.

    python -m sentimap                       # built-in sample events
    python -m sentimap --events events.json --radius 80
    python -m sentimap --no-cluster --offline --debug
"""
from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from PyQt5 import QtCore, QtWidgets

from .config import MapConfig
from .geo.events import SentimentEvent
from .geo.sample_events import sample_events
from .gui.map_widget import EventMapWidget
from .logger import setup_logging, write_click_event

log = logging.getLogger(__name__)


def load_events(path: Optional[str]) -> List[SentimentEvent]:
    """Events from a JSON list (or ``{"events": [...]}``), else the sample set."""
    if not path:
        return sample_events()
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("events", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of events")
    events = [SentimentEvent.from_dict(d) for d in data if isinstance(d, dict)]
    log.info("Loaded %d events from %s", len(events), path)
    return events


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sentiment event map")
    parser.add_argument("--events", metavar="PATH",
                        help="JSON file with a list of events (default: built-in sample)")
    parser.add_argument("--no-cluster", action="store_true",
                        help="Plot every event as its own marker")
    parser.add_argument("--radius", type=float, default=None,
                        help="Cluster radius in screen pixels (default: 50)")
    parser.add_argument("--min-cluster-size", type=int, default=None,
                        help="Smallest group drawn as a cluster (default: 2)")
    parser.add_argument("--height", type=int, default=None,
                        help="Map height in pixels (default: 400)")
    parser.add_argument("--offline", action="store_true",
                        help="Skip the boundary download, use the embedded outline")
    parser.add_argument("--save-clicks", action="store_true",
                        help="Write clicked events to logs/ as JSON")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args, remaining = build_parser().parse_known_args(argv)

    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    config = MapConfig.from_env()
    if args.offline:
        config = replace(config, load_backdrop=False)

    try:
        events = load_events(args.events)
    except (OSError, ValueError) as exc:
        log.error("Could not load events: %s", exc)
        sys.exit(1)

    def _on_click(event: SentimentEvent) -> None:
        log.info("Clicked: [%s] %s  %s  hotness=%s",
                 event.id, event.title, event.sentiment.value, event.hotness)
        if args.save_clicks:
            path = write_click_event(event.as_dict())
            log.info("Saved click payload to %s", path)

    app = QtWidgets.QApplication(sys.argv[:1] + remaining)
    app.setStyle("Fusion")

    win = QtWidgets.QMainWindow()
    win.setWindowTitle("Sentiment Event Map")
    widget = EventMapWidget(
        events,
        height=args.height,
        enable_cluster=False if args.no_cluster else None,
        cluster_radius=args.radius,
        min_cluster_size=args.min_cluster_size,
        on_event_click=_on_click,
        config=config,
    )
    win.setCentralWidget(widget)
    win.resize(960, widget.sizeHint().height() or config.height)
    win.show()

    def _sigint_handler(*_args):
        log.info("SIGINT received, closing")
        win.close()

    signal.signal(signal.SIGINT, _sigint_handler)
    signal.signal(signal.SIGTERM, _sigint_handler)

    # Qt blocks Python signal delivery; wake the interpreter periodically
    _sig_timer = QtCore.QTimer()
    _sig_timer.timeout.connect(lambda: None)
    _sig_timer.start(200)

    app.aboutToQuit.connect(widget.dispose)
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
