"""Shared fixtures: offscreen QApplication and event factories."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt5 import QtCore, QtWidgets

from sentimap.config import MapConfig
from sentimap.geo.events import SentimentEvent


@pytest.fixture(scope="session")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(["pytest"])
    yield app


def make_event(id, lat, lng, sentiment="positive", hotness=5, **extra):
    data = {
        "id": str(id),
        "title": f"Event {id}",
        "sentiment": sentiment,
        "score": 0.5,
        "location": {"lat": lat, "lng": lng},
        "hotness": hotness,
    }
    data.update(extra)
    return SentimentEvent.from_dict(data)


@pytest.fixture
def beijing_events():
    """Two events 0.0001 degrees apart on both axes."""
    return [
        make_event("A", 39.9042, 116.4074),
        make_event("B", 39.9043, 116.4075),
    ]


@pytest.fixture
def offline_config():
    return MapConfig(load_backdrop=False, debounce_ms=0)


def process_events(ms=0, rounds=5):
    """Spin the event loop so zero-delay timers fire."""
    app = QtWidgets.QApplication.instance()
    for _ in range(rounds):
        if ms:
            QtCore.QThread.msleep(ms)
        app.processEvents()


@pytest.fixture
def container(qapp):
    w = QtWidgets.QWidget()
    w.resize(640, 400)
    w.show()
    process_events()
    yield w
    w.close()
    w.deleteLater()
    process_events()
