"""
Unit tests for MapConfig, logging helpers and the demo entry point.
"""

import json
import logging

import pytest

from sentimap import logger as sm_logger
from sentimap.app import build_parser, load_events
from sentimap.config import DEFAULT_BOUNDARY_URL, MapConfig


class TestMapConfig:

    def test_defaults(self):
        cfg = MapConfig()
        assert cfg.center_lnglat == (104.0, 35.5)
        assert cfg.zoom == 4
        assert cfg.height == 400
        assert cfg.click_epsilon == 1e-4
        assert cfg.debounce_ms == 300
        assert cfg.boundary_url == DEFAULT_BOUNDARY_URL
        assert cfg.load_backdrop is True

    def test_no_env_returns_defaults(self, monkeypatch):
        for name in ("SENTIMAP_BOUNDARY_URL", "SENTIMAP_OFFLINE",
                     "SENTIMAP_CLICK_EPSILON", "SENTIMAP_DEBOUNCE_MS"):
            monkeypatch.delenv(name, raising=False)
        assert MapConfig.from_env() == MapConfig()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SENTIMAP_BOUNDARY_URL", "http://example.test/b.json")
        monkeypatch.setenv("SENTIMAP_OFFLINE", "1")
        monkeypatch.setenv("SENTIMAP_CLICK_EPSILON", "0.001")
        monkeypatch.setenv("SENTIMAP_DEBOUNCE_MS", "0")
        cfg = MapConfig.from_env()
        assert cfg.boundary_url == "http://example.test/b.json"
        assert cfg.load_backdrop is False
        assert cfg.click_epsilon == pytest.approx(0.001)
        assert cfg.debounce_ms == 0

    def test_bad_values_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("SENTIMAP_CLICK_EPSILON", "tiny")
        monkeypatch.setenv("SENTIMAP_DEBOUNCE_MS", "-5")
        cfg = MapConfig.from_env()
        assert cfg.click_epsilon == 1e-4
        assert cfg.debounce_ms == 300
        assert "SENTIMAP_CLICK_EPSILON" in caplog.text

    def test_base_is_preserved(self, monkeypatch):
        monkeypatch.setenv("SENTIMAP_OFFLINE", "yes")
        cfg = MapConfig.from_env(MapConfig(height=250))
        assert cfg.height == 250
        assert cfg.load_backdrop is False


class TestLoadEvents:

    def test_sample_set_by_default(self):
        events = load_events(None)
        assert len(events) == 8
        assert events[0].location.lat == pytest.approx(39.9042)

    def test_json_list(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps([
            {"id": "1", "location": {"lat": 30, "lng": 120}},
            {"id": "2", "location": None},
            "not an event",
        ]))
        events = load_events(str(path))
        assert [e.id for e in events] == ["1", "2"]

    def test_wrapped_object(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps({"events": [{"id": "x"}]}))
        assert [e.id for e in load_events(str(path))] == ["x"]

    def test_bad_shape(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps("nope"))
        with pytest.raises(ValueError):
            load_events(str(path))

    def test_parser_flags(self):
        args, _ = build_parser().parse_known_args(
            ["--no-cluster", "--radius", "80", "--min-cluster-size", "3", "--offline"])
        assert args.no_cluster
        assert args.radius == 80.0
        assert args.min_cluster_size == 3
        assert args.offline
        assert args.events is None


class TestLogger:

    def test_write_click_event(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sm_logger, "LOG_DIR", tmp_path / "logs")
        path = sm_logger.write_click_event({"id": "1", "title": "标题"})
        assert path.parent == tmp_path / "logs"
        assert json.loads(path.read_text(encoding="utf-8"))["title"] == "标题"

    def test_setup_logging_file_handler(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sm_logger, "LOG_DIR", tmp_path / "logs")
        root = logging.getLogger()
        saved = root.handlers[:]
        saved_level = root.level
        try:
            root.handlers = []
            sm_logger.setup_logging(logging.DEBUG, log_file="map.log")
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert (tmp_path / "logs" / "map.log").exists()
        finally:
            for h in root.handlers:
                if h not in saved:
                    h.close()
            root.handlers = saved
            root.setLevel(saved_level)
