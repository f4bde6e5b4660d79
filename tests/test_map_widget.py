"""
Tests for the EventMapWidget component contract.
"""

from dataclasses import replace
from unittest.mock import Mock, patch

import pytest
from PyQt5 import QtCore, QtWidgets
from PyQt5.QtTest import QTest

from sentimap.geo.boundary import default_backdrop
from sentimap.geo.projection import zoom_to_view_scale
from sentimap.gui.items import ClusterItem, EventPointItem
from sentimap.gui.map_widget import EventMapWidget

from conftest import make_event, process_events

BEIJING = (39.9042, 116.4074)
TIANJIN = (39.3434, 117.3616)
SHANGHAI = (31.2304, 121.4737)


@pytest.fixture
def make_widget(qapp, offline_config):
    created = []

    def _make(events=(), config=None, **kwargs):
        w = EventMapWidget(list(events), config=config or offline_config, **kwargs)
        w.resize(640, 400)
        w.show()
        process_events()
        created.append(w)
        return w

    yield _make
    for w in created:
        w.dispose()
        w.deleteLater()
    process_events()


class TestMount:

    def test_ready_and_initial_layer(self, make_widget):
        events = [make_event("1", *BEIJING), make_event("2", *SHANGHAI)]
        w = make_widget(events)
        assert w.handle is not None
        assert w.handle.is_ready
        assert w.active_layer is not None
        assert w.active_layer.point_count == 2

    def test_ready_signal_emitted_once(self, qapp, offline_config):
        w = EventMapWidget([], config=offline_config)
        ready = Mock()
        w.ready.connect(ready)
        w.show()
        process_events()
        try:
            ready.assert_called_once()
        finally:
            w.dispose()
            w.deleteLater()

    def test_defaults(self, make_widget):
        w = make_widget()
        assert w.cluster_config.enabled is True
        assert w.cluster_config.radius_pixels == 50
        assert w.cluster_config.min_cluster_size == 2
        assert w._container.height() == 400

    def test_props_override_config(self, make_widget):
        w = make_widget(height=300, enable_cluster=False, cluster_radius=80, min_cluster_size=3)
        assert w._container.height() == 300
        assert w.cluster_config.enabled is False
        assert w.cluster_config.radius_pixels == 80
        assert w.cluster_config.min_cluster_size == 3

    def test_mount_retries_until_attached(self, qapp, offline_config):
        w = EventMapWidget([], config=offline_config)
        with patch("sentimap.gui.map_widget.initialize", return_value=None) as mock_init:
            w._mount()
            process_events(rounds=3)
        assert mock_init.call_count >= 2
        assert w.handle is None
        w.dispose()
        w.deleteLater()


class TestRebuilds:

    def test_layer_rebuilt_signal(self, make_widget):
        w = make_widget()
        rebuilt = Mock()
        w.layer_rebuilt.connect(rebuilt)
        w.set_events([make_event("1", *BEIJING), make_event("2", float("nan"), 1.0)])
        rebuilt.assert_called_once_with(1, "discrete")
        w.set_events([make_event("1", *BEIJING), make_event("2", *TIANJIN)])
        rebuilt.assert_called_with(2, "clustered")

    def test_empty_state_notice(self, make_widget):
        w = make_widget([make_event("1", *BEIJING)])
        w.set_events([make_event("bad", float("inf"), 0.0)])
        assert w.active_layer is None
        assert not w._notice_label.isHidden()
        assert "No events" in w._notice_label.text()

    def test_stats_and_legend(self, make_widget):
        w = make_widget([make_event("1", *BEIJING, sentiment="negative")])
        assert "1 events" in w._stats_label.text()
        assert "negative 1" in w._stats_label.text()
        assert not w._legend_label.isHidden()

        w.set_events([make_event("1", *BEIJING), make_event("2", *TIANJIN)])
        assert "clustering on" in w._stats_label.text()
        assert w._legend_label.isHidden()

    def test_set_cluster_options(self, make_widget):
        w = make_widget([make_event("1", *BEIJING), make_event("2", *TIANJIN)])
        assert w.active_layer.cluster_count == 1
        w.set_cluster_options(enabled=False)
        assert w.active_layer.cluster_count == 0
        assert w.active_layer.marker_count == 2

    def test_debounce_coalesces_bursts(self, make_widget, offline_config):
        w = make_widget(config=replace(offline_config, debounce_ms=20))
        rebuilt = Mock()
        w.layer_rebuilt.connect(rebuilt)
        w.set_events([make_event("1", *BEIJING)])
        w.set_events([make_event("2", *TIANJIN)])
        w.set_events([make_event("3", *SHANGHAI)])
        rebuilt.assert_not_called()
        process_events(ms=30, rounds=5)
        rebuilt.assert_called_once_with(1, "discrete")
        assert [p.event.id for p in w.active_layer.points] == ["3"]

    def test_events_before_mount_are_applied(self, qapp, offline_config):
        w = EventMapWidget([], config=offline_config)
        w.set_events([make_event("1", *BEIJING)])
        w.show()
        process_events()
        try:
            assert w.active_layer.point_count == 1
        finally:
            w.dispose()
            w.deleteLater()


class TestClicks:

    def test_marker_click_emits_event(self, make_widget):
        on_click = Mock()
        event = make_event("A", *BEIJING)
        w = make_widget([event], on_event_click=on_click)
        clicked = Mock()
        w.event_clicked.connect(clicked)

        (marker,) = w.active_layer.markers
        view = w.handle.view
        QTest.mouseClick(view.viewport(), QtCore.Qt.LeftButton,
                         QtCore.Qt.NoModifier, view.mapFromScene(marker.scenePos()))

        clicked.assert_called_once_with(event)
        on_click.assert_called_once_with(event)

    def test_click_after_zoom_split(self, make_widget):
        on_click = Mock()
        beijing, tianjin = make_event("1", *BEIJING), make_event("2", *TIANJIN)
        w = make_widget([beijing, tianjin], on_event_click=on_click)
        w._zoom_by(1e9)
        marker = next(m for m in w.active_layer.markers if m.sentiment_event is tianjin)

        view = w.handle.view
        view.centerOn(marker)
        process_events()
        QTest.mouseClick(view.viewport(), QtCore.Qt.LeftButton,
                         QtCore.Qt.NoModifier, view.mapFromScene(marker.scenePos()))

        on_click.assert_called_once_with(tianjin)

    def test_empty_area_click_does_nothing(self, make_widget):
        on_click = Mock()
        w = make_widget([make_event("A", *BEIJING)], on_event_click=on_click)
        QTest.mouseClick(w.handle.view.viewport(), QtCore.Qt.LeftButton,
                         QtCore.Qt.NoModifier, QtCore.QPoint(2, 2))
        on_click.assert_not_called()

    def test_callback_error_does_not_escape(self, make_widget, caplog):
        event = make_event("A", *BEIJING)
        w = make_widget([event], on_event_click=Mock(side_effect=RuntimeError("page")))
        clicked = Mock()
        w.event_clicked.connect(clicked)
        w.resolver.dispatch(*BEIJING)
        clicked.assert_called_once_with(event)
        assert "callback failed" in caplog.text

    def test_cluster_click_zooms_in(self, make_widget):
        on_click = Mock()
        w = make_widget([make_event("1", *BEIJING), make_event("2", *TIANJIN)],
                        on_event_click=on_click)
        (cluster,) = w.active_layer.markers
        assert isinstance(cluster, ClusterItem)
        before = w.handle.view_scale

        w._expand_cluster(cluster)
        process_events()

        assert w.handle.view_scale == pytest.approx(before * 2)
        on_click.assert_not_called()

    def test_zoom_is_clamped(self, make_widget):
        w = make_widget([make_event("1", *BEIJING), make_event("2", *TIANJIN)])
        w._zoom_by(1e9)
        assert w.handle.view_scale == pytest.approx(zoom_to_view_scale(w.MAX_ZOOM))
        assert w.active_layer.cluster_count == 0
        w._zoom_by(1e-9)
        assert w.handle.view_scale == pytest.approx(zoom_to_view_scale(w.MIN_ZOOM))
        assert w.active_layer.cluster_count == 1

    def test_fit_to_view(self, make_widget):
        w = make_widget([make_event("1", *BEIJING), make_event("2", *SHANGHAI)])
        w.fit_to_view()
        scale = w.handle.view_scale
        assert zoom_to_view_scale(w.MIN_ZOOM) <= scale <= zoom_to_view_scale(w.MAX_ZOOM)
        assert all(isinstance(m, EventPointItem) for m in w.active_layer.markers)


class TestBackdrop:

    def test_offline_uses_embedded_outline(self, make_widget):
        w = make_widget()
        assert w.backdrop is not None
        assert w.backdrop.source == "fallback"
        assert w._backdrop_items

    def test_background_fetch_is_applied(self, make_widget, offline_config):
        remote = default_backdrop()
        remote.source = "remote"
        with patch("sentimap.gui.map_widget.load_backdrop", return_value=remote):
            w = make_widget(config=replace(offline_config, load_backdrop=True))
            for _ in range(50):
                if w.backdrop is not None:
                    break
                process_events(ms=10, rounds=1)
        assert w.backdrop is remote

    def test_stale_result_is_discarded(self, make_widget):
        w = make_widget()
        old_token = w.backdrop_token
        w._start_backdrop()
        assert w._apply_backdrop(old_token, default_backdrop()) is False

    def test_result_after_dispose_is_discarded(self, make_widget):
        w = make_widget()
        token = w.backdrop_token
        w.dispose()
        assert w._apply_backdrop(token, default_backdrop()) is False


class TestDispose:

    def test_double_dispose(self, make_widget):
        w = make_widget([make_event("1", *BEIJING)])
        handle = w.handle
        w.dispose()
        w.dispose()
        assert w.is_disposed
        assert handle.is_disposed
        assert not handle.has_resize_listener
        assert w.active_layer is None

    def test_updates_after_dispose_are_dropped(self, make_widget):
        w = make_widget()
        rebuilt = Mock()
        w.layer_rebuilt.connect(rebuilt)
        w.dispose()
        w.set_events([make_event("1", *BEIJING)])
        process_events()
        rebuilt.assert_not_called()

    def test_close_disposes(self, make_widget):
        w = make_widget()
        w.close()
        assert w.is_disposed

    def _mounted_in_window(self, offline_config):
        window = QtWidgets.QWidget()
        w = EventMapWidget([make_event("1", *BEIJING)], config=offline_config, parent=window)
        QtWidgets.QVBoxLayout(window).addWidget(w)
        window.resize(640, 400)
        window.show()
        process_events()
        assert w.handle is not None and w.handle.is_ready
        return window, w

    @staticmethod
    def _flush_deletes():
        QtCore.QCoreApplication.sendPostedEvents(None, QtCore.QEvent.DeferredDelete)
        process_events()

    def test_delete_without_close_releases_scene(self, qapp, offline_config):
        window, w = self._mounted_in_window(offline_config)
        handle = w.handle
        try:
            w.deleteLater()
            self._flush_deletes()
            assert handle.is_disposed and not handle.has_resize_listener
            # later resizes of the window no longer reach the dead scene
            window.resize(700, 420)
            process_events()
        finally:
            window.deleteLater()
            self._flush_deletes()

    def test_parent_deletion_releases_scene(self, qapp, offline_config):
        window, w = self._mounted_in_window(offline_config)
        handle = w.handle
        window.deleteLater()
        self._flush_deletes()
        assert handle.is_disposed and not handle.has_resize_listener
