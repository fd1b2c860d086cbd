"""Tests for the global transport bar"""
import pytest

from app.player.global_player import GlobalPlayer
from app.player.store import PlayerStore


@pytest.fixture
def store(transport_factory):
    return PlayerStore(transport_factory=transport_factory)


@pytest.fixture
def player(store):
    player = GlobalPlayer(store)
    yield player
    player.close()


class TestVisibility:
    """The bar appears once something was played"""

    def test_hidden_initially(self, player):
        assert player.is_visible is False
        assert player.status_line() == ""

    def test_visible_after_load(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        assert player.is_visible is True

    def test_hidden_after_clear(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        store.clear_player()
        assert player.is_visible is False


class TestReady:
    """Deck readiness flows into the store"""

    def test_ready_sets_duration_and_auto_plays_once(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1), auto_play=True)
        transport = store.transport

        transport.emit("ready", 200.0)

        assert store.is_loading is False
        assert store.duration == 200.0
        assert store.is_playing is True
        assert store.should_auto_play is False
        assert transport.calls.count("play") == 1

        transport.pause()
        transport.emit("ready", 200.0)
        assert transport.calls.count("play") == 1
        assert store.is_playing is False

    def test_ready_without_auto_play(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        store.transport.emit("ready", 200.0)
        assert store.is_playing is False
        assert "play" not in store.transport.calls

    def test_ready_emitted_during_load_is_not_lost(self, ready_on_load_factory, demo_track, make_version):
        store = PlayerStore(transport_factory=ready_on_load_factory)
        player = GlobalPlayer(store)

        store.load_version(demo_track, make_version(1), auto_play=True)

        assert store.is_loading is False
        assert store.duration == 180.0
        assert store.is_playing is True
        assert store.should_auto_play is False
        assert store.transport.calls == ["load", "play"]
        player.close()

    def test_time_updates_and_finish(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1), auto_play=True)
        transport = store.transport
        transport.emit("ready", 200.0)

        transport.emit("timeupdate", 45.0)
        assert store.current_time == 45.0

        transport.emit("finish")
        assert store.is_playing is False

    def test_rebinds_after_switch(self, player, store, transport_factory, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        store.load_version(demo_track, make_version(2))
        second = store.transport

        second.emit("ready", 120.0)
        assert store.duration == 120.0
        assert transport_factory.created[0].listener_count() == 0


class TestControls:
    """Bar controls act on the deck"""

    def test_play_pause_and_seek(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        transport = store.transport
        transport.duration = 200.0
        transport.emit("ready", 200.0)

        player.play_pause()
        assert store.is_playing is True
        player.play_pause()
        assert store.is_playing is False

        player.seek(50)
        assert transport.current_time == 100.0
        player.seek(150)
        assert transport.current_time == 200.0

    def test_progress_and_status_line(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(2))
        store.transport.emit("ready", 200.0)
        store.transport.emit("timeupdate", 45.0)

        assert player.progress_percent == 22.5
        assert player.status_line() == "Demo v2 0:45 / 3:20"

    def test_progress_without_duration(self, player):
        assert player.progress_percent == 0.0

    def test_close_stops_updates(self, player, store, demo_track, make_version):
        store.load_version(demo_track, make_version(1))
        transport = store.transport
        player.close()

        transport.emit("timeupdate", 30.0)
        assert store.current_time == 0.0
