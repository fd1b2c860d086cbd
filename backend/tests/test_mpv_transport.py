"""Tests for the mpv-backed deck, driven through a scripted mpv player"""
from types import ModuleType, SimpleNamespace
import importlib
import logging
import sys

import pytest

from app.player.store import PlayerStore
from app.player.waveform import WaveformView


class FakeMpv:
    """Records what the deck asks of mpv; tests fire property changes with fire()"""

    def __init__(self, **options):
        self.options = options
        self.observers = {}
        self.pause = False
        self.volume = 100
        self.duration = None
        self.time_pos = None
        self.played = []
        self.seeks = []
        self.terminated = False
        self.fail_seek = False
        self.fail_terminate = False

    def observe_property(self, name, handler):
        self.observers[name] = handler

    def fire(self, name, value):
        self.observers[name](name, value)

    def play(self, url):
        self.played.append(url)

    def seek(self, seconds, reference="relative"):
        if self.fail_seek:
            raise RuntimeError("seek failed")
        self.seeks.append((seconds, reference))

    def terminate(self):
        self.terminated = True
        if self.fail_terminate:
            raise RuntimeError("mpv core already gone")


@pytest.fixture
def mpv_transport(monkeypatch):
    """The mpv_transport module imported against a scripted mpv module"""
    stub = ModuleType("mpv")
    stub.MPV = FakeMpv
    monkeypatch.setitem(sys.modules, "mpv", stub)
    monkeypatch.delitem(sys.modules, "app.player.mpv_transport", raising=False)
    module = importlib.import_module("app.player.mpv_transport")
    yield module
    sys.modules.pop("app.player.mpv_transport", None)


@pytest.fixture
def clock(mpv_transport, monkeypatch):
    now = SimpleNamespace(value=1000.0)
    monkeypatch.setattr(mpv_transport, "time", SimpleNamespace(time=lambda: now.value))
    return now


@pytest.fixture
def player():
    return FakeMpv()


@pytest.fixture
def deck(mpv_transport, player):
    deck = mpv_transport.MpvTransport(player, peak_extractor=lambda url: [[0.3]])
    deck.load("https://storage.test/version-1.mp3")
    return deck


def record(deck, event):
    seen = []
    deck.on(event, lambda *args: seen.append(args))
    return seen


class TestConstruction:
    """Building and loading the deck"""

    def test_default_player_is_audio_only(self, mpv_transport):
        deck = mpv_transport.MpvTransport()
        assert deck.player.options["vo"] == "null"
        assert set(deck.player.observers) == {"duration", "time-pos", "pause", "eof-reached"}

    def test_load_starts_paused(self, deck, player):
        assert player.pause is True
        assert player.played == ["https://storage.test/version-1.mp3"]
        assert deck.is_playing() is False


class TestReady:
    """ready fires once per load, on the first known duration"""

    def test_ready_once(self, deck, player):
        seen = record(deck, "ready")

        player.fire("duration", None)
        assert seen == []

        player.fire("duration", 200.0)
        player.fire("duration", 201.0)
        assert seen == [(200.0,)]

    def test_reload_arms_ready_again(self, deck, player):
        seen = record(deck, "ready")
        player.fire("duration", 200.0)

        deck.load("https://storage.test/version-2.mp3")
        player.fire("duration", 90.0)

        assert seen == [(200.0,), (90.0,)]


class TestPlayPause:
    """mpv's pause property becomes play and pause events"""

    def test_ignored_before_ready(self, deck, player):
        plays = record(deck, "play")
        pauses = record(deck, "pause")

        player.fire("pause", False)
        player.fire("pause", True)

        assert plays == []
        assert pauses == []

    def test_mapped_after_ready(self, deck, player):
        plays = record(deck, "play")
        pauses = record(deck, "pause")
        player.fire("duration", 200.0)

        player.fire("pause", None)
        player.fire("pause", False)
        player.fire("pause", True)

        assert plays == [()]
        assert pauses == [()]

    def test_play_and_pause_drive_property(self, deck, player):
        player.fire("duration", 200.0)
        deck.play()
        assert player.pause is False
        assert deck.is_playing() is True
        deck.pause()
        assert player.pause is True

    def test_eof_emits_finish(self, deck, player):
        seen = record(deck, "finish")
        player.fire("eof-reached", False)
        player.fire("eof-reached", True)
        assert seen == [()]


class TestTimeUpdates:
    """time-pos is throttled to four updates a second"""

    def test_throttled(self, deck, player, clock):
        seen = record(deck, "timeupdate")

        player.fire("time-pos", 1.0)
        clock.value += 0.1
        player.fire("time-pos", 1.1)
        clock.value += 0.2
        player.fire("time-pos", 1.3)
        player.fire("time-pos", None)

        assert seen == [(1.0,), (1.3,)]


class TestControls:
    """Volume and seeking"""

    @pytest.mark.parametrize("level,expected", [(0.5, 50), (0, 0), (2.0, 100), (-1.0, 0)])
    def test_volume_scaled(self, deck, player, level, expected):
        deck.set_volume(level)
        assert player.volume == expected

    def test_seek_to_clamps(self, deck, player):
        player.duration = 200.0

        deck.seek_to(0.25)
        deck.seek_to(1.5)
        deck.seek_to(-0.5)

        assert player.seeks == [(50.0, "absolute"), (200.0, "absolute"), (0.0, "absolute")]

    def test_seek_to_without_duration(self, deck, player):
        deck.seek_to(0.5)
        assert player.seeks == []

    def test_set_time_clamps_negative(self, deck, player):
        deck.set_time(-3.0)
        assert player.seeks == [(0.0, "absolute")]

    def test_seek_failure_emits_error(self, deck, player):
        errors = record(deck, "error")
        player.fail_seek = True

        deck.set_time(10.0)

        assert len(errors) == 1
        assert isinstance(errors[0][0], RuntimeError)

    def test_position_reads_from_player(self, deck, player):
        assert deck.get_current_time() == 0.0
        assert deck.get_duration() == 0.0
        player.time_pos = 12.5
        player.duration = 200.0
        assert deck.get_current_time() == 12.5
        assert deck.get_duration() == 200.0


class TestDestroy:
    """Destroying the deck terminates mpv"""

    def test_terminates_and_drops_handlers(self, deck, player):
        record(deck, "ready")

        deck.destroy()

        assert player.terminated is True
        assert deck.destroyed is True
        assert deck.listener_count() == 0

    def test_terminate_error_logged(self, deck, player, caplog):
        player.fail_terminate = True

        with caplog.at_level(logging.WARNING):
            deck.destroy()

        assert "Error terminating mpv" in caplog.text


class TestExportPeaks:
    """Peaks come from the seed or from decoding the loaded URL"""

    def test_seeded_peaks_skip_decoding(self, mpv_transport, player):
        decoded = []
        deck = mpv_transport.MpvTransport(player, peak_extractor=lambda url: decoded.append(url))
        deck.load("https://storage.test/version-1.mp3", [[0.2, 0.4]])

        assert deck.export_peaks() == [[0.2, 0.4]]
        assert decoded == []

    def test_decodes_once(self, mpv_transport, player):
        decoded = []

        def extractor(url):
            decoded.append(url)
            return [[0.1, -0.4]]

        deck = mpv_transport.MpvTransport(player, peak_extractor=extractor)
        deck.load("https://storage.test/version-1.mp3")

        assert deck.export_peaks() == [[0.1, -0.4]]
        assert deck.export_peaks() == [[0.1, -0.4]]
        assert decoded == ["https://storage.test/version-1.mp3"]

    def test_failed_decode_not_retried(self, mpv_transport, player):
        attempts = []

        def extractor(url):
            attempts.append(url)
            raise RuntimeError("undecodable")

        deck = mpv_transport.MpvTransport(player, peak_extractor=extractor)
        deck.load("https://storage.test/version-1.mp3")

        with pytest.raises(RuntimeError):
            deck.export_peaks()
        assert deck.export_peaks() is None
        assert len(attempts) == 1

    def test_nothing_loaded(self, mpv_transport, player):
        deck = mpv_transport.MpvTransport(player, peak_extractor=lambda url: [[1.0]])
        assert deck.export_peaks() is None


class TestPeakCacheFill:
    """The first mpv deck to get ready fills the shared peak cache"""

    def test_first_decode_fills_cache(self, mpv_transport, demo_track, make_version):
        decoded = []
        players = []

        def extractor(url):
            decoded.append(url)
            return [[0.1, -0.4, 0.2]]

        def factory():
            player = FakeMpv()
            players.append(player)
            return mpv_transport.MpvTransport(player, peak_extractor=extractor)

        store = PlayerStore(transport_factory=factory)
        version = make_version(1)

        first = WaveformView(store, demo_track, version, transport_factory=factory)
        first.mount()
        assert version.id not in store.peaks
        players[0].fire("duration", 180.0)

        assert store.peaks.get(version.id) == [[0.1, -0.4, 0.2]]
        assert players[0].volume == 0

        second = WaveformView(store, demo_track, version, transport_factory=factory)
        second.mount()
        players[1].fire("duration", 180.0)

        assert second.transport.export_peaks() == [[0.1, -0.4, 0.2]]
        assert decoded == [version.audio_url]

        first.unmount()
        second.unmount()
        assert all(player.terminated for player in players)

    def test_decode_failure_leaves_cache_empty(self, mpv_transport, demo_track, make_version, caplog):
        def extractor(url):
            raise RuntimeError("undecodable")

        player = FakeMpv()
        store = PlayerStore(transport_factory=lambda: None)
        version = make_version(1)
        view = WaveformView(store, demo_track, version,
                            transport_factory=lambda: mpv_transport.MpvTransport(player, peak_extractor=extractor))
        view.mount()

        with caplog.at_level(logging.ERROR):
            player.fire("duration", 180.0)

        assert version.id not in store.peaks
        assert view.is_loading is False
        assert "Failed to export peaks" in caplog.text
        view.unmount()
