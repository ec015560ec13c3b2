# tests/test_media.py
import math
from types import SimpleNamespace

import pytest

from subplay.errors import FullscreenDenied
from subplay.media import MediaHandle, MpvMediaHandle
from tests.fakes import FakeMpv


class StubbornMpv(FakeMpv):
    """Rejects every property write, like a player that is shutting down."""

    def __init__(self):
        super().__init__()
        self._locked = True

    def __setattr__(self, name, value):
        if name in ("fullscreen", "speed", "volume") and self.__dict__.get("_locked"):
            raise RuntimeError(f"{name} unavailable")
        super().__setattr__(name, value)

    def command(self, *args):
        raise SystemError("mpv core shut down")


@pytest.fixture
def mpv_player():
    return FakeMpv()


@pytest.fixture
def handle(qcore_app, mpv_player):
    return MpvMediaHandle(player=mpv_player)


def _deliver(qcore_app):
    qcore_app.processEvents()


def test_observes_properties_and_events(handle, mpv_player):
    assert set(mpv_player.observers) == {"duration", "time-pos", "pause", "speed", "volume"}
    assert len(mpv_player.event_callbacks) == 1


def test_duration_and_position_are_queued_in_ms(handle, mpv_player, qcore_app, recorder):
    handle.duration_known.connect(recorder.slot("duration"))
    handle.position_changed.connect(recorder.slot("position"))

    mpv_player.fire("duration", 125.5)
    mpv_player.fire("time-pos", 3.25)
    assert recorder["duration"] == []
    _deliver(qcore_app)

    assert recorder["duration"] == [125_500.0]
    assert recorder["position"] == [3250.0]
    assert handle.duration_ms == 125_500.0
    assert handle.position_ms == 3250.0


def test_duration_reported_once_and_unknown_values_ignored(handle, mpv_player, qcore_app, recorder):
    handle.duration_known.connect(recorder.slot("duration"))
    mpv_player.fire("duration", None)
    mpv_player.fire("duration", 10.0)
    mpv_player.fire("duration", 10.0)
    mpv_player.fire("time-pos", None)
    _deliver(qcore_app)
    assert recorder["duration"] == [10_000.0]


def test_pause_property_drives_play_signals(handle, mpv_player, qcore_app, recorder):
    handle.play_started.connect(recorder.slot("play"))
    handle.paused.connect(recorder.slot("pause"))
    assert not handle.playing

    mpv_player.fire("pause", False)
    _deliver(qcore_app)
    assert handle.playing
    mpv_player.fire("pause", False)
    mpv_player.fire("pause", True)
    _deliver(qcore_app)
    assert not handle.playing
    assert len(recorder["play"]) == 1
    assert len(recorder["pause"]) == 1


def test_end_file_event(handle, mpv_player, qcore_app, recorder):
    handle.ended.connect(recorder.slot("ended"))
    mpv_player.fire("duration", 30.0)
    _deliver(qcore_app)

    mpv_player.fire_event(SimpleNamespace(event_id=SimpleNamespace(name="END_FILE")))
    mpv_player.fire_event(SimpleNamespace(name=b"start-file"))
    mpv_player.fire_event(object())
    _deliver(qcore_app)
    assert len(recorder["ended"]) == 1
    assert math.isnan(handle.duration_ms)


def test_writes_go_to_mpv(handle, mpv_player, qcore_app):
    handle.rate = 1.5
    handle.volume = 130
    handle.position_ms = 42_000
    handle.play()
    handle.set_fullscreen(True)

    assert mpv_player.speed == 1.5
    assert handle.rate == 1.5
    assert mpv_player.volume == 100
    assert handle.volume == 100
    assert mpv_player.commands == [("seek", 42.0, "absolute")]
    assert mpv_player.pause is False
    assert mpv_player.fullscreen is True


def test_speed_and_volume_follow_mpv(handle, mpv_player, qcore_app):
    mpv_player.fire("speed", 0.75)
    mpv_player.fire("volume", 33.4)
    _deliver(qcore_app)
    assert handle.rate == 0.75
    assert handle.volume == 33


def test_load_resets_duration(handle, mpv_player, qcore_app):
    mpv_player.fire("duration", 30.0)
    _deliver(qcore_app)
    assert handle.load("/media/clip.mkv")
    assert math.isnan(handle.duration_ms)
    assert mpv_player.commands[-1] == ("loadfile", "/media/clip.mkv", "replace")


def test_rejected_writes_are_logged_not_raised(qcore_app, caplog):
    player = StubbornMpv()
    handle = MpvMediaHandle(player=player)
    handle.rate = 2.0
    handle.volume = 10
    assert handle.rate == 1.0
    assert handle.volume == 100
    assert handle.load("clip.mkv") is False
    with pytest.raises(FullscreenDenied):
        handle.set_fullscreen(True)
    assert "mpv rejected speed" in caplog.text


def test_base_handle_has_no_fullscreen(qcore_app):
    with pytest.raises(FullscreenDenied):
        MediaHandle().set_fullscreen(True)


def test_clock_on_mpv_handle(handle, mpv_player, qcore_app, scheduler):
    from subplay.clock import PlaybackClock, PlayerState

    clock = PlaybackClock(scheduler=scheduler)
    clock.attach(handle)
    mpv_player.fire("duration", 60.0)
    mpv_player.fire("pause", False)
    _deliver(qcore_app)
    assert clock.state == PlayerState.PLAYING

    clock.seek(30_000)
    scheduler.advance(0)
    assert mpv_player.commands[-1] == ("seek", 30.0, "absolute")
