"""
Tests for alert delivery and the shared cooldown
"""

import sys
import types

import pytest

from brrrr.alerts import AlertCoordinator, SoundPlayer
from brrrr.config import AlertConfig, AlertMode


class FakeNotifier:
    def __init__(self):
        self.calls = []

    def notify(self, title, message, timeout_seconds=3):
        self.calls.append((title, message, timeout_seconds))
        return True


class FakeSoundPlayer:
    def __init__(self, log=None):
        self.calls = []
        self.log = log

    def play(self, sound_path="", volume=1.0):
        self.calls.append((sound_path, volume))
        if self.log is not None:
            self.log.append("sound")
        return True


def _coordinator(**overrides):
    notifier = FakeNotifier()
    sound = FakeSoundPlayer()
    coordinator = AlertCoordinator(AlertConfig(**overrides), notifier=notifier, sound_player=sound)
    return coordinator, notifier, sound


class TestCooldown:
    def test_cooldown_blocks_repeat_alerts(self):
        coordinator, _, sound = _coordinator()

        assert coordinator.trigger_if_allowed(now=0.0)
        assert not coordinator.trigger_if_allowed(now=1.0)
        assert coordinator.cooldown_remaining(now=1.0) == pytest.approx(2.0)
        assert coordinator.trigger_if_allowed(now=3.0)
        assert len(sound.calls) == 2

    def test_ignore_cooldown(self):
        coordinator, _, sound = _coordinator()

        coordinator.trigger_if_allowed(now=0.0)
        assert coordinator.trigger_if_allowed(ignore_cooldown=True, now=0.5)
        # the forced alert restarts the cooldown
        assert coordinator.is_in_cooldown(now=3.0)
        assert len(sound.calls) == 2

    def test_reset_cooldown(self):
        coordinator, _, _ = _coordinator()

        coordinator.trigger_if_allowed(now=0.0)
        coordinator.reset_cooldown()

        assert not coordinator.is_in_cooldown(now=0.1)
        assert coordinator.cooldown_remaining(now=0.1) == 0.0

    def test_zero_cooldown(self):
        coordinator, _, sound = _coordinator(cooldown_seconds=0)

        assert coordinator.trigger_if_allowed(now=0.0)
        assert coordinator.trigger_if_allowed(now=0.0)
        assert len(sound.calls) == 2


class TestModes:
    def test_sound_only_is_default(self):
        coordinator, notifier, sound = _coordinator()

        coordinator.trigger_if_allowed(now=0.0)

        assert sound.calls == [("", 1.0)]
        assert notifier.calls == []

    def test_screen_only(self):
        coordinator, notifier, sound = _coordinator(mode=AlertMode.SCREEN_ONLY, message="Hands down")

        coordinator.trigger_if_allowed(now=0.0)

        assert sound.calls == []
        assert notifier.calls == [("Brrrr", "Hands down", 3)]

    def test_sound_plays_before_notification(self):
        order = []
        notifier = FakeNotifier()
        notifier.notify = lambda *args, **kwargs: order.append("screen")
        coordinator = AlertCoordinator(
            AlertConfig(mode=AlertMode.SOUND_AND_SCREEN), notifier=notifier, sound_player=FakeSoundPlayer(order)
        )

        coordinator.trigger_if_allowed(now=0.0)

        assert order == ["sound", "screen"]


def test_sound_player_beeps_without_file(capsys):
    assert SoundPlayer().play("")
    assert capsys.readouterr().out == "\a"


def test_sound_player_beeps_for_missing_file(tmp_path, capsys, caplog):
    assert SoundPlayer().play(str(tmp_path / "missing.wav"))
    assert capsys.readouterr().out == "\a"
    assert "Alert sound not found" in caplog.text


class FakeProcess:
    def __init__(self, args, finished=True):
        self.args = args
        self.finished = finished

    def poll(self):
        return 0 if self.finished else None


def test_sound_player_collects_finished_players(tmp_path, monkeypatch):
    sound_file = tmp_path / "alert.wav"
    sound_file.write_bytes(b"RIFF")
    started = []

    def fake_popen(args):
        process = FakeProcess(args, finished=len(started) == 0)
        started.append(process)
        return process

    monkeypatch.setattr("brrrr.alerts.subprocess.Popen", fake_popen)
    player = SoundPlayer()
    player.system = "Linux"

    assert player.play(str(sound_file), volume=0.5)
    assert player.play(str(sound_file), volume=0.5)
    assert player.play(str(sound_file), volume=0.5)

    assert started[0].args[0] == "paplay"
    assert started[0].args[1] == "--volume=32768"
    # the first player had exited and is dropped, the still-running ones are kept
    assert player._processes == started[1:]


def test_sound_player_beeps_when_windows_playback_fails(tmp_path, monkeypatch, capsys, caplog):
    sound_file = tmp_path / "alert.wav"
    sound_file.write_bytes(b"RIFF")

    def broken_play(*args):
        raise RuntimeError("Failed to play sound")

    fake_winsound = types.SimpleNamespace(SND_FILENAME=0x20000, SND_ASYNC=0x1, PlaySound=broken_play)
    monkeypatch.setitem(sys.modules, "winsound", fake_winsound)
    player = SoundPlayer()
    player.system = "Windows"

    assert player.play(str(sound_file))
    assert capsys.readouterr().out == "\a"
    assert "Could not play alert sound" in caplog.text
