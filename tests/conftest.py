"""
Pytest configuration and fixtures for interactive_commit tests.

Tests never start real media tools: probes get a FakeRunner in place of
run_command, and the coordinator gets scripted probes.
"""

import threading
from typing import List, Optional

import pytest

from interactive_commit.adapters import Probe
from interactive_commit.infra import Deadline, ProbeError
from interactive_commit.model import MediaKind, MediaRecord


class FakeRunner:
    """
    Scripted stand-in for run_command.

    Each response is (needle, result): the first needle found in the joined
    command line wins. A result that is an exception is raised. Commands
    that match nothing fail like a missing tool would.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: List[List[str]] = []

    def add(self, needle, result):
        self.responses.append((needle, result))
        return self

    def __call__(self, args, deadline):
        self.calls.append(list(args))
        command_line = " ".join(args)
        for needle, result in self.responses:
            if needle in command_line:
                if isinstance(result, BaseException):
                    raise result
                return result
        raise ProbeError(f"{args[0]} exit 1: unscripted command")


class StaticProbe(Probe):
    """Probe that returns a fixed record (or raises a fixed error)."""

    def __init__(self, name, record=None, available=True, error=None):
        self.name = name
        self._record = record
        self._available = available
        self._error = error
        self.deadlines: List[Deadline] = []

    def is_available(self):
        return self._available

    def query(self, deadline):
        self.deadlines.append(deadline)
        if self._error is not None:
            raise self._error
        return self._record

    @property
    def calls(self):
        return len(self.deadlines)


class BlockingProbe(Probe):
    """Probe that hangs until release() is called."""

    def __init__(self, name="blocking"):
        self.name = name
        self._released = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def is_available(self):
        return True

    def query(self, deadline):
        self.thread = threading.current_thread()
        self._released.wait(10.0)
        return None

    def release(self):
        self._released.set()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def deadline():
    return Deadline.after(5.0)


@pytest.fixture
def spotify_record():
    return MediaRecord(
        title="Hamnitishi",
        artist="E-Sir",
        source="Spotify",
        kind=MediaKind.SONG,
    )


@pytest.fixture
def youtube_record():
    return MediaRecord(
        title="Never Gonna Give You Up",
        source="YouTube",
        kind=MediaKind.VIDEO,
    )


@pytest.fixture
def blocking_probe():
    probe = BlockingProbe()
    yield probe
    probe.release()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's real config and environment out of every test."""
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    for name in ("INTERACTIVE_COMMIT_CONFIG", "INTERACTIVE_COMMIT_ENABLED", "INTERACTIVE_COMMIT_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    return config_home
