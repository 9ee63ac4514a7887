"""
External Media Probes

Deep modules that hide platform tooling behind one small interface.
Each probe wraps exactly one way of asking the OS what is playing:

    MprisProbe        Linux media-session bus via playerctl
    WslBridgeProbe    WSL guest -> Windows host via powershell.exe
    AppleScriptProbe  macOS players and browser windows via osascript

Simple interface:
    probe.is_available() -> bool                     # cheap, never detects
    probe.detect(deadline) -> Optional[MediaRecord]  # never raises
    probe.query(deadline) -> Optional[MediaRecord]   # raises ProbeError

Probes hold no mutable state; the collaborators passed to __init__ are
only there so tests can replace the operating system.
"""

import base64
import functools
import json
import logging
import shutil
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .infra import Deadline, ProbeError, is_wsl, run_command
from .model import MediaRecord
from .title_parser import (
    clean_title,
    has_playing_marker,
    infer_media_kind,
    is_bare_app_name,
    mentions_media_site,
    normalize_player_name,
    normalize_source,
    parse_window_title,
)

logger = logging.getLogger(__name__)

Runner = Callable[[List[str], Deadline], str]
Which = Callable[[str], Optional[str]]


# =============================================================================
# PROBE INTERFACE
# =============================================================================

class Probe(ABC):
    """One strategy for detecting currently playing media."""

    name = "probe"

    @abstractmethod
    def is_available(self) -> bool:
        """Could this probe work here? Must not attempt detection."""

    @abstractmethod
    def query(self, deadline: Deadline) -> Optional[MediaRecord]:
        """Detect media. Raises ProbeError when the external tool fails."""

    def detect(self, deadline: Deadline) -> Optional[MediaRecord]:
        """Detect media, treating every tool failure as 'nothing playing'."""
        try:
            return self.query(deadline)
        except ProbeError as e:
            logger.debug(f"{self.name}: {e}")
            return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


# =============================================================================
# MPRIS - Linux media-session bus via playerctl
# =============================================================================

class MprisProbe(Probe):
    """Reads the active MPRIS player through the playerctl CLI (Linux only)."""

    name = "MPRIS/playerctl"
    BINARY = "playerctl"

    def __init__(
        self,
        runner: Runner = run_command,
        which: Which = shutil.which,
        platform: Optional[str] = None,
    ):
        self._run = runner
        self._which = which
        self._platform = platform or sys.platform

    def is_available(self) -> bool:
        return self._platform.startswith('linux') and self._which(self.BINARY) is not None

    def query(self, deadline: Deadline) -> Optional[MediaRecord]:
        title = self._metadata('title', deadline)
        if not title:
            return None

        artist = self._optional_metadata('artist', deadline)
        album = self._optional_metadata('album', deadline)
        source = self._active_player(deadline)

        return MediaRecord(
            title=title,
            artist=artist,
            album=album,
            source=source,
            kind=infer_media_kind(title, source),
        )

    def _metadata(self, key: str, deadline: Deadline) -> str:
        return self._run([self.BINARY, 'metadata', key], deadline).strip()

    def _optional_metadata(self, key: str, deadline: Deadline) -> str:
        try:
            return self._metadata(key, deadline)
        except ProbeError as e:
            logger.debug(f"{self.name}: no {key}: {e}")
            return ""

    def _active_player(self, deadline: Deadline) -> str:
        try:
            output = self._run([self.BINARY, '--list-all'], deadline)
        except ProbeError as e:
            logger.debug(f"{self.name}: player list unavailable: {e}")
            return "Unknown"
        players = [line.strip() for line in output.splitlines() if line.strip()]
        return normalize_player_name(players[0]) if players else "Unknown"


# =============================================================================
# WSL BRIDGE - Windows host window titles via powershell.exe
# =============================================================================

POWERSHELL_SCRIPT = Path(__file__).parent / "scripts" / "window_titles.ps1"

POWERSHELL_BANNER_MARKERS = (
    'Windows PowerShell',
    'Copyright (C) Microsoft Corporation',
    'Install the latest PowerShell',
    'https://aka.ms/PSWindows',
)


@functools.lru_cache(maxsize=None)
def load_script(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ProbeError(f"Missing script {path}: {e}")


def encode_powershell(script: str) -> str:
    """Base64 UTF-16LE, the format -EncodedCommand expects."""
    return base64.b64encode(script.encode('utf-16-le')).decode('ascii')


def strip_powershell_banner(output: str) -> str:
    """Drop banner, copyright and prompt lines that precede the JSON payload."""
    kept = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('PS '):
            continue
        if any(marker in stripped for marker in POWERSHELL_BANNER_MARKERS):
            continue
        kept.append(stripped)
    return "\n".join(kept).strip()


def last_json_line(output: str) -> str:
    """The last line that looks like a JSON object, else the last line."""
    lines = output.splitlines()
    for line in reversed(lines):
        if line.startswith("{"):
            return line
    return lines[-1] if lines else ""


def record_from_payload(payload: Dict[str, Any]) -> Optional[MediaRecord]:
    """Build a record from the host script's JSON object."""
    raw_title = str(payload.get('Title') or '').strip()
    if not raw_title or is_bare_app_name(raw_title):
        return None

    title = clean_title(raw_title)
    source = normalize_source(str(payload.get('Source') or ''))
    return MediaRecord(
        title=title,
        artist=str(payload.get('Artist') or '').strip(),
        album=str(payload.get('Album') or '').strip(),
        source=source,
        kind=infer_media_kind(title, source),
    )


class WslBridgeProbe(Probe):
    """Reads Windows window titles from inside WSL through powershell.exe."""

    name = "WSL2/Windows Media Session"
    BINARY = "powershell.exe"

    def __init__(
        self,
        runner: Runner = run_command,
        which: Which = shutil.which,
        wsl_check: Callable[[], bool] = is_wsl,
        script_path: Path = POWERSHELL_SCRIPT,
    ):
        self._run = runner
        self._which = which
        self._wsl_check = wsl_check
        self._script_path = script_path

    def is_available(self) -> bool:
        return self._wsl_check() and self._which(self.BINARY) is not None

    def query(self, deadline: Deadline) -> Optional[MediaRecord]:
        script = load_script(self._script_path)
        output = self._run(
            [self.BINARY, '-NoProfile', '-NonInteractive', '-EncodedCommand', encode_powershell(script)],
            deadline,
        )

        payload = last_json_line(strip_powershell_banner(output))
        if not payload:
            return None

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Invalid PowerShell JSON: {e}: {payload[:200]!r}")

        if not isinstance(data, dict):
            raise ProbeError(f"Unexpected PowerShell payload: {payload[:200]!r}")

        return record_from_payload(data)


# =============================================================================
# APPLESCRIPT - macOS players and browser windows via osascript
# =============================================================================

@dataclass(frozen=True)
class PlayerScript:
    """AppleScript vocabulary for one scriptable media player."""
    app: str
    source: str
    state: str = "player state as string"
    playing: str = "playing"
    title: str = "name of current track"
    artist: str = "artist of current track"
    album: str = "album of current track"


MAC_PLAYERS: Tuple[PlayerScript, ...] = (
    PlayerScript(app="Spotify", source="Spotify"),
    PlayerScript(app="Music", source="Apple Music"),
    PlayerScript(app="iTunes", source="iTunes"),
    PlayerScript(
        app="VLC", source="VLC",
        state="playing as string", playing="true",
        title="name of current item",
        artist="artist of current item",
        album="album of current item",
    ),
)

# System Events process names
MAC_BROWSERS: Tuple[str, ...] = (
    "Safari", "Google Chrome", "Microsoft Edge", "firefox", "Brave Browser", "Arc",
)

_WINDOW_TITLES_SCRIPT = """tell application "System Events"
    if exists (process "{process}") then
        set AppleScript's text item delimiters to linefeed
        return (name of every window of process "{process}") as text
    end if
end tell"""


class AppleScriptProbe(Probe):
    """
    Two phases, in order:
    1. Scriptable players, in priority order, that report "playing".
    2. Browser window titles, marker-bearing windows first.
    """

    name = "macOS AppleScript"
    BINARY = "osascript"
    DEFAULT_PATH = Path("/usr/bin/osascript")

    def __init__(
        self,
        runner: Runner = run_command,
        which: Which = shutil.which,
        platform: Optional[str] = None,
        players: Tuple[PlayerScript, ...] = MAC_PLAYERS,
        browsers: Tuple[str, ...] = MAC_BROWSERS,
    ):
        self._run = runner
        self._which = which
        self._platform = platform or sys.platform
        self._players = players
        self._browsers = browsers

    def is_available(self) -> bool:
        if self._platform != 'darwin':
            return False
        return self._which(self.BINARY) is not None or self.DEFAULT_PATH.exists()

    def query(self, deadline: Deadline) -> Optional[MediaRecord]:
        record = self._query_players(deadline)
        if record is not None:
            return record
        return self._query_browsers(deadline)

    # =========================================================================
    # PHASE 1 - scriptable players
    # =========================================================================

    def _query_players(self, deadline: Deadline) -> Optional[MediaRecord]:
        for player in self._players:
            try:
                if not self._is_playing(player, deadline):
                    continue
            except ProbeError as e:
                logger.debug(f"{self.name}: {player.app} state unavailable: {e}")
                continue

            # One call per field so a missing field cannot sink the others
            title = self._field(player, player.title, deadline)
            if not title:
                continue
            return MediaRecord(
                title=title,
                artist=self._field(player, player.artist, deadline),
                album=self._field(player, player.album, deadline),
                source=player.source,
                kind=infer_media_kind(title, player.source),
            )
        return None

    def _is_playing(self, player: PlayerScript, deadline: Deadline) -> bool:
        running = self._osascript(f'application "{player.app}" is running', deadline)
        if running.lower() != 'true':
            return False
        state = self._osascript(f'tell application "{player.app}" to {player.state}', deadline)
        return state.lower() == player.playing

    def _field(self, player: PlayerScript, expression: str, deadline: Deadline) -> str:
        try:
            value = self._osascript(f'tell application "{player.app}" to {expression}', deadline)
        except ProbeError as e:
            logger.debug(f"{self.name}: {player.app} {expression!r} failed: {e}")
            return ""
        return "" if value == "missing value" else value

    # =========================================================================
    # PHASE 2 - browser window titles
    # =========================================================================

    def _query_browsers(self, deadline: Deadline) -> Optional[MediaRecord]:
        marked: List[Tuple[str, str]] = []
        mentioned: List[Tuple[str, str]] = []

        for browser in self._browsers:
            for title in self._window_titles(browser, deadline):
                if has_playing_marker(title):
                    marked.append((title, browser))
                elif mentions_media_site(title):
                    mentioned.append((title, browser))

        for title, browser in marked + mentioned:
            record = parse_window_title(title, app_hint=browser)
            if record is not None:
                return record
        return None

    def _window_titles(self, process: str, deadline: Deadline) -> List[str]:
        try:
            output = self._osascript(_WINDOW_TITLES_SCRIPT.format(process=process), deadline)
        except ProbeError as e:
            logger.debug(f"{self.name}: {process} windows unavailable: {e}")
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def _osascript(self, script: str, deadline: Deadline) -> str:
        return self._run([self.BINARY, '-e', script], deadline).strip()
