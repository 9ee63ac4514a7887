"""
Tests for the media probes.

Every external tool is replaced by a FakeRunner, so these run anywhere.
"""

import base64
import re

import pytest

from conftest import FakeRunner
from interactive_commit.adapters import (
    POWERSHELL_SCRIPT,
    AppleScriptProbe,
    MprisProbe,
    WslBridgeProbe,
    record_from_payload,
    strip_powershell_banner,
)
from interactive_commit.infra import ProbeError, ProbeTimeout
from interactive_commit.model import MediaKind
from interactive_commit.title_parser import BARE_APP_NAMES

POWERSHELL_BANNER = (
    "Windows PowerShell\r\n"
    "Copyright (C) Microsoft Corporation. All rights reserved.\r\n"
    "\r\n"
    "Install the latest PowerShell for new features and improvements! https://aka.ms/PSWindows\r\n"
    "\r\n"
)

SPOTIFY_JSON = '{"Title":"Hamnitishi","Artist":"E-Sir","Source":"Spotify","Album":""}'


def found(path):
    return lambda name: path


def missing(name):
    return None


# =============================================================================
# MPRIS
# =============================================================================

class TestMprisProbe:
    """playerctl-backed probe."""

    def test_available_on_linux_with_playerctl(self):
        probe = MprisProbe(which=found("/usr/bin/playerctl"), platform="linux")
        assert probe.is_available()

    def test_unavailable_without_playerctl(self):
        assert not MprisProbe(which=missing, platform="linux").is_available()

    def test_unavailable_off_linux(self):
        assert not MprisProbe(which=found("/usr/bin/playerctl"), platform="darwin").is_available()

    def test_full_metadata(self, runner, deadline):
        runner.add("metadata title", "Suzanna\n")
        runner.add("metadata artist", "Sauti Sol\n")
        runner.add("metadata album", "Mwanzo\n")
        runner.add("--list-all", "spotify\nchromium.instance12\n")

        record = MprisProbe(runner=runner, platform="linux").query(deadline)

        assert record.title == "Suzanna"
        assert record.artist == "Sauti Sol"
        assert record.album == "Mwanzo"
        assert record.source == "Spotify"
        assert record.kind == MediaKind.SONG

    def test_empty_title_means_nothing_playing(self, runner, deadline):
        runner.add("metadata title", "\n")
        assert MprisProbe(runner=runner, platform="linux").query(deadline) is None

    def test_missing_artist_and_album_degrade_to_empty(self, runner, deadline):
        runner.add("metadata title", "Some Stream\n")
        runner.add("--list-all", "chromium.instance42\n")

        record = MprisProbe(runner=runner, platform="linux").query(deadline)

        assert record.title == "Some Stream"
        assert record.artist == ""
        assert record.album == ""
        assert record.source == "Chromium"
        assert record.kind == MediaKind.VIDEO

    def test_unknown_player(self, runner, deadline):
        runner.add("metadata title", "Suzanna\n")
        record = MprisProbe(runner=runner, platform="linux").query(deadline)
        assert record.source == "Unknown"

    def test_no_players_raises_from_query(self, runner, deadline):
        runner.add("metadata title", ProbeError("playerctl exit 1: No players found"))
        probe = MprisProbe(runner=runner, platform="linux")
        with pytest.raises(ProbeError):
            probe.query(deadline)

    def test_detect_downgrades_errors(self, runner, deadline):
        runner.add("metadata title", ProbeTimeout("playerctl timed out after 3.0s"))
        assert MprisProbe(runner=runner, platform="linux").detect(deadline) is None


# =============================================================================
# WSL BRIDGE
# =============================================================================

class TestPowerShellOutput:
    """Banner stripping and payload conversion."""

    def test_strip_banner(self):
        output = POWERSHELL_BANNER + "PS C:\\Users\\dev> \r\n" + SPOTIFY_JSON + "\r\n"
        assert strip_powershell_banner(output) == SPOTIFY_JSON

    def test_strip_banner_without_payload(self):
        assert strip_powershell_banner(POWERSHELL_BANNER) == ""

    def test_payload_normalizes_source_and_cleans_title(self):
        record = record_from_payload({"Title": "Lofi Girl (Live)", "Artist": "", "Source": "msedge.exe"})
        assert record.title == "Lofi Girl"
        assert record.source == "Microsoft Edge"
        assert record.kind == MediaKind.VIDEO

    @pytest.mark.parametrize("payload", [{}, {"Title": ""}, {"Title": "Spotify Premium"}])
    def test_payload_without_media(self, payload):
        assert record_from_payload(payload) is None


class TestHostScript:
    """The bundled window_titles.ps1 mirrors the parser's rules."""

    @pytest.fixture
    def script(self):
        return POWERSHELL_SCRIPT.read_text(encoding="utf-8")

    def test_bare_names_are_skipped_not_emitted(self, script):
        emit = script[script.index("function Emit"):script.index("try {")]
        assert "$BareNames -contains" in emit
        assert emit.index("return") < emit.index("exit 0")

    def test_bare_names_match_parser(self, script):
        listing = script[script.index("$BareNames = @("):script.index(")", script.index("$BareNames = @("))]
        names = re.findall(r"'([^']+)'", listing)
        assert names
        assert set(names) <= BARE_APP_NAMES

    def test_browser_rules_follow_parser_order(self, script):
        sources = ["'YouTube Music'", "'YouTube'", "'SoundCloud'", "'Spotify'"]
        browser_section = script[script.index("$browsers = "):]
        positions = [browser_section.index(f"{source}\n") for source in sources]
        assert positions == sorted(positions)


class TestWslBridgeProbe:
    """powershell.exe-backed probe."""

    def test_available_inside_wsl(self):
        probe = WslBridgeProbe(which=found("/mnt/c/Windows/powershell.exe"), wsl_check=lambda: True)
        assert probe.is_available()

    def test_unavailable_outside_wsl(self):
        probe = WslBridgeProbe(which=found("/mnt/c/Windows/powershell.exe"), wsl_check=lambda: False)
        assert not probe.is_available()

    def test_unavailable_without_powershell(self):
        assert not WslBridgeProbe(which=missing, wsl_check=lambda: True).is_available()

    def test_bundled_script_exists(self):
        assert POWERSHELL_SCRIPT.is_file()

    def test_sends_encoded_script(self, runner, deadline):
        runner.add("powershell.exe", SPOTIFY_JSON)
        WslBridgeProbe(runner=runner).query(deadline)

        args = runner.calls[0]
        assert args[:4] == ["powershell.exe", "-NoProfile", "-NonInteractive", "-EncodedCommand"]
        script = base64.b64decode(args[4]).decode("utf-16-le")
        assert "Get-Process" in script
        assert "ConvertTo-Json" in script

    def test_parses_payload_after_banner(self, runner, deadline):
        runner.add("powershell.exe", POWERSHELL_BANNER + SPOTIFY_JSON + "\r\n")

        record = WslBridgeProbe(runner=runner).query(deadline)

        assert record.title == "Hamnitishi"
        assert record.artist == "E-Sir"
        assert record.source == "Spotify"
        assert record.kind == MediaKind.SONG

    def test_last_json_line_wins_over_host_warnings(self, runner, deadline):
        runner.add("powershell.exe", "WARNING: profile skipped\r\n" + SPOTIFY_JSON + "\r\n")

        record = WslBridgeProbe(runner=runner).query(deadline)

        assert record.title == "Hamnitishi"

    def test_empty_output_means_nothing_playing(self, runner, deadline):
        runner.add("powershell.exe", POWERSHELL_BANNER)
        assert WslBridgeProbe(runner=runner).query(deadline) is None

    def test_garbage_output(self, runner, deadline):
        runner.add("powershell.exe", "this is not json")
        probe = WslBridgeProbe(runner=runner)
        with pytest.raises(ProbeError):
            probe.query(deadline)
        assert probe.detect(deadline) is None

    def test_non_object_json(self, runner, deadline):
        runner.add("powershell.exe", '["Hamnitishi"]')
        with pytest.raises(ProbeError):
            WslBridgeProbe(runner=runner).query(deadline)

    def test_launch_failure(self, runner, deadline):
        runner.add("powershell.exe", ProbeError("powershell.exe not found"))
        assert WslBridgeProbe(runner=runner).detect(deadline) is None

    def test_missing_script(self, runner, deadline, tmp_path):
        probe = WslBridgeProbe(runner=runner, script_path=tmp_path / "missing.ps1")
        with pytest.raises(ProbeError):
            probe.query(deadline)
        assert runner.calls == []


# =============================================================================
# APPLESCRIPT
# =============================================================================

def not_running(runner, *apps):
    for app in apps:
        runner.add(f'application "{app}" is running', "false")
    return runner


class TestAppleScriptProbe:
    """osascript-backed probe: players first, then browser windows."""

    def test_available_on_macos(self):
        probe = AppleScriptProbe(which=found("/usr/bin/osascript"), platform="darwin")
        assert probe.is_available()

    def test_unavailable_elsewhere(self):
        assert not AppleScriptProbe(which=found("/usr/bin/osascript"), platform="linux").is_available()

    def test_spotify_playing(self, runner, deadline):
        runner.add('application "Spotify" is running', "true")
        runner.add('tell application "Spotify" to player state', "playing")
        runner.add('tell application "Spotify" to name of current track', "Nairobi")
        runner.add('tell application "Spotify" to artist of current track', "Bensoul")
        runner.add('tell application "Spotify" to album of current track', "missing value")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "Nairobi"
        assert record.artist == "Bensoul"
        assert record.album == ""
        assert record.source == "Spotify"
        assert record.kind == MediaKind.SONG

    def test_paused_player_is_skipped(self, runner, deadline):
        runner.add('application "Spotify" is running', "true")
        runner.add('tell application "Spotify" to player state', "paused")
        runner.add('application "Music" is running', "true")
        runner.add('tell application "Music" to player state', "playing")
        runner.add('tell application "Music" to name of current track', "Suzanna")
        runner.add('tell application "Music" to artist of current track', "Sauti Sol")
        runner.add('tell application "Music" to album of current track', "Live and Die in Afrika")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "Suzanna"
        assert record.source == "Apple Music"
        assert not any("name of current track" in " ".join(c) and "Spotify" in " ".join(c) for c in runner.calls)

    def test_not_running_player_is_never_told(self, runner, deadline):
        not_running(runner, "Spotify", "Music", "iTunes", "VLC")
        AppleScriptProbe(runner=runner, platform="darwin", browsers=()).query(deadline)
        assert not any("tell application" in " ".join(c) for c in runner.calls)

    def test_missing_fields_degrade_to_empty(self, runner, deadline):
        not_running(runner, "Spotify", "Music", "iTunes")
        runner.add('application "VLC" is running', "true")
        runner.add('tell application "VLC" to playing as string', "true")
        runner.add('tell application "VLC" to name of current item', "concert.mkv")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "concert.mkv"
        assert record.artist == ""
        assert record.album == ""
        assert record.source == "VLC"

    def test_browser_window_with_marker_wins(self, runner, deadline):
        not_running(runner, "Spotify", "Music", "iTunes", "VLC")
        runner.add('process "Safari"', "Daft Punk - Around the World - YouTube")
        runner.add('process "Google Chrome"', "Inbox\n▶ Hamnitishi - E-Sir - YouTube Music\nDocs - Notes")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "Hamnitishi"
        assert record.artist == "E-Sir"
        assert record.source == "YouTube Music"

    def test_browser_window_naming_media_site(self, runner, deadline):
        not_running(runner, "Spotify", "Music", "iTunes", "VLC")
        runner.add('process "Safari"', "Pull requests\nDaft Punk - Around the World - YouTube")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "Around the World"
        assert record.source == "YouTube"

    def test_nothing_playing(self, runner, deadline):
        not_running(runner, "Spotify", "Music", "iTunes", "VLC")
        runner.add('process "', "")
        assert AppleScriptProbe(runner=runner, platform="darwin").query(deadline) is None

    def test_unscriptable_player_does_not_abort(self, runner, deadline):
        runner.add('application "Spotify" is running', ProbeError("osascript exit 1: syntax error"))
        runner.add('application "Music" is running', "true")
        runner.add('tell application "Music" to player state', "playing")
        runner.add('tell application "Music" to name of current track', "Suzanna")

        record = AppleScriptProbe(runner=runner, platform="darwin").query(deadline)

        assert record.title == "Suzanna"
