"""
Window Title Parser

Pure functions that turn an opaque window title into a MediaRecord.
No I/O, no side effects.

Simple interface:
    parse_window_title(raw, app_hint) -> Optional[MediaRecord]
    clean_title(title) -> str

Rules are data, not nested conditionals: TITLE_RULES is evaluated in order
and the first matching rule wins. "YouTube Music" must stay ahead of the
plain YouTube rules, which must stay ahead of the generic fallback.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern, Tuple

from .model import MediaKind, MediaRecord


# =============================================================================
# CONSTANT DATA
# =============================================================================

# Titles that mean "app open, nothing loaded" (compared lowercase)
BARE_APP_NAMES = frozenset({
    'spotify', 'spotify premium', 'spotify free',
    'youtube', 'youtube music', 'soundcloud',
    'google chrome', 'chromium', 'microsoft edge', 'firefox', 'mozilla firefox',
    'safari', 'brave', 'arc', 'opera',
    'vlc', 'vlc media player', 'music', 'itunes', 'apple music',
    'windows media player', 'groove music',
    'new tab', 'start page',
})

# Application identifiers -> display names (keys lowercase)
SOURCE_NAMES = {
    'spotify': 'Spotify',
    'spotify.exe': 'Spotify',
    'chrome': 'Google Chrome',
    'chrome.exe': 'Google Chrome',
    'google chrome': 'Google Chrome',
    'msedge': 'Microsoft Edge',
    'msedge.exe': 'Microsoft Edge',
    'microsoft edge': 'Microsoft Edge',
    'firefox': 'Firefox',
    'firefox.exe': 'Firefox',
    'vlc': 'VLC',
    'vlc.exe': 'VLC',
    'microsoft.zunemusic': 'Groove Music',
    'microsoft.windowsmediaplayer': 'Windows Media Player',
    'youtubemusic': 'YouTube Music',
    'youtube music': 'YouTube Music',
    'youtube': 'YouTube',
    'soundcloud': 'SoundCloud',
    'safari': 'Safari',
    'brave browser': 'Brave',
    'music': 'Apple Music',
    'itunes': 'iTunes',
}

BROWSER_SOURCES = ('chrome', 'edge', 'firefox', 'safari', 'brave', 'arc', 'opera', 'chromium')

MEDIA_SITES = ('youtube', 'soundcloud', 'spotify', 'deezer', 'tidal', 'bandcamp',
               'apple music', 'pandora', 'mixcloud')

_BROWSER_SUFFIX_RE = re.compile(
    r"\s+[-–—]\s+(?:Google Chrome|Chromium|Microsoft\u200b?\s?Edge|Mozilla Firefox|Firefox"
    r"|Brave|Opera|Safari|Arc)\s*$",
    re.IGNORECASE,
)
_MEMORY_USAGE_RE = re.compile(
    r"(?:\s*[-–—|]?\s*(?:high\s+)?memory usage\s*[-–—:]?\s*[\d.,]+\s*[KMG]B)+\s*$",
    re.IGNORECASE,
)
_LEADING_MARKER_RE = re.compile(r"^\s*(?:▶️?|\U0001f50a|\U0001f3b5)\s*")
_TRAILING_MARKER_RE = re.compile(r"\s+[-–—]\s+(?:Audio playing|Playing audio)\s*$", re.IGNORECASE)
_PLAYING_MARKER_RE = re.compile(r"▶|\U0001f50a|audio playing|playing audio", re.IGNORECASE)

_QUALIFIER_RE = re.compile(r"\s*\([^)]*\)|\s*\[[^\]]*\]")
_FEATURING_RE = re.compile(r"\s+(?:feat\.?|ft\.?|featuring)\s+.*$", re.IGNORECASE)


# =============================================================================
# RULES
# =============================================================================

@dataclass(frozen=True)
class TitleRule:
    """
    One (predicate, extractor) pair.

    source: fixed display name, or "" to take it from the app hint.
    kind: fixed media kind, or None to infer from title and source.
    """
    name: str
    pattern: Pattern[str]
    title_group: int
    artist_group: int = 0
    source: str = ""
    kind: Optional[MediaKind] = None
    guard: Optional[Callable[[str, str], bool]] = None

    def matches(self, text: str, app_hint: str = "") -> bool:
        if self.guard is not None and not self.guard(text, app_hint):
            return False
        return self.pattern.search(text) is not None

    def extract(self, text: str) -> Tuple[str, str]:
        """Return (title, artist). Call only after matches()."""
        match = self.pattern.search(text)
        title = match.group(self.title_group).strip()
        artist = match.group(self.artist_group).strip() if self.artist_group else ""
        return title, artist


def _mentions_youtube(text: str, app_hint: str) -> bool:
    return 'youtube' in text.lower()


def _is_spotify_app(text: str, app_hint: str) -> bool:
    return 'spotify' in app_hint.lower()


def _no_browser_vendor(text: str, app_hint: str) -> bool:
    lowered = text.lower()
    return not any(vendor in lowered for vendor in ('google', 'microsoft', 'firefox'))


TITLE_RULES: Tuple[TitleRule, ...] = (
    # "Song - Artist - YouTube Music"
    TitleRule(
        name="youtube_music",
        pattern=re.compile(r"^(.+) - (.+) - YouTube Music"),
        title_group=1, artist_group=2,
        source="YouTube Music", kind=MediaKind.SONG,
    ),
    # "Artist - Song (extras) - YouTube"
    TitleRule(
        name="youtube_artist_title",
        pattern=re.compile(r"^(.+) - (.+) - YouTube$"),
        title_group=2, artist_group=1,
        source="YouTube", kind=MediaKind.VIDEO,
    ),
    # "Video Title - YouTube"
    TitleRule(
        name="youtube_video",
        pattern=re.compile(r"^(.+) - YouTube$"),
        title_group=1,
        source="YouTube", kind=MediaKind.VIDEO,
    ),
    TitleRule(
        name="youtube_generic",
        pattern=re.compile(r"^(.+?) - (.+?)\s*(?:[-|]\s*YouTube.*)?$"),
        title_group=2, artist_group=1,
        source="YouTube", kind=MediaKind.VIDEO,
        guard=_mentions_youtube,
    ),
    # "Stream Song by Artist | Listen online for free on SoundCloud"
    TitleRule(
        name="soundcloud",
        pattern=re.compile(r"^(?:Stream )?(.+) by (.+?)\s*\|\s*(?:Listen online for free on )?SoundCloud$"),
        title_group=1, artist_group=2,
        source="SoundCloud", kind=MediaKind.SONG,
    ),
    # Spotify web player: "Song • Artist"
    TitleRule(
        name="spotify_web",
        pattern=re.compile(r"^(.+?) • (.+)$"),
        title_group=1, artist_group=2,
        source="Spotify", kind=MediaKind.SONG,
    ),
    # Spotify desktop window: "Artist - Song"
    TitleRule(
        name="spotify_app",
        pattern=re.compile(r"^(.+?) - (.+)$"),
        title_group=2, artist_group=1,
        source="Spotify",
        guard=_is_spotify_app,
    ),
    # Anything else with a separator: trailing segment is the title
    TitleRule(
        name="generic",
        pattern=re.compile(r"^(.+) - (.+)$"),
        title_group=2, artist_group=1,
        guard=_no_browser_vendor,
    ),
)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def strip_window_decorations(raw: str) -> str:
    """Remove browser names, playing markers and memory-usage suffixes."""
    text = raw.strip()
    previous = None
    while text != previous:
        previous = text
        text = _BROWSER_SUFFIX_RE.sub("", text)
        text = _TRAILING_MARKER_RE.sub("", text)
        text = _MEMORY_USAGE_RE.sub("", text)
        text = _LEADING_MARKER_RE.sub("", text)
        text = text.strip()
    return text


def has_playing_marker(raw: str) -> bool:
    """True when the title explicitly says media is playing."""
    return _PLAYING_MARKER_RE.search(raw) is not None


def mentions_media_site(raw: str) -> bool:
    lowered = raw.lower()
    return any(site in lowered for site in MEDIA_SITES)


def is_bare_app_name(text: str) -> bool:
    return text.strip().lower() in BARE_APP_NAMES


def clean_title(title: str) -> str:
    """
    Strip qualifiers like "(Official Video)", "[HD]", trailing "feat." clauses
    and memory-usage suffixes. Idempotent. Never returns an empty string for
    a non-empty input: if cleanup would empty it, the trimmed input is kept.
    """
    original = title.strip()
    cleaned = _QUALIFIER_RE.sub("", original)
    cleaned = _FEATURING_RE.sub("", cleaned)
    cleaned = _MEMORY_USAGE_RE.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    return cleaned or original


def normalize_source(app_id: str) -> str:
    """Convert an application identifier into a friendly display name."""
    app_id = (app_id or "").strip()
    if not app_id:
        return "Unknown"

    lowered = app_id.lower()
    if lowered in SOURCE_NAMES:
        return SOURCE_NAMES[lowered]

    if 'spotify' in lowered:
        return 'Spotify'
    if 'chrome' in lowered:
        return 'Google Chrome'
    if 'edge' in lowered:
        return 'Microsoft Edge'
    if 'youtube' in lowered:
        return 'YouTube Music'

    if lowered.endswith('.exe'):
        return app_id[:-4]

    # Windows Store format: "Name!App"
    if '!' in app_id:
        return app_id.split('!')[0].lower().title()

    return app_id


def normalize_player_name(identifier: str) -> str:
    """MPRIS player id -> display name: 'chromium.instance42' -> 'Chromium'."""
    identifier = (identifier or "").strip()
    if not identifier:
        return "Unknown"
    base = identifier.split('.')[0]
    return base[:1].upper() + base[1:].lower()


def infer_media_kind(title: str, source: str) -> MediaKind:
    source = source.lower()
    title = title.lower()

    if 'podcast' in source or 'episode' in title or 'podcast' in title:
        return MediaKind.PODCAST
    if 'youtube music' in source:
        return MediaKind.SONG
    if 'youtube' in source or any(browser in source for browser in BROWSER_SOURCES):
        return MediaKind.VIDEO
    return MediaKind.SONG


def parse_window_title(
    raw: str,
    app_hint: str = "",
    rules: Tuple[TitleRule, ...] = TITLE_RULES,
) -> Optional[MediaRecord]:
    """
    Best-guess MediaRecord for a window title, or None if the title carries
    no media (empty, or just the application's own name).

    Args:
        raw: Window title as reported by the OS
        app_hint: Application or process that owns the window
    """
    text = strip_window_decorations(raw or "")
    if not text or is_bare_app_name(text):
        return None

    hint_source = normalize_source(app_hint) if app_hint else "Unknown"

    matched = False
    for rule in rules:
        if not rule.matches(text, app_hint):
            continue
        matched = True
        title, artist = rule.extract(text)
        title = clean_title(title)
        if not title or is_bare_app_name(title):
            continue
        source = rule.source or hint_source
        kind = rule.kind or infer_media_kind(title, source)
        return MediaRecord(title=title, artist=artist, source=source, kind=kind)

    # Every matching rule only found an app name, e.g. "Home - YouTube Music"
    if matched:
        return None
    return MediaRecord(title=clean_title(text), source=hint_source, kind=MediaKind.UNKNOWN)
