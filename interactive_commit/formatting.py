"""
Formatting - MediaRecord to text

Pure functions. The commit line is what the hook appends; the status text
and tooltip are what the watcher shows.

Simple interface:
    format_commit_line(record, template=None) -> str
    append_media_line(message, line) -> str
    format_status_text(record, max_length=50) -> str
"""

import logging
from typing import List, Optional, Tuple

from .model import MediaRecord

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_TEMPLATE = '🎵 Currently playing: "{title}" by {artist} ({source})'
COMMIT_MARKER = "Currently playing:"
NO_AUDIO_TEXT = "🔇 No audio"

SOURCE_ICONS = {
    'Spotify': '🟢',
    'YouTube': '🔴',
    'YouTube Music': '🎵',
    'Chrome': '🌐',
    'Google Chrome': '🌐',
    'Edge': '🔵',
    'Microsoft Edge': '🔵',
    'Firefox': '🦊',
    'VLC': '🎬',
    'iTunes': '🍎',
    'Apple Music': '🍎',
}
DEFAULT_ICON = '🎵'


class _TemplateFields(dict):
    """Leaves unknown placeholders in place instead of raising KeyError."""

    def __missing__(self, key):
        return "{" + key + "}"


# =============================================================================
# COMMIT LINE
# =============================================================================

def format_commit_line(record: MediaRecord, template: Optional[str] = None) -> str:
    """
    Render the line appended to a commit message.

    Placeholders: {title} {artist} {album} {source} {kind}.
    " by {artist}" is dropped when the artist is unknown.
    """
    template = template or DEFAULT_COMMIT_TEMPLATE
    if not record.artist:
        template = template.replace(" by {artist}", "")

    fields = _TemplateFields(
        title=record.title,
        artist=record.artist,
        album=record.album,
        source=record.source,
        kind=record.kind.value,
    )
    try:
        return template.format_map(fields)
    except (ValueError, IndexError, AttributeError) as e:
        logger.warning(f"Invalid commit_format {template!r}: {e}; using default")
        return format_commit_line(record)


def has_real_content(message: str) -> bool:
    """True when any line is neither blank nor a git comment."""
    return any(line.strip() and not line.strip().startswith('#') for line in message.splitlines())


def _is_scissors(line: str) -> bool:
    return line.startswith('#') and '>8' in line


def _split_trailing_comments(message: str) -> Tuple[str, str]:
    """(body, trailing comment block). Everything from a scissors line on is comment."""
    lines: List[str] = message.splitlines(keepends=True)

    end = len(lines)
    for index, line in enumerate(lines):
        if _is_scissors(line):
            end = index
            break

    start = end
    while start > 0 and (not lines[start - 1].strip() or lines[start - 1].startswith('#')):
        start -= 1

    return "".join(lines[:start]), "".join(lines[start:])


def append_media_line(message: str, line: str) -> str:
    """
    Append line to a commit message, below the body and above git's
    trailing comment block. Messages without real content, or that already
    carry a media line, are returned unchanged.
    """
    if not has_real_content(message) or COMMIT_MARKER in message:
        return message

    newline = "\r\n" if "\r\n" in message else "\n"
    body, comments = _split_trailing_comments(message)
    result = body.rstrip("\r\n") + newline + newline + line + newline

    comments = comments.lstrip("\r\n")
    if comments:
        result += newline + comments
    return result


# =============================================================================
# STATUS TEXT - watcher display
# =============================================================================

def source_icon(source: str) -> str:
    return SOURCE_ICONS.get(source, DEFAULT_ICON)


def format_status_text(record: Optional[MediaRecord], max_length: int = 50) -> str:
    """Short one-line status: '<icon> Title - Artist', truncated with '...'."""
    if record is None:
        return NO_AUDIO_TEXT

    text = f"{source_icon(record.source)} {record.title}"
    if record.artist:
        text += f" - {record.artist}"

    if len(text) > max_length:
        text = text[:max(0, max_length - 3)] + "..."
    return text


def format_tooltip(record: Optional[MediaRecord]) -> str:
    if record is None:
        return "No audio currently playing"

    lines = ["🎵 Currently Playing:", f"Title: {record.title}"]
    if record.artist:
        lines.append(f"Artist: {record.artist}")
    if record.album:
        lines.append(f"Album: {record.album}")
    lines.append(f"Source: {record.source}")
    lines.append(f"Type: {record.kind.value}")
    return "\n".join(lines)
