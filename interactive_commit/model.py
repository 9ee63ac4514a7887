"""
Domain Models

Immutable value types shared by the parser, the probes and the formatter.
A MediaRecord only exists when a title was found; "nothing playing" is None.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class MediaKind(Enum):
    """What kind of media a record describes."""
    SONG = "song"
    PODCAST = "podcast"
    VIDEO = "video"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MediaRecord:
    """Currently playing media. Immutable."""
    title: str
    artist: str = ""
    album: str = ""
    source: str = "Unknown"
    kind: MediaKind = MediaKind.UNKNOWN

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("MediaRecord requires a non-empty title")

    @property
    def key(self) -> str:
        """Identity used to detect track changes between polls."""
        return f"{self.source}::{self.artist}::{self.title}"

    def __str__(self) -> str:
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "source": self.source,
            "kind": self.kind.value,
        }
