"""
prepare-commit-msg handler.

git calls the hook with <message file> [source] [sha]. The handler appends
the currently playing audio to the message file and never fails the commit:
every problem is logged and the file is left as it was.
"""

import logging
from pathlib import Path
from typing import Optional

from .config import Settings, load_settings
from .formatting import COMMIT_MARKER, append_media_line, format_commit_line, has_real_content
from .orchestrators import DetectionCoordinator

logger = logging.getLogger(__name__)

# Message sources git generates itself
SKIPPED_SOURCES = ('merge', 'squash')


def _read_message(path: Path) -> Optional[str]:
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read commit message {path}: {e}")
        return None


def _write_message(path: Path, message: str) -> bool:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(message)
    except OSError as e:
        logger.warning(f"Cannot write commit message {path}: {e}")
        return False
    return True


def process_commit_message(
    path: Path,
    source: Optional[str] = None,
    settings: Optional[Settings] = None,
    coordinator: Optional[DetectionCoordinator] = None,
) -> bool:
    """
    Append the media line to the message file at path.

    Args:
        path: Commit message file
        source: git's message source (message, template, merge, squash, commit)
        settings: Loaded settings (default: load_settings())
        coordinator: Detection coordinator (default: platform probes)

    Returns:
        True if the file was rewritten
    """
    settings = settings or load_settings()
    if not settings.enabled:
        logger.debug("Disabled by configuration")
        return False

    if source in SKIPPED_SOURCES:
        logger.debug(f"Skipping {source} commit")
        return False

    path = Path(path)
    message = _read_message(path)
    if message is None:
        return False

    if not has_real_content(message) or COMMIT_MARKER in message:
        return False

    coordinator = coordinator or DetectionCoordinator(accept=settings.accepts)
    record = coordinator.detect(settings.timeout)
    if record is None:
        logger.debug("No audio detected")
        return False

    updated = append_media_line(message, format_commit_line(record, settings.commit_format))
    if updated == message:
        return False

    return _write_message(path, updated)
