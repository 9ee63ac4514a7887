"""
Now-Playing Watcher - periodic detection with a change callback.

Usage:
    watcher = NowPlayingWatcher(DetectionCoordinator(), interval=5.0)
    watcher.on_change = lambda record: print(format_status_text(record))
    watcher.start()
    # ... later
    watcher.stop()

Each poll is an independent detection pass; the watcher only remembers the
last record so it can tell when the track changed.
"""

import logging
import threading
from typing import Callable, Optional

from .model import MediaRecord
from .orchestrators import DEFAULT_TIMEOUT, DetectionCoordinator

logger = logging.getLogger(__name__)

OnChange = Callable[[Optional[MediaRecord]], None]


class NowPlayingWatcher:
    """
    Polls a DetectionCoordinator on a background thread.

    on_change fires with the new record (or None when playback stops)
    whenever the detected track differs from the previous poll.
    """

    def __init__(
        self,
        coordinator: DetectionCoordinator,
        interval: float = 5.0,
        timeout: float = DEFAULT_TIMEOUT,
        on_change: Optional[OnChange] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._coordinator = coordinator
        self._interval = interval
        self._timeout = timeout
        self._on_change = on_change

        self._current: Optional[MediaRecord] = None
        self._polled = False
        self._started = False

        self._poll_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def current(self) -> Optional[MediaRecord]:
        """Record from the most recent poll."""
        return self._current

    @property
    def on_change(self) -> Optional[OnChange]:
        return self._on_change

    @on_change.setter
    def on_change(self, callback: Optional[OnChange]) -> None:
        self._on_change = callback

    def start(self) -> bool:
        """Start polling. The first poll runs immediately."""
        if self._started:
            return True

        self._stop_event.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop,
            name="NowPlayingWatcher",
            daemon=True,
        )
        self._poll_thread.start()
        self._started = True
        return True

    def stop(self) -> None:
        if not self._started:
            return

        self._stop_event.set()
        if self._poll_thread:
            self._poll_thread.join(timeout=self._timeout + 2.0)
            self._poll_thread = None
        self._started = False

    def poll_once(self) -> Optional[MediaRecord]:
        """Run one detection pass and fire on_change if the track changed."""
        record = self._coordinator.detect(self._timeout)

        previous_key = self._current.key if self._current else None
        current_key = record.key if record else None
        changed = not self._polled or current_key != previous_key

        self._current = record
        self._polled = True

        if changed:
            if record:
                logger.info(f"♪ Now playing: {record}")
            else:
                logger.info("○ No audio detected")
            self._notify(record)

        return record

    def _notify(self, record: Optional[MediaRecord]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(record)
        except Exception:
            logger.exception("on_change callback failed")

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self._interval)
