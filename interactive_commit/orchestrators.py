"""
Orchestrators - Detection coordinator with dependency injection

DetectionCoordinator walks an ordered tuple of probes and returns the first
record any of them produces. Each probe gets its own deadline; a probe that
overruns is abandoned and the next one is tried.

Simple interface:
    coordinator = DetectionCoordinator()               # probes for this OS
    coordinator.detect(timeout) -> Optional[MediaRecord]
    coordinator.detect_with_report(timeout) -> DetectionReport
    coordinator.list_available() -> List[str]
"""

import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .adapters import AppleScriptProbe, MprisProbe, Probe, WslBridgeProbe
from .infra import Deadline, ProbeError, ProbeTimeout
from .model import MediaRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0
NO_AUDIO_ERROR = "no audio detected from any source"

RecordFilter = Callable[[MediaRecord], bool]


def build_default_probes(platform: Optional[str] = None) -> Tuple[Probe, ...]:
    """Probes for a platform, in priority order."""
    platform = platform or sys.platform
    if platform.startswith('linux'):
        return (MprisProbe(platform=platform), WslBridgeProbe())
    if platform == 'darwin':
        return (AppleScriptProbe(platform=platform),)
    return ()


# =============================================================================
# REPORT TYPES - diagnostic view of one detection pass
# =============================================================================

@dataclass(frozen=True)
class ProbeAttempt:
    """What happened when one probe was consulted."""
    name: str
    available: bool
    outcome: str            # skipped | detected | nothing | filtered | timeout | error
    error: Optional[str] = None
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class DetectionReport:
    """Result of detect_with_report()."""
    record: Optional[MediaRecord]
    available: Tuple[str, ...] = ()
    attempts: Tuple[ProbeAttempt, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def detected(self) -> bool:
        return self.record is not None


# =============================================================================
# DETECTION COORDINATOR
# =============================================================================

class DetectionCoordinator:
    """
    Asks probes in order until one reports media.

    Interface:
        detect(timeout) -> Optional[MediaRecord]   # never raises
        detect_with_report(timeout) -> DetectionReport
        list_available() -> List[str]

    Dependency Injection: accepts the probe sequence and an optional
    source filter; defaults to the probes for the running platform.
    """

    def __init__(
        self,
        probes: Optional[Iterable[Probe]] = None,
        accept: Optional[RecordFilter] = None,
        platform: Optional[str] = None,
    ):
        self._probes: Tuple[Probe, ...] = (
            tuple(probes) if probes is not None else build_default_probes(platform)
        )
        self._accept = accept

    @property
    def probes(self) -> Tuple[Probe, ...]:
        return self._probes

    def list_available(self) -> List[str]:
        """Names of probes that could run here. Does not detect."""
        return [probe.name for probe in self._probes if self._is_available(probe)]

    def detect(self, timeout: float = DEFAULT_TIMEOUT) -> Optional[MediaRecord]:
        """First record any available probe produces within its timeout."""
        for probe in self._probes:
            if not self._is_available(probe):
                continue

            try:
                record = self._run_bounded(probe.detect, timeout)
            except ProbeTimeout:
                logger.info(f"{probe.name}: timed out after {timeout:.1f}s")
                continue
            except Exception as e:
                logger.warning(f"{probe.name}: unexpected error: {e}", exc_info=True)
                continue

            if record is None:
                continue
            if not self._accepts(record):
                logger.debug(f"{probe.name}: {record.source} filtered out")
                continue

            logger.debug(f"{probe.name}: {record}")
            return record

        return None

    def detect_with_report(self, timeout: float = DEFAULT_TIMEOUT) -> DetectionReport:
        """Same traversal as detect(), recording every probe's outcome."""
        attempts: List[ProbeAttempt] = []
        available: List[str] = []
        found: Optional[MediaRecord] = None

        for probe in self._probes:
            if not self._is_available(probe):
                attempts.append(ProbeAttempt(probe.name, available=False, outcome="skipped"))
                continue

            available.append(probe.name)
            start = time.monotonic()
            error = None
            record = None
            try:
                record = self._run_bounded(probe.query, timeout)
                outcome = "nothing" if record is None else "detected"
            except ProbeTimeout as e:
                outcome, error = "timeout", str(e)
            except ProbeError as e:
                outcome, error = "error", str(e)
            except Exception as e:
                logger.warning(f"{probe.name}: unexpected error: {e}", exc_info=True)
                outcome, error = "error", f"{type(e).__name__}: {e}"

            if record is not None and not self._accepts(record):
                outcome, record = "filtered", None

            elapsed_ms = (time.monotonic() - start) * 1000.0
            attempts.append(ProbeAttempt(probe.name, True, outcome, error, elapsed_ms))

            if record is not None:
                found = record
                break

        return DetectionReport(
            record=found,
            available=tuple(available),
            attempts=tuple(attempts),
            error=None if found else NO_AUDIO_ERROR,
        )

    def _accepts(self, record: MediaRecord) -> bool:
        return self._accept is None or self._accept(record)

    def _is_available(self, probe: Probe) -> bool:
        try:
            return probe.is_available()
        except Exception as e:
            logger.warning(f"{probe.name}: availability check failed: {e}")
            return False

    def _run_bounded(self, call: Callable[[Deadline], Optional[MediaRecord]], timeout: float):
        """
        Run call(deadline) on a daemon thread, waiting at most timeout seconds.

        A probe still running after that is abandoned; being a daemon thread
        it cannot hold up interpreter exit. Raises ProbeTimeout on overrun and
        re-raises whatever call raised.
        """
        deadline = Deadline.after(timeout)
        outcome: Dict[str, Any] = {}
        finished = threading.Event()

        def worker():
            try:
                outcome['record'] = call(deadline)
            except Exception as e:
                outcome['error'] = e
            finally:
                finished.set()

        threading.Thread(target=worker, name="probe", daemon=True).start()

        if not finished.wait(max(0.0, timeout)):
            raise ProbeTimeout(f"timed out after {timeout:.1f}s")
        if 'error' in outcome:
            raise outcome['error']
        return outcome.get('record')
