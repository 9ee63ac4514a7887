"""
Infrastructure and Cross-Cutting Concerns

Error types, deadlines, external process execution and environment checks.
Everything that touches the operating system on behalf of the probes lives
here so the probes stay small.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class InteractiveCommitError(Exception):
    """Base class for all errors raised by this package."""


class ProbeError(InteractiveCommitError):
    """An external tool failed: missing binary, non-zero exit, bad output."""


class ProbeTimeout(ProbeError):
    """The external tool did not answer before the deadline."""


class InstallError(InteractiveCommitError):
    """Hook installation failed."""


# =============================================================================
# DEADLINE - absolute expiry handed to probes
# =============================================================================

@dataclass(frozen=True)
class Deadline:
    """Monotonic point in time after which work must stop. Immutable."""
    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> 'Deadline':
        return cls(time.monotonic() + max(0.0, seconds))

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


# =============================================================================
# PROCESS EXECUTION
# =============================================================================

def run_command(args: List[str], deadline: Deadline) -> str:
    """
    Run one external command and return its stdout.

    The child gets whatever time is left on the deadline and is killed when
    it runs over. Every failure is raised as ProbeError.
    """
    program = args[0]
    remaining = deadline.remaining()
    if remaining <= 0.0:
        raise ProbeTimeout(f"{program}: deadline already passed")

    try:
        result = subprocess.run(
            args,
            capture_output=True,
            stdin=subprocess.DEVNULL,
            encoding="utf-8",
            errors="replace",
            timeout=remaining,
            check=False,
        )
    except FileNotFoundError:
        raise ProbeError(f"{program} not found")
    except subprocess.TimeoutExpired:
        raise ProbeTimeout(f"{program} timed out after {remaining:.1f}s")
    except OSError as e:
        raise ProbeError(f"{program} failed to start: {e}")

    if result.returncode != 0:
        message = (result.stderr or "").strip() or (result.stdout or "").strip()
        raise ProbeError(f"{program} exit {result.returncode}: {message or 'no output'}")

    return result.stdout or ""


# =============================================================================
# ENVIRONMENT
# =============================================================================

PROC_VERSION = Path("/proc/version")


def is_wsl(
    proc_version: Path = PROC_VERSION,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """True when running inside WSL (Linux guest on a Windows host)."""
    environ = os.environ if environ is None else environ
    try:
        if 'microsoft' in proc_version.read_text(errors="replace").lower():
            return True
    except OSError:
        pass
    return bool(environ.get('WSL_DISTRO_NAME'))
