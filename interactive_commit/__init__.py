"""
interactive-commit

Appends the currently playing audio to git commit messages.

Features:
- Ordered, platform-specific probes (MPRIS, WSL bridge, macOS AppleScript)
- Window-title parser for browser and desktop player titles
- prepare-commit-msg hook that never blocks a commit

Usage:
    from interactive_commit import DetectionCoordinator, format_commit_line

    record = DetectionCoordinator().detect(timeout=3.0)
    if record:
        print(format_commit_line(record))
"""

__version__ = "0.1.0"

from .model import MediaKind, MediaRecord
from .infra import (
    Deadline,
    InstallError,
    InteractiveCommitError,
    ProbeError,
    ProbeTimeout,
)
from .title_parser import (
    clean_title,
    infer_media_kind,
    normalize_player_name,
    normalize_source,
    parse_window_title,
)
from .adapters import AppleScriptProbe, MprisProbe, Probe, WslBridgeProbe
from .orchestrators import (
    DEFAULT_TIMEOUT,
    DetectionCoordinator,
    DetectionReport,
    ProbeAttempt,
    build_default_probes,
)
from .formatting import (
    append_media_line,
    format_commit_line,
    format_status_text,
    format_tooltip,
    has_real_content,
)
from .config import Settings, load_settings
from .watcher import NowPlayingWatcher

__all__ = [
    '__version__',
    # Model
    'MediaKind', 'MediaRecord',
    # Errors and deadlines
    'Deadline', 'InteractiveCommitError', 'ProbeError', 'ProbeTimeout', 'InstallError',
    # Parser
    'parse_window_title', 'clean_title', 'normalize_source', 'normalize_player_name',
    'infer_media_kind',
    # Probes and coordinator
    'Probe', 'MprisProbe', 'WslBridgeProbe', 'AppleScriptProbe',
    'DetectionCoordinator', 'DetectionReport', 'ProbeAttempt', 'build_default_probes',
    'DEFAULT_TIMEOUT',
    # Formatting
    'format_commit_line', 'append_media_line', 'has_real_content',
    'format_status_text', 'format_tooltip',
    # Configuration and watcher
    'Settings', 'load_settings', 'NowPlayingWatcher',
]
