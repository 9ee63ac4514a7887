"""
Hook Installer

Writes the prepare-commit-msg hook, either into the current repository or
into a global hooks directory that git is then pointed at.

Simple interface:
    install_local(cwd, force, confirm) -> Optional[Path]
    install_global(force, confirm) -> Optional[Path]

Both return the hook path, or None when the user declined to overwrite an
existing hook. Failures raise InstallError.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from .infra import InstallError

logger = logging.getLogger(__name__)

HOOK_NAME = "prepare-commit-msg"

HOOK_TEMPLATE = """#!/bin/sh
# interactive-commit {scope}git hook
# Appends the currently playing audio to commit messages

"{python}" -m interactive_commit hook "$1" "$2" "$3" || true
"""

GitRunner = Callable[[List[str], Optional[Path]], str]
Confirm = Callable[[Path], bool]


def run_git(args: List[str], cwd: Optional[Path] = None) -> str:
    """Run git and return stripped stdout. Raises InstallError on failure."""
    try:
        result = subprocess.run(
            ['git', *args],
            cwd=cwd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except FileNotFoundError:
        raise InstallError("git not found on PATH")
    except OSError as e:
        raise InstallError(f"git failed to start: {e}")

    if result.returncode != 0:
        message = (result.stderr or "").strip() or f"exit {result.returncode}"
        raise InstallError(f"git {' '.join(args)}: {message}")
    return (result.stdout or "").strip()


def hook_script(python: Optional[str] = None, is_global: bool = False) -> str:
    return HOOK_TEMPLATE.format(
        python=python or sys.executable,
        scope="global " if is_global else "",
    )


# =============================================================================
# HOOK DIRECTORIES
# =============================================================================

def local_hooks_dir(cwd: Path, git: GitRunner = run_git) -> Path:
    """hooks/ inside the repository's git directory."""
    try:
        git_dir = Path(git(['rev-parse', '--git-common-dir'], cwd))
    except InstallError as e:
        raise InstallError(f"not in a git repository: {e}")
    if not git_dir.is_absolute():
        git_dir = Path(cwd) / git_dir
    return git_dir / "hooks"


def global_hooks_dir(
    environ: Optional[Mapping[str, str]] = None,
    git: GitRunner = run_git,
) -> Path:
    """Existing core.hooksPath if set, else $XDG_CONFIG_HOME/git/hooks."""
    environ = os.environ if environ is None else environ
    try:
        existing = git(['config', '--global', 'core.hooksPath'], None)
    except InstallError:
        # exit 1 means unset
        existing = ""

    if existing:
        logger.info(f"Using existing global hooks directory: {existing}")
        return Path(existing).expanduser()

    config_home = environ.get('XDG_CONFIG_HOME') or str(Path.home() / ".config")
    return Path(config_home) / "git" / "hooks"


# =============================================================================
# INSTALLATION
# =============================================================================

def write_hook(
    hooks_dir: Path,
    force: bool = False,
    confirm: Optional[Confirm] = None,
    is_global: bool = False,
    python: Optional[str] = None,
) -> Optional[Path]:
    """
    Write the hook script into hooks_dir.

    An existing hook is only replaced when force is set or confirm(path)
    returns True. Returns None when the user declined.
    """
    hook_path = hooks_dir / HOOK_NAME

    if hook_path.exists() and not force:
        if confirm is None or not confirm(hook_path):
            logger.info(f"Keeping existing hook at {hook_path}")
            return None

    try:
        hooks_dir.mkdir(parents=True, exist_ok=True)
        hook_path.write_text(hook_script(python, is_global), encoding="utf-8")
        hook_path.chmod(0o755)
    except OSError as e:
        raise InstallError(f"failed to write {hook_path}: {e}")

    logger.info(f"Wrote hook {hook_path}")
    return hook_path


def install_local(
    cwd: Optional[Path] = None,
    force: bool = False,
    confirm: Optional[Confirm] = None,
    git: GitRunner = run_git,
) -> Optional[Path]:
    hooks_dir = local_hooks_dir(Path(cwd) if cwd else Path.cwd(), git)
    return write_hook(hooks_dir, force=force, confirm=confirm)


def install_global(
    force: bool = False,
    confirm: Optional[Confirm] = None,
    environ: Optional[Mapping[str, str]] = None,
    git: GitRunner = run_git,
) -> Optional[Path]:
    """Write the hook globally and point core.hooksPath at its directory."""
    hooks_dir = global_hooks_dir(environ, git)
    hook_path = write_hook(hooks_dir, force=force, confirm=confirm, is_global=True)
    if hook_path is None:
        return None

    # Absolute path: git does not expand ~ everywhere
    git(['config', '--global', 'core.hooksPath', str(hooks_dir.resolve())], None)
    return hook_path
