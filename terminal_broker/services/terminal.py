"""
Open a terminal window on the broker host, inside a session workspace.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

from terminal_broker.domain.errors import NotFound, NotSupported, RuntimeOperationFailed

logger = logging.getLogger("terminal-broker")


def _iterm_script(path: Path) -> str:
    command = f"cd {shlex.quote(str(path))}".replace("\\", "\\\\").replace('"', '\\"')
    return (
        'tell application "iTerm"\n'
        "    activate\n"
        "    create window with default profile\n"
        f'    tell current session of current window to write text "{command}"\n'
        "end tell"
    )


def build_terminal_command(path: Path, platform: str | None = None) -> list[str]:
    """
    Build the argv that opens a terminal in ``path``.

    Args:
        path: Working directory for the new terminal
        platform: ``sys.platform`` value, overridable for tests

    Returns:
        Command argv

    Raises:
        NotSupported: If no terminal launcher is known for the platform
    """
    platform = platform or sys.platform
    if platform == "darwin":
        return ["osascript", "-e", _iterm_script(path)]
    if platform.startswith("linux") and shutil.which("x-terminal-emulator"):
        return ["x-terminal-emulator", "--working-directory", str(path)]
    raise NotSupported(f"Opening a local terminal is not supported on {platform}")


def open_local_terminal(path: Path, enabled: bool = True) -> None:
    """
    Launch a detached terminal window in a workspace directory.

    Raises:
        NotSupported: Disabled by configuration or unsupported platform
        NotFound: The workspace directory does not exist
        RuntimeOperationFailed: The launcher could not be started
    """
    if not enabled:
        raise NotSupported("Local terminal is disabled")
    if not path.is_dir():
        raise NotFound(f"Workspace not found: {path}")

    command = build_terminal_command(path)
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise RuntimeOperationFailed("open terminal", str(e)) from e
    logger.info(f"Opened local terminal in {path}")
