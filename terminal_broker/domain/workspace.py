"""
Host-backed workspace directories for session containers.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from terminal_broker.config.settings import FOLDER_NAME_PATTERN, MAX_FOLDER_NAME_LENGTH
from terminal_broker.domain.errors import InvalidArgument, NotFound

logger = logging.getLogger("terminal-broker")


class WorkspaceProvisioner:
    """Creates, lists and deletes per-session workspace directories."""

    def __init__(self, root: str | Path, host_root: str | Path | None = None) -> None:
        """
        Args:
            root: Directory holding one child directory per session
            host_root: The same directory as seen by the Docker daemon, when
                the broker runs inside a container. Bind mounts use it.
        """
        self.root = Path(root).absolute()
        self.host_root = Path(host_root) if host_root else None

    def path_for(self, name: str) -> Path:
        """
        Get the workspace path for a session id or folder name.

        Raises:
            InvalidArgument: If ``name`` is not a single safe path component
        """
        if (
            not name
            or len(name) > MAX_FOLDER_NAME_LENGTH
            or name in (".", "..")
            or not FOLDER_NAME_PATTERN.match(name)
        ):
            raise InvalidArgument(f"Invalid workspace folder name: {name!r}")
        return self.root / name

    def provision(self, session_id: str) -> tuple[Path, bool]:
        """
        Ensure the session's workspace directory exists.

        An existing directory is reused with its contents untouched.

        Args:
            session_id: Session identifier

        Returns:
            Tuple of (absolute path to the workspace, whether this call created it)
        """
        path = self.path_for(session_id)
        self.root.mkdir(parents=True, exist_ok=True)
        try:
            path.mkdir()
            created = True
        except FileExistsError:
            created = False
        logger.info(f"Workspace ready: {path} (created={created})")
        return path, created

    def mount_source(self, path: Path) -> str:
        """Translate a local workspace path to the bind-mount source for the daemon."""
        if self.host_root is None:
            return str(path)
        return str(self.host_root / path.relative_to(self.root))

    def remove(self, path: Path) -> None:
        """Delete a workspace tree. Missing directories are ignored."""
        if not path.exists():
            return
        shutil.rmtree(path)
        logger.info(f"Workspace removed: {path}")

    def list_folders(self) -> list[dict[str, Any]]:
        """
        List workspace folders under the root.

        Returns:
            List of ``{name, path, modified}`` sorted by name
        """
        if not self.root.is_dir():
            return []

        folders = []
        for entry in sorted(self.root.iterdir(), key=lambda p: p.name):
            if not entry.is_dir():
                continue
            modified = datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc)
            folders.append({
                "name": entry.name,
                "path": str(entry),
                "modified": modified.isoformat(),
            })
        return folders

    def delete_folder(self, name: str) -> None:
        """
        Delete a workspace folder by name.

        Raises:
            InvalidArgument: If the name is unsafe
            NotFound: If no such folder exists
        """
        path = self.path_for(name)
        if not path.is_dir():
            raise NotFound(f"Workspace folder not found: {name}")
        self.remove(path)
