"""
Sandboxed file access inside a session workspace.
"""

from __future__ import annotations

import errno
import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from terminal_broker.config.settings import MAX_READ_BYTES
from terminal_broker.domain.errors import Forbidden, InvalidArgument, NotFound, ResourceTooLarge

logger = logging.getLogger("terminal-broker")


def _mtime_iso(st: os.stat_result) -> str:
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat()


class SandboxedFileAccessor:
    """
    Serves directory listings and file contents below a workspace root.

    Every request path is relative to the workspace. Containment is checked
    lexically before the filesystem is touched, then again on the real path
    so a symlink inside the workspace cannot point outside it.
    """

    def __init__(self, max_read_bytes: int = MAX_READ_BYTES) -> None:
        self.max_read_bytes = max_read_bytes

    def resolve(self, root: str | Path, relative: str | None) -> Path:
        """
        Resolve ``relative`` against ``root``.

        Args:
            root: Workspace root
            relative: User-supplied relative path ('' for the root itself)

        Returns:
            Absolute path inside the workspace

        Raises:
            Forbidden: If the path is absolute or escapes the root
        """
        relative = relative or ""
        if "\x00" in relative:
            raise Forbidden("Access denied")
        if os.path.isabs(relative) or relative.startswith(("/", "\\")):
            logger.warning(f"Rejected absolute path {relative!r}")
            raise Forbidden("Access denied")

        base = Path(os.path.abspath(root))
        candidate = Path(os.path.normpath(os.path.join(base, relative)))
        if candidate != base and base not in candidate.parents:
            logger.warning(f"Rejected path escaping workspace: {relative!r}")
            raise Forbidden("Access denied")

        real_base = base.resolve()
        real = candidate.resolve()
        if real != real_base and real_base not in real.parents:
            logger.warning(f"Rejected symlink escaping workspace: {relative!r}")
            raise Forbidden("Access denied")

        return candidate

    def browse(self, root: str | Path, relative: str | None) -> dict[str, Any]:
        """
        Describe a path inside the workspace.

        Returns:
            ``{"type": "directory", "files": [...]}`` for directories, each
            entry carrying name, type, size and modified; ``{"type": "file",
            "name": relative}`` for anything else

        Raises:
            Forbidden: On sandbox escape
            NotFound: If the path does not exist
        """
        path = self.resolve(root, relative)
        if not path.exists():
            raise NotFound("Path not found")

        if not path.is_dir():
            return {"type": "file", "name": relative or ""}

        files = []
        with os.scandir(path) as it:
            for entry in it:
                # Links are described, never followed
                st = entry.stat(follow_symlinks=False)
                if stat.S_ISLNK(st.st_mode):
                    kind = "symlink"
                elif stat.S_ISDIR(st.st_mode):
                    kind = "directory"
                else:
                    kind = "file"
                files.append({
                    "name": entry.name,
                    "type": kind,
                    "size": st.st_size,
                    "modified": _mtime_iso(st),
                })
        files.sort(key=lambda f: f["name"])
        return {"type": "directory", "files": files}

    def read(self, root: str | Path, relative: str | None) -> dict[str, Any]:
        """
        Read a text file inside the workspace.

        Returns:
            ``{content, name, size, modified}``

        Raises:
            InvalidArgument: If no path is given or the target is not a regular file
            Forbidden: On sandbox escape
            NotFound: If the file does not exist
            ResourceTooLarge: If the file exceeds ``max_read_bytes``
        """
        if not relative:
            raise InvalidArgument("path is required")

        path = self.resolve(root, relative)
        try:
            real = path.resolve(strict=True)
            st = os.lstat(real)
        except FileNotFoundError:
            raise NotFound("File not found") from None

        if stat.S_ISDIR(st.st_mode):
            raise InvalidArgument("Cannot read directory")
        if not stat.S_ISREG(st.st_mode):
            raise InvalidArgument("Not a regular file")
        if st.st_size > self.max_read_bytes:
            raise ResourceTooLarge("File too large to display")

        try:
            fd = os.open(real, os.O_RDONLY | os.O_NONBLOCK | os.O_NOFOLLOW)
        except FileNotFoundError:
            raise NotFound("File not found") from None
        except OSError as e:
            if e.errno != errno.ELOOP:
                raise
            logger.warning(f"Rejected symlink swapped in after check: {relative!r}")
            raise Forbidden("Access denied") from None

        with os.fdopen(fd, "rb") as f:
            opened = os.fstat(f.fileno())
            if (opened.st_dev, opened.st_ino) != (st.st_dev, st.st_ino) or not stat.S_ISREG(opened.st_mode):
                raise InvalidArgument("File changed while opening")
            data = f.read(self.max_read_bytes + 1)
        if len(data) > self.max_read_bytes:
            # Grew between stat and read
            raise ResourceTooLarge("File too large to display")

        return {
            "content": data.decode("utf-8", errors="replace"),
            "name": relative,
            "size": len(data),
            "modified": _mtime_iso(st),
        }
