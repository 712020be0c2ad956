"""
Tests for terminal_broker.domain.sandbox.
"""

import os
import threading

import pytest

from terminal_broker.domain.errors import Forbidden, InvalidArgument, NotFound, ResourceTooLarge
from terminal_broker.domain.sandbox import SandboxedFileAccessor


@pytest.fixture
def root(tmp_path):
    ws = tmp_path / "claude-1"
    ws.mkdir()
    (ws / "src").mkdir()
    (ws / "src" / "main.py").write_text("print('hi')\n")
    (ws / "README.md").write_text("# Project\n")
    return ws


@pytest.fixture
def files():
    return SandboxedFileAccessor()


class TestResolve:

    @pytest.mark.parametrize("relative", ["../../etc", "..", "src/../../other", "/etc/passwd"])
    def test_escape_forbidden(self, files, root, relative):
        with pytest.raises(Forbidden):
            files.resolve(root, relative)

    def test_null_byte_forbidden(self, files, root):
        with pytest.raises(Forbidden):
            files.resolve(root, "README.md\x00.txt")

    def test_inner_dotdot_allowed(self, files, root):
        assert files.resolve(root, "src/../README.md") == root / "README.md"

    def test_empty_is_root(self, files, root):
        assert files.resolve(root, "") == root

    def test_symlink_escape_forbidden(self, files, root, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("top secret")
        os.symlink(outside, root / "link.txt")
        with pytest.raises(Forbidden):
            files.resolve(root, "link.txt")

    def test_escape_checked_before_filesystem(self, files, tmp_path):
        """Rejection does not depend on the target existing."""
        with pytest.raises(Forbidden):
            files.resolve(tmp_path / "missing-root", "../../etc")


class TestBrowse:

    def test_root_listing(self, files, root):
        result = files.browse(root, "")
        assert result["type"] == "directory"
        names = [f["name"] for f in result["files"]]
        assert names == ["README.md", "src"]
        by_name = {f["name"]: f for f in result["files"]}
        assert by_name["src"]["type"] == "directory"
        assert by_name["README.md"]["type"] == "file"
        assert by_name["README.md"]["size"] == len("# Project\n")

    def test_file_description(self, files, root):
        assert files.browse(root, "src/main.py") == {"type": "file", "name": "src/main.py"}

    def test_missing(self, files, root):
        with pytest.raises(NotFound):
            files.browse(root, "nope")

    def test_symlink_entry_not_followed(self, files, root, tmp_path):
        """Link to an outside file -> listed as a link, target size not disclosed."""
        outside = tmp_path / "secret.bin"
        outside.write_bytes(b"s" * 4096)
        os.symlink(outside, root / "leak")

        entry = {f["name"]: f for f in files.browse(root, "")["files"]}["leak"]

        assert entry["type"] == "symlink"
        assert entry["size"] != 4096
        assert entry["size"] == len(str(outside))

    def test_dangling_symlink_listed(self, files, root):
        os.symlink(root / "gone", root / "dangling")
        entry = {f["name"]: f for f in files.browse(root, "")["files"]}["dangling"]
        assert entry["type"] == "symlink"


class TestRead:

    def test_read_file(self, files, root):
        result = files.read(root, "src/main.py")
        assert result["content"] == "print('hi')\n"
        assert result["name"] == "src/main.py"
        assert result["size"] == 12
        assert result["modified"]

    def test_path_required(self, files, root):
        with pytest.raises(InvalidArgument):
            files.read(root, None)

    def test_directory_rejected(self, files, root):
        with pytest.raises(InvalidArgument):
            files.read(root, "src")

    def test_missing(self, files, root):
        with pytest.raises(NotFound):
            files.read(root, "missing.txt")

    def test_too_large(self, root):
        (root / "big.bin").write_bytes(b"x" * 11)
        with pytest.raises(ResourceTooLarge):
            SandboxedFileAccessor(max_read_bytes=10).read(root, "big.bin")

    def test_exactly_at_limit(self, root):
        (root / "edge.txt").write_bytes(b"x" * 10)
        assert SandboxedFileAccessor(max_read_bytes=10).read(root, "edge.txt")["size"] == 10

    def test_invalid_utf8_replaced(self, files, root):
        (root / "latin1.txt").write_bytes(b"caf\xe9")
        assert files.read(root, "latin1.txt")["content"] == "caf\ufffd"

    def test_escape_forbidden(self, files, root):
        with pytest.raises(Forbidden):
            files.read(root, "../../etc/passwd")

    def test_fifo_rejected_without_blocking(self, files, root):
        """Named pipe -> InvalidArgument before any open."""
        os.mkfifo(root / "pipe")
        outcome = []

        def attempt():
            try:
                files.read(root, "pipe")
            except InvalidArgument as e:
                outcome.append(e)

        worker = threading.Thread(target=attempt, daemon=True)
        worker.start()
        worker.join(timeout=3)

        assert not worker.is_alive()
        assert len(outcome) == 1

    def test_symlink_swapped_in_before_open(self, files, root, tmp_path, mocker):
        """File replaced by a link after the check -> Forbidden, target not read."""
        outside = tmp_path / "secret.txt"
        outside.write_text("top secret")
        target = root / "README.md"
        real_open = os.open
        seen_flags = []

        def swap_then_open(path, flags, *args):
            seen_flags.append(flags)
            target.unlink()
            os.symlink(outside, target)
            return real_open(path, flags, *args)

        mocker.patch("terminal_broker.domain.sandbox.os.open", side_effect=swap_then_open)

        with pytest.raises(Forbidden):
            files.read(root, "README.md")
        assert seen_flags[0] & os.O_NOFOLLOW
        assert seen_flags[0] & os.O_NONBLOCK

    def test_inode_changed_before_open(self, files, root, mocker):
        """File replaced by another regular file after the check -> InvalidArgument."""
        target = root / "README.md"
        real_open = os.open

        def replace_then_open(path, flags, *args):
            replacement = root / "README.new"
            replacement.write_text("replacement\n")
            os.replace(replacement, target)
            return real_open(path, flags, *args)

        mocker.patch("terminal_broker.domain.sandbox.os.open", side_effect=replace_then_open)

        with pytest.raises(InvalidArgument):
            files.read(root, "README.md")

    def test_link_inside_workspace_readable(self, files, root):
        os.symlink(root / "README.md", root / "readme-link")
        assert files.read(root, "readme-link")["content"] == "# Project\n"
