"""Shared fixtures for perch tests."""

import os
import sys
from pathlib import Path

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24

# chmod-based permission tests are meaningless as root or on Windows
requires_permissions = pytest.mark.skipif(
    sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
    reason="filesystem permissions are not enforced for this user",
)

requires_symlinks = pytest.mark.skipif(
    sys.platform == "win32", reason="symlinks need privileges on Windows"
)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small site tree plus a secret file next to (not inside) it.

    site/
        index.html
        img/logo.png
        docs/readme.txt
        docs/guide/intro.txt
    secret.txt
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<h1>Home</h1>")

    img = root / "img"
    img.mkdir()
    (img / "logo.png").write_bytes(PNG_BYTES)

    docs = root / "docs"
    docs.mkdir()
    (docs / "readme.txt").write_text("read me")
    guide = docs / "guide"
    guide.mkdir()
    (guide / "intro.txt").write_text("intro")

    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def locked():
    """chmod a path to 0 for the test, restoring it so tmp cleanup works."""
    changed: list[tuple[Path, int]] = []

    def lock(path: Path) -> Path:
        changed.append((path, path.stat().st_mode))
        path.chmod(0)
        return path

    yield lock

    for path, mode in reversed(changed):
        path.chmod(mode)
