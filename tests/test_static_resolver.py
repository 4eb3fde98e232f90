"""Tests for perch.static.resolver — request path to filesystem entry."""

import os
from pathlib import Path

import pytest
from conftest import requires_permissions, requires_symlinks

from perch.static.config import StaticRouteConfig
from perch.static.resolver import (
    EntryKind,
    Failure,
    FailureKind,
    ResolvedTarget,
    resolve,
    strip_mount,
)


@pytest.fixture
def config(site_dir: Path) -> StaticRouteConfig:
    return StaticRouteConfig.create(site_dir, "/public")


class TestStripMount:
    @pytest.mark.parametrize(
        ("mount", "path", "expected"),
        [
            ("public", "/public/img/a.png", "img/a.png"),
            ("public", "/public", ""),
            ("public", "/public/", ""),
            ("public", "/publicity/a.png", None),
            ("public", "/other/a.png", None),
            ("", "/img/a.png", "img/a.png"),
            ("", "/", ""),
            ("a/b", "/a/b/c", "c"),
        ],
    )
    def test_strip(self, mount: str, path: str, expected: str | None) -> None:
        assert strip_mount(mount, path) == expected


class TestResolve:
    def test_file(self, config: StaticRouteConfig, site_dir: Path) -> None:
        target = resolve(config, "/public/img/logo.png")
        assert isinstance(target, ResolvedTarget)
        assert target.kind is EntryKind.FILE
        assert target.path == (site_dir / "img" / "logo.png").resolve()
        assert target.relative == "img/logo.png"

    def test_mount_root_is_directory(self, config: StaticRouteConfig, site_dir: Path) -> None:
        target = resolve(config, "/public/")
        assert isinstance(target, ResolvedTarget)
        assert target.kind is EntryKind.DIRECTORY
        assert target.path == site_dir.resolve()
        assert target.relative == ""

    def test_subdirectory(self, config: StaticRouteConfig) -> None:
        target = resolve(config, "/public/docs")
        assert isinstance(target, ResolvedTarget)
        assert target.kind is EntryKind.DIRECTORY

    def test_dot_segments_inside_root(self, config: StaticRouteConfig, site_dir: Path) -> None:
        target = resolve(config, "/public/img/../index.html")
        assert isinstance(target, ResolvedTarget)
        assert target.path == (site_dir / "index.html").resolve()

    def test_missing(self, config: StaticRouteConfig) -> None:
        result = resolve(config, "/public/missing.txt")
        assert result == Failure(FailureKind.NOT_FOUND, "missing.txt")

    def test_file_used_as_directory(self, config: StaticRouteConfig) -> None:
        result = resolve(config, "/public/index.html/extra")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    def test_nul_byte(self, config: StaticRouteConfig) -> None:
        result = resolve(config, "/public/index\x00.html")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    def test_outside_mount(self, config: StaticRouteConfig) -> None:
        result = resolve(config, "/elsewhere/index.html")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    def test_root_mount(self, site_dir: Path) -> None:
        config = StaticRouteConfig.create(site_dir, "/")
        target = resolve(config, "/img/logo.png")
        assert isinstance(target, ResolvedTarget)
        assert target.kind is EntryKind.FILE

    def test_resolution_is_repeatable(self, config: StaticRouteConfig) -> None:
        assert resolve(config, "/public/docs/readme.txt") == resolve(
            config, "/public/docs/readme.txt"
        )


class TestContainment:
    @pytest.mark.parametrize(
        "path",
        [
            "/public/../secret.txt",
            "/public/img/../../secret.txt",
            "/public/docs/guide/../../../secret.txt",
            "/public/../../../../etc/passwd",
        ],
    )
    def test_traversal_is_not_found(self, config: StaticRouteConfig, path: str) -> None:
        result = resolve(config, path)
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    def test_sibling_with_shared_prefix(self, tmp_path: Path, site_dir: Path) -> None:
        """``site-other`` starts with ``site`` but is outside the root."""
        sibling = tmp_path / "site-other"
        sibling.mkdir()
        (sibling / "x.txt").write_text("x")
        config = StaticRouteConfig.create(site_dir, "/")

        result = resolve(config, "/../site-other/x.txt")
        assert isinstance(result, Failure)

    @requires_symlinks
    def test_symlink_out_of_root(self, config: StaticRouteConfig, site_dir: Path) -> None:
        (site_dir / "leak.txt").symlink_to(site_dir.parent / "secret.txt")
        result = resolve(config, "/public/leak.txt")
        assert result == Failure(FailureKind.NOT_FOUND, "leak.txt")

    @requires_symlinks
    def test_symlinked_directory_out_of_root(
        self, config: StaticRouteConfig, site_dir: Path
    ) -> None:
        (site_dir / "up").symlink_to(site_dir.parent, target_is_directory=True)
        result = resolve(config, "/public/up/secret.txt")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    @requires_symlinks
    def test_symlink_within_root(self, config: StaticRouteConfig, site_dir: Path) -> None:
        (site_dir / "home.html").symlink_to(site_dir / "index.html")
        target = resolve(config, "/public/home.html")
        assert isinstance(target, ResolvedTarget)
        assert target.path == (site_dir / "index.html").resolve()

    @requires_symlinks
    def test_symlink_loop(self, config: StaticRouteConfig, site_dir: Path) -> None:
        (site_dir / "a").symlink_to(site_dir / "b")
        (site_dir / "b").symlink_to(site_dir / "a")
        result = resolve(config, "/public/a")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND

    @requires_symlinks
    def test_dangling_symlink(self, config: StaticRouteConfig, site_dir: Path) -> None:
        (site_dir / "gone").symlink_to(site_dir / "nowhere")
        result = resolve(config, "/public/gone")
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.NOT_FOUND


class TestSpecialEntries:
    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="no FIFOs on this platform")
    def test_fifo_is_not_found(self, config: StaticRouteConfig, site_dir: Path) -> None:
        os.mkfifo(site_dir / "pipe")
        result = resolve(config, "/public/pipe")
        assert result == Failure(FailureKind.NOT_FOUND, "pipe")

    @requires_permissions
    def test_unsearchable_directory(
        self, config: StaticRouteConfig, site_dir: Path, locked
    ) -> None:
        locked(site_dir / "docs")
        result = resolve(config, "/public/docs/readme.txt")
        assert result == Failure(FailureKind.UNAUTHORIZED, "docs/readme.txt")

    @requires_permissions
    def test_unreadable_file(self, config: StaticRouteConfig, site_dir: Path, locked) -> None:
        locked(site_dir / "docs" / "readme.txt")
        result = resolve(config, "/public/docs/readme.txt")
        assert result == Failure(FailureKind.UNAUTHORIZED, "docs/readme.txt")
