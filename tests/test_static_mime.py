"""Tests for perch.static.mime — content type by extension."""

from pathlib import Path

import pytest

from perch.static.mime import DEFAULT_CONTENT_TYPE, resolve_content_type


class TestResolveContentType:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("index.html", "text/html"),
            ("page.htm", "text/html"),
            ("style.css", "text/css"),
            ("app.js", "text/javascript"),
            ("module.mjs", "text/javascript"),
            ("data.json", "application/json"),
            ("logo.png", "image/png"),
            ("icon.svg", "image/svg+xml"),
            ("photo.webp", "image/webp"),
            ("font.woff2", "font/woff2"),
            ("notes.txt", "text/plain"),
        ],
    )
    def test_known_extensions(self, name: str, expected: str) -> None:
        assert resolve_content_type(Path("/srv") / name) == expected

    def test_case_insensitive_extension(self) -> None:
        assert resolve_content_type(Path("LOGO.PNG")) == "image/png"

    @pytest.mark.parametrize("name", ["blob.zzz", "Makefile", "archive."])
    def test_unknown_falls_back(self, name: str) -> None:
        assert resolve_content_type(Path(name)) == DEFAULT_CONTENT_TYPE
        assert DEFAULT_CONTENT_TYPE == "application/octet-stream"

    def test_directory_part_is_ignored(self) -> None:
        assert resolve_content_type(Path("/srv/v1.css/readme")) == DEFAULT_CONTENT_TYPE
