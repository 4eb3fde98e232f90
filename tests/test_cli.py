"""Tests for perch.cli — ``perch serve`` and ``perch run``."""

import types
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from perch.app import App
from perch.cli import main
from perch.cli._resolve import resolve_app
from perch.config import AppConfig


@pytest.fixture
def fake_app(monkeypatch: pytest.MonkeyPatch) -> App:
    """Register a fake module holding a perch App, a factory, and a non-app."""
    app = App(config=AppConfig(host="127.0.0.1", port=8000, debug=True))
    mod = types.ModuleType("_perch_test_app")
    mod.app = app  # type: ignore[attr-defined]
    mod.create_app = lambda: App()  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(__import__("sys").modules, "_perch_test_app", mod)
    return app


class TestPerchServe:
    @patch("perch.server.dev.run_dev_server")
    def test_serves_directory(self, mock_server: MagicMock, site_dir: Path) -> None:
        main(["serve", str(site_dir), "--mount", "/public", "--default", "index.html"])

        mock_server.assert_called_once()
        app, host, port = mock_server.call_args[0]
        assert isinstance(app, App)
        assert (host, port) == ("127.0.0.1", 8000)
        assert [r.path for r in app.routes] == ["/public", "/public/{path:path}"]
        site = app.routes[0].handler
        assert site.config.default_documents == ("index.html",)
        assert site.config.directory_browsing is False

    @patch("perch.server.dev.run_dev_server")
    def test_options(self, mock_server: MagicMock, site_dir: Path) -> None:
        main(
            [
                "serve",
                str(site_dir),
                "--default",
                "index.html",
                "--default",
                "default.htm",
                "--browse",
                "--host",
                "0.0.0.0",
                "--port",
                "3000",
                "--log-level",
                "warning",
            ]
        )
        app, host, port = mock_server.call_args[0]
        assert (host, port) == ("0.0.0.0", 3000)
        assert mock_server.call_args[1]["log_level"] == "warning"
        config = app.routes[0].handler.config
        assert config.default_documents == ("index.html", "default.htm")
        assert config.directory_browsing is True
        assert config.mount_prefix == ""

    @patch("perch.server.dev.run_dev_server")
    def test_missing_root_exits(
        self, mock_server: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["serve", str(tmp_path / "nope")])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err
        mock_server.assert_not_called()

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "serve" in capsys.readouterr().out


class TestPerchRun:
    @patch("perch.server.dev.run_dev_server")
    def test_config_defaults(self, mock_server: MagicMock, fake_app: App) -> None:
        main(["run", "_perch_test_app:app"])
        args = mock_server.call_args[0]
        assert args == (fake_app, "127.0.0.1", 8000)

    @patch("perch.server.dev.run_dev_server")
    def test_overrides_and_reload(self, mock_server: MagicMock, fake_app: App) -> None:
        main(["run", "_perch_test_app:app", "--host", "0.0.0.0", "--port", "3000"])
        args, kwargs = mock_server.call_args
        assert args[1:] == ("0.0.0.0", 3000)
        assert kwargs["reload"] is True
        assert kwargs["app_path"] == "_perch_test_app:app"

    @patch("perch.server.dev.run_dev_server")
    def test_bad_import_exits(
        self, mock_server: MagicMock, fake_app: App, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_perch_test_app:not_an_app"])
        assert exc_info.value.code == 1
        assert "not a perch.App instance" in capsys.readouterr().err


@pytest.mark.usefixtures("fake_app")
class TestResolveApp:
    def test_explicit_attribute(self, fake_app: App) -> None:
        assert resolve_app("_perch_test_app:app") is fake_app

    def test_default_attribute(self, fake_app: App) -> None:
        assert resolve_app("_perch_test_app") is fake_app

    def test_factory(self) -> None:
        assert isinstance(resolve_app("_perch_test_app:create_app"), App)

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("_perch_no_such_module:app")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_app("_perch_test_app:nope")

    def test_not_an_app(self) -> None:
        with pytest.raises(TypeError, match="str"):
            resolve_app("_perch_test_app:not_an_app")
