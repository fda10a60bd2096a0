"""Tests for the command-line entry point."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from src.adapters.dev_backend import InMemoryBackend
from src.adapters.dev_email import DevEmailAdapter
from src.app_shell import cli
from src.components.backends import RemoteList
from src.rules.models import Rules
from src.services.context import AppContext


def _write_rules(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


MAILGUN = {"kind": "mailgun", "api_url": "https://api.mailgun.net/v3", "api_key": "key-1"}


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCheckConfig:
    def test_valid_config(self, tmp_path: Path, capsys) -> None:
        path = _write_rules(tmp_path, {"backends": [MAILGUN], "smtp": {"enabled": False}})

        cli.main(["--config", str(path), "check-config"])

        assert "Configuration OK" in capsys.readouterr().out

    def test_missing_backend_exits_1(self, tmp_path: Path, capsys) -> None:
        path = _write_rules(tmp_path, {"smtp": {"enabled": False}})

        with pytest.raises(SystemExit) as exc:
            cli.main(["--config", str(path), "check-config"])

        assert exc.value.code == 1
        assert "No mailing-list backend configured" in capsys.readouterr().out

    def test_missing_rules_file_exits_1(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["--config", str(tmp_path / "absent.yaml"), "check-config"])

        assert exc.value.code == 1

    def test_invalid_rules_exit_1(self, tmp_path: Path) -> None:
        path = _write_rules(tmp_path, {"base_url": "x", "pipeline": {"mode": "batch"}})

        with pytest.raises(SystemExit) as exc:
            cli.main(["--config", str(path), "check-config"])

        assert exc.value.code == 1


class TestOverrides:
    def test_command_line_wins(self) -> None:
        args = cli.build_parser().parse_args(
            ["serve", "--base-url", "https://news.example.com/", "--base-path", "join/", "--dev"]
        )

        rules = cli.apply_overrides(Rules(), args)

        assert rules.base_url == "https://news.example.com"
        assert rules.base_path == "/join"
        assert rules.smtp.enabled is False

    def test_no_overrides_keeps_rules(self) -> None:
        args = cli.build_parser().parse_args(["check-config"])
        rules = Rules(base_url="https://example.com")

        assert cli.apply_overrides(rules, args) is rules


class TestServe:
    def test_dev_mode_runs_uvicorn(self, tmp_path: Path, monkeypatch) -> None:
        path = _write_rules(tmp_path, {})
        calls = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: calls.append((app, kw)))

        cli.main(["--config", str(path), "serve", "--dev", "--port", "9000"])

        assert len(calls) == 1
        app, kwargs = calls[0]
        assert kwargs["port"] == 9000
        assert kwargs["host"] == "127.0.0.1"
        assert isinstance(app.state.context.email, DevEmailAdapter)
        assert set(app.state.context.backends) == {"dev"}

    def test_invalid_config_does_not_serve(self, tmp_path: Path, monkeypatch) -> None:
        path = _write_rules(tmp_path, {"smtp": {"enabled": False}})
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: pytest.fail("served"))

        with pytest.raises(SystemExit):
            cli.main(["--config", str(path), "serve"])


class TestLists:
    def test_prints_filtered_lists(self, tmp_path: Path, monkeypatch, capsys) -> None:
        path = _write_rules(tmp_path, {"lists_exclude_regexp": "^internal"})
        backend = InMemoryBackend(
            lists=[
                RemoteList("news@lists.example.com", "News"),
                RemoteList("internal@lists.example.com", "Staff"),
            ]
        )
        original = AppContext.create

        def create(rules: Rules) -> AppContext:
            return original(rules, backends={"dev": backend}, email=DevEmailAdapter())

        monkeypatch.setattr(cli.AppContext, "create", create)

        cli.main(["--config", str(path), "lists"])

        out = capsys.readouterr().out
        assert "news@lists.example.com\tNews\t[dev]" in out
        assert "internal@" not in out

    def test_no_lists(self, tmp_path: Path, monkeypatch, capsys) -> None:
        path = _write_rules(tmp_path, {})
        original = AppContext.create

        def create(rules: Rules) -> AppContext:
            return original(rules, backends={}, email=DevEmailAdapter())

        monkeypatch.setattr(cli.AppContext, "create", create)

        cli.main(["--config", str(path), "lists"])

        assert "No mailing lists found." in capsys.readouterr().out
