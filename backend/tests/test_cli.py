"""Tests for CLI commands: port validation, serve, and client routing."""

import argparse
import importlib
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from cli import _run_client, build_parser, cmd_serve, main, parse_port
from client import HashClientError


# ═══════════════════════════════════════════════════════════════════════════
#  parse_port
# ═══════════════════════════════════════════════════════════════════════════

class TestParsePort:
    def test_default_when_missing(self):
        assert parse_port(None, 8080) == 8080

    def test_valid_port(self):
        assert parse_port("9000", 8080) == 9000

    def test_upper_bound_inclusive(self):
        assert parse_port("65535", 8080) == 65535

    @pytest.mark.parametrize("raw", ["1024", "65536", "80", "0"])
    def test_out_of_range_exits(self, raw, caplog):
        with caplog.at_level(logging.ERROR, logger="hashpass-cli"):
            with pytest.raises(SystemExit) as exc:
                parse_port(raw, 8080)
        assert exc.value.code == 1
        assert "Port must be in range" in caplog.text

    def test_non_integer_exits(self, caplog):
        with caplog.at_level(logging.ERROR, logger="hashpass-cli"):
            with pytest.raises(SystemExit):
                parse_port("eighty", 8080)
        assert "Invalid port value 'eighty'" in caplog.text


# ═══════════════════════════════════════════════════════════════════════════
#  serve
# ═══════════════════════════════════════════════════════════════════════════

class TestCmdServe:
    @patch("main.serve")
    def test_serves_on_requested_port(self, mock_serve):
        cmd_serve(argparse.Namespace(port="9001", host="127.0.0.1"))
        mock_serve.assert_called_once_with("127.0.0.1", 9001)

    @patch("main.serve")
    def test_defaults_from_settings(self, mock_serve):
        from settings import settings
        cmd_serve(argparse.Namespace(port=None, host=None))
        mock_serve.assert_called_once_with(settings.HOST, settings.PORT)

    @patch("main.serve")
    def test_log_level_from_settings(self, mock_serve, monkeypatch):
        import settings as settings_mod
        root = logging.getLogger()
        previous = root.level
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        importlib.reload(settings_mod)
        try:
            cmd_serve(argparse.Namespace(port=None, host=None))
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)
            monkeypatch.undo()
            importlib.reload(settings_mod)
        mock_serve.assert_called_once()

    @patch("main.serve")
    def test_bad_port_never_starts(self, mock_serve):
        with pytest.raises(SystemExit):
            cmd_serve(argparse.Namespace(port="22", host=None))
        mock_serve.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
#  client commands
# ═══════════════════════════════════════════════════════════════════════════

def _fake_client():
    c = MagicMock()
    c.__enter__.return_value = c
    c.__exit__.return_value = False
    return c


class TestClientCommands:
    @patch("cli._client")
    def test_submit_prints_id(self, mock_client, capsys):
        c = _fake_client()
        c.submit.return_value = "1"
        mock_client.return_value = c
        main(["submit", "angryMonkey"])
        c.submit.assert_called_once_with("angryMonkey")
        assert capsys.readouterr().out.strip() == "1"

    @patch("cli._client")
    def test_stats_prints_json(self, mock_client, capsys):
        c = _fake_client()
        c.stats.return_value = {"total": 1, "average": 12}
        mock_client.return_value = c
        main(["stats"])
        assert json.loads(capsys.readouterr().out) == {"total": 1, "average": 12}

    @patch("cli._client")
    def test_shutdown_without_timeout(self, mock_client):
        c = _fake_client()
        c.shutdown.return_value = "bye"
        mock_client.return_value = c
        main(["shutdown"])
        c.shutdown.assert_called_once_with(timeout=None)

    @patch("cli._client")
    def test_error_exits(self, mock_client, caplog):
        c = _fake_client()
        c.result.side_effect = HashClientError(400, "Error: Invalid task Id")
        mock_client.return_value = c
        with caplog.at_level(logging.ERROR, logger="hashpass-cli"):
            with pytest.raises(SystemExit) as exc:
                main(["result", "99"])
        assert exc.value.code == 1
        assert "Invalid task Id" in caplog.text

    def test_run_client_uses_url(self):
        with patch("client.HashClient") as mock_cls:
            mock_cls.return_value = _fake_client()
            mock_cls.return_value.stats.return_value = {}
            _run_client(argparse.Namespace(url="http://example:9000"), lambda c: c.stats())
        mock_cls.assert_called_once_with(base_url="http://example:9000")


class TestParser:
    def test_url_default(self):
        args = build_parser().parse_args(["stats"])
        assert args.url == "http://127.0.0.1:8080"

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage" in capsys.readouterr().out.lower()
