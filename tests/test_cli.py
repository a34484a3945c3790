"""Tests for relay/cli.py — argument parsing, command loop and main()."""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pytest

from core.errors import BindHandshakeError
from relay.cli import _overrides, main, parse_args, run_command
from relay.triggers import EditorTriggers

# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.url == "wss://ws.dungeon-lab.cn/"
        assert args.connect_attempts == 3
        assert _overrides(args) == {}

    def test_overrides_use_config_keys(self) -> None:
        args = parse_args(
            ["--strength", "7", "--pulse-name", "潮汐", "--heartbeat-interval", "12", "--channels", "B"]
        )
        assert _overrides(args) == {
            "strength": 7,
            "pulseName": "潮汐",
            "heartbeatInterval": 12.0,
            "messageSendOption": "B",
        }

    def test_rejects_unknown_channel(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--channels", "C"])


# ---------------------------------------------------------------------------
# Command loop
# ---------------------------------------------------------------------------


@pytest.fixture()
def run(paired_client):
    triggers = EditorTriggers(paired_client)

    def _run(line: str) -> tuple[bool, str]:
        out = io.StringIO()
        keep_going = run_command(paired_client, triggers, line, out)
        return keep_going, out.getvalue().strip()

    return _run


class TestRunCommand:
    def test_fire(self, run, transport) -> None:
        assert run("fire 4") == (True, "ok")
        assert "strength-1+2+9" in transport.texts

    def test_wave_by_name(self, run, transport) -> None:
        assert run("wave 潮汐 1.5") == (True, "ok")
        assert transport.messages[0]["time"] == 1.5

    def test_unknown_wave_fails(self, run) -> None:
        assert run("wave nothing") == (True, "failed")

    def test_clear(self, run, transport) -> None:
        assert run("clear") == (True, "ok")
        assert transport.texts == ["clear-1", "clear-2"]

    def test_strength_raw(self, run, transport) -> None:
        assert run("strength 2 1 30") == (True, "ok")
        assert transport.messages == [
            {
                "type": 1,
                "channel": 2,
                "clientId": "c1",
                "targetId": "t1",
                "message": "set channel",
                "strength": 30,
            }
        ]

    def test_strength_invalid_kind(self, run, transport) -> None:
        assert run("strength 2 9 30") == (True, "failed")
        assert transport.sent == []

    def test_bad_arguments(self, run) -> None:
        keep_going, output = run("fire lots")
        assert keep_going is True
        assert output.startswith("bad arguments:")

    def test_disabled_trigger(self, run) -> None:
        assert run("debug-stop") == (True, "failed")

    def test_status(self, run) -> None:
        _, output = run("status")
        assert "client_id=c1" in output
        assert "devices=1" in output
        assert "pulse=呼吸" in output

    def test_metrics_prints_exposition(self, run) -> None:
        run("clear")
        keep_going, output = run("metrics")
        assert keep_going is True
        assert 'dglab_commands_sent_total{kind="clear"}' in output

    def test_unknown_command(self, run) -> None:
        assert run("dance") == (True, "unknown command: dance")

    def test_blank_line(self, run) -> None:
        assert run("   ") == (True, "")

    @pytest.mark.parametrize("line", ["quit", "exit", "QUIT"])
    def test_quit(self, run, line: str) -> None:
        assert run(line) == (False, "")


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def test_connect_failure_returns_1(self) -> None:
        with (
            patch("relay.cli.RelayClient") as client_cls,
            patch("relay.cli.EnvConfigSource"),
            patch("relay.cli.configure_logging"),
        ):
            client_cls.return_value.connect.side_effect = BindHandshakeError("refused")
            assert main(["--connect-attempts", "1"]) == 1
        client_cls.return_value.connect.assert_called_once()

    def test_prints_pairing_url_and_runs_loop(self, capsys) -> None:
        client = MagicMock()
        client.connect.return_value = "c1"
        client.pairing_url.return_value = "https://pair/c1"
        with (
            patch("relay.cli.RelayClient", return_value=client),
            patch("relay.cli.EnvConfigSource") as source_cls,
            patch("relay.cli.configure_logging"),
            patch("sys.stdin", io.StringIO("clear\nquit\nclear\n")),
        ):
            assert main(["--strength", "6"]) == 0

        out = capsys.readouterr().out
        assert "client id: c1" in out
        assert "https://pair/c1" in out
        client.clear_waves.assert_called_once()
        client.close.assert_called_once()
        source_cls.assert_called_once_with({"strength": 6})

    def test_metrics_port_starts_exporter(self) -> None:
        with (
            patch("relay.cli.RelayClient") as client_cls,
            patch("relay.cli.EnvConfigSource"),
            patch("relay.cli.configure_logging"),
            patch("relay.cli.start_metrics_server") as start,
        ):
            client_cls.return_value.connect.side_effect = BindHandshakeError("refused")
            main(["--connect-attempts", "1", "--metrics-port", "9464"])
        start.assert_called_once_with(9464)

    def test_no_exporter_by_default(self) -> None:
        with (
            patch("relay.cli.RelayClient") as client_cls,
            patch("relay.cli.EnvConfigSource"),
            patch("relay.cli.configure_logging"),
            patch("relay.cli.start_metrics_server") as start,
        ):
            client_cls.return_value.connect.side_effect = BindHandshakeError("refused")
            main(["--connect-attempts", "1"])
        start.assert_not_called()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def test_configure_logging_writes_to_stderr() -> None:
    import logging
    import sys

    from relay.logs import configure_logging

    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(logging.DEBUG)
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert root.level == logging.DEBUG
        assert logging.getLogger("websocket").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
