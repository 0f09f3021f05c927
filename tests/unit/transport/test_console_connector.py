# tests/unit/transport/test_console_connector.py
"""Tests for the console:// connector."""

import json

import pytest

from faultline.errors import ConnectError, ConnectionLostError
from faultline.transport.connectors.console import ConsoleConnector


class TestConsoleConnector:
    def test_writes_json_line_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        connection = ConsoleConnector("console://stdout").open()

        connection.send('{"n": 1}')

        assert capsys.readouterr().out == '{"n": 1}\n'

    def test_writes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        connection = ConsoleConnector("console://stderr").open()

        connection.send('{"n": 2}')

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == '{"n": 2}\n'

    def test_missing_output_defaults_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        ConsoleConnector("console:").open().send("{}")
        assert capsys.readouterr().out == "{}\n"

    def test_pretty_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        connection = ConsoleConnector("console://stdout", pretty=True).open()

        connection.send('{"b": 1, "a": 2}')

        out = capsys.readouterr().out
        assert out.startswith("{\n")
        assert json.loads(out) == {"a": 2, "b": 1}

    def test_unknown_output_fails_to_connect(self) -> None:
        with pytest.raises(ConnectError, match="Invalid console output 'printer'"):
            ConsoleConnector("console://printer").open()

    def test_send_after_close_raises(self) -> None:
        connection = ConsoleConnector("console://stdout").open()
        connection.close()

        with pytest.raises(ConnectionLostError):
            connection.send("{}")

    def test_unknown_options_ignored(self) -> None:
        connector = ConsoleConnector("console://stdout", timeout=5.0)
        assert connector.endpoint == "console://stdout"
