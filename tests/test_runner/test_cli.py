"""Unit tests for the ``quapp`` dispatcher (quapp.runner.cli)."""

from __future__ import annotations

import sys
from unittest.mock import AsyncMock, patch

import pytest

from quapp.runner.cli import SUBCOMMANDS, main, run_script


class TestDispatch:
    @pytest.mark.unit
    @pytest.mark.parametrize("command", ["build", "serve"])
    def test_runs_subcommand_module(self, command):
        mock_script = AsyncMock(return_value=0)
        with patch("quapp.runner.cli.run_script", mock_script):
            with pytest.raises(SystemExit) as excinfo:
                main([command])

        assert excinfo.value.code == 0
        mock_script.assert_awaited_once_with(SUBCOMMANDS[command])

    @pytest.mark.unit
    def test_exit_code_propagates(self):
        with patch("quapp.runner.cli.run_script", AsyncMock(return_value=3)):
            with pytest.raises(SystemExit) as excinfo:
                main(["build"])
        assert excinfo.value.code == 3

    @pytest.mark.unit
    def test_extra_arguments_ignored(self):
        mock_script = AsyncMock(return_value=0)
        with patch("quapp.runner.cli.run_script", mock_script):
            with pytest.raises(SystemExit):
                main(["serve", "--port", "3000"])
        mock_script.assert_awaited_once_with("quapp.runner.server")

    @pytest.mark.unit
    def test_interrupt_exits_cleanly(self):
        with patch("quapp.runner.cli.run_script", AsyncMock(side_effect=KeyboardInterrupt)):
            with pytest.raises(SystemExit) as excinfo:
                main(["serve"])
        assert excinfo.value.code == 0


class TestUsage:
    @pytest.mark.unit
    @pytest.mark.parametrize("argv", [[], ["deploy"], ["-h"], ["--help"]])
    def test_usage_exits_zero(self, argv, capsys):
        mock_script = AsyncMock()
        with patch("quapp.runner.cli.run_script", mock_script):
            with pytest.raises(SystemExit) as excinfo:
                main(argv)

        assert excinfo.value.code == 0
        mock_script.assert_not_awaited()
        out = capsys.readouterr().out
        assert "quapp build" in out
        assert "quapp serve" in out

    @pytest.mark.unit
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert "quapp 1.2.0" in capsys.readouterr().out


class TestRunScript:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_runs_module_with_current_interpreter(self):
        mock_run = AsyncMock(return_value=(5, "", ""))
        with patch("quapp.runner.cli.run_command", mock_run):
            assert await run_script("quapp.runner.build") == 5

        mock_run.assert_awaited_once_with(
            [sys.executable, "-m", "quapp.runner.build"], capture=False
        )
