"""Tests for the Typer command-line interface and console notifier."""

import pytest
from rich.console import Console
from typer.testing import CliRunner

from seedkeeper import __main__ as entry
from seedkeeper import __version__
from seedkeeper.cli import app as cli_app
from seedkeeper.cli.notifier import ConsoleNotifier
from seedkeeper.exceptions import ConfigurationError, RemoteUnavailableError

runner = CliRunner()

ENV_VARS = ("QBITTORRENT_URL", "QBITTORRENT_USERNAME", "QBITTORRENT_PASSWORD")


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    config_file = tmp_path / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", config_file)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return config_file


def test_version():
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_config(isolated_config):
    result = runner.invoke(
        cli_app.app, ["init", "http://qb:8080/", "admin", "secret", "-m", "4"]
    )

    assert result.exit_code == 0
    content = isolated_config.read_text(encoding="utf-8")
    assert "url = http://qb:8080" in content
    assert "seeding_multiplier = 4" in content


def test_init_refuses_to_overwrite_without_confirmation(isolated_config):
    isolated_config.write_text("[DEFAULT]\nurl = http://old:1\n", encoding="utf-8")

    result = runner.invoke(
        cli_app.app, ["init", "http://qb:8080", "admin", "secret"], input="n\n"
    )

    assert result.exit_code != 0
    assert "http://old:1" in isolated_config.read_text(encoding="utf-8")


def test_validate_fails_without_credentials():
    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 1


def test_validate_with_environment(monkeypatch):
    monkeypatch.setenv("QBITTORRENT_URL", "http://qb:8080")
    monkeypatch.setenv("QBITTORRENT_USERNAME", "admin")
    monkeypatch.setenv("QBITTORRENT_PASSWORD", "secret")

    result = runner.invoke(cli_app.app, ["validate"])

    assert result.exit_code == 0


def test_invalid_config_exits_with_error(isolated_config):
    isolated_config.write_text("[DEFAULT]\nurl = qb-without-scheme\n", encoding="utf-8")

    result = runner.invoke(cli_app.app, ["validate"])

    assert result.exit_code == 1


def test_delete_can_be_cancelled():
    result = runner.invoke(cli_app.app, ["delete", "a" * 40], input="n\n")

    assert result.exit_code != 0
    assert "cancelled" in result.output


@pytest.mark.asyncio
async def test_console_notifier_returns_editable_message():
    console = Console(record=True, width=120)
    notify = ConsoleNotifier(console)

    message = await notify("🌱 **Show**\nInitializing torrent...")
    await message.edit("**Show** (State: downloading)\n  [progress]\n")

    assert message.edits == 1
    assert message.content.startswith("**Show** (State: downloading)")
    output = console.export_text()
    assert "Initializing torrent..." in output
    assert "[progress]" in output


class TestMain:
    """Top-level error handling of the console script."""

    def _run_main(self, monkeypatch, error):
        def raising_app():
            raise error

        monkeypatch.setattr(entry, "app", raising_app)
        with pytest.raises(SystemExit) as exc_info:
            entry.main()
        return exc_info.value.code

    def test_configuration_error_exit_status(self, monkeypatch):
        assert self._run_main(monkeypatch, ConfigurationError("no url")) == 2

    def test_remote_error_exit_status(self, monkeypatch):
        assert self._run_main(monkeypatch, RemoteUnavailableError("down")) == 1

    def test_interrupt_exit_status(self, monkeypatch):
        assert self._run_main(monkeypatch, KeyboardInterrupt()) == 130

    def test_unexpected_error_exit_status(self, monkeypatch):
        assert self._run_main(monkeypatch, RuntimeError("boom")) == 1
