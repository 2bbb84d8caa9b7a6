from unittest.mock import Mock

import pytest
from typer.testing import CliRunner

from rendercache import cli
from rendercache.settings import save_settings

runner = CliRunner()


@pytest.fixture
def settings_path(tmp_path, monkeypatch):
    # Keep handlers bound to CliRunner's streams off the shared logger.
    monkeypatch.setattr(cli, "ensure_console_logger", Mock())
    path = tmp_path / "settings.json"
    save_settings(path)
    return path


def invoke(settings_path, *args):
    return runner.invoke(cli.app, ["--settings", str(settings_path), *args])


def test_init_db(settings_path):
    result = invoke(settings_path, "init-db")
    assert result.exit_code == 0, result.output
    assert (settings_path.parent / "rendercache.db").exists()


def test_prepare_creates_settings_and_metadata(settings_path):
    assert invoke(settings_path, "register-pixels", "7", "800", "600", "--owner", "5").exit_code == 0
    assert invoke(settings_path, "register-pixels", "8", "600", "800", "--owner", "5").exit_code == 0

    result = invoke(settings_path, "prepare", "7", "8", "--user", "5", "--size", "96")

    assert result.exit_code == 0, result.output
    assert "96x72" in result.output
    assert "72x96" in result.output
    assert "Created default settings for 2 pixel sets" in result.output


def test_prepare_explicit_dimensions(settings_path):
    invoke(settings_path, "register-pixels", "7", "800", "600", "--owner", "5")
    result = invoke(settings_path, "prepare", "7", "--user", "5", "--width", "64", "--height", "64")
    assert result.exit_code == 0, result.output
    assert "64x64" in result.output


def test_prepare_needs_both_width_and_height(settings_path):
    result = invoke(settings_path, "prepare", "7", "--user", "5", "--width", "64")
    assert result.exit_code != 0


def test_stale_exits_one_until_rendered(settings_path):
    invoke(settings_path, "register-pixels", "7", "800", "600", "--owner", "5")
    invoke(settings_path, "prepare", "7", "--user", "5")

    result = invoke(settings_path, "stale", "7", "--user", "5")

    assert result.exit_code == 1
    assert "needs rendering" in result.output


def test_stale_without_settings_is_unknown(settings_path):
    invoke(settings_path, "register-pixels", "7", "800", "600", "--owner", "5")
    result = invoke(settings_path, "stale", "7", "--user", "5")
    assert result.exit_code == 2


def test_invalid_settings_file(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "ensure_console_logger", Mock())
    path = tmp_path / "settings.json"
    path.write_text("{broken")
    result = runner.invoke(cli.app, ["--settings", str(path), "init-db"])
    assert result.exit_code == 2
