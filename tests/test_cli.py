import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from rest_security import __version__
from rest_security.__main__ import cli


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_config_file(runner: CliRunner, tmp_path):
    result = runner.invoke(cli, ["-c", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "missing.json" in result.output


def test_invalid_json(runner: CliRunner, write_config):
    result = runner.invoke(cli, ["-c", str(write_config("{ not json"))])

    assert result.exit_code == 1
    assert "error:" in result.output


def test_duplicate_user_aborts_startup(runner: CliRunner, write_config):
    users = [{"name": "admin", "secret": "a"}, {"name": "admin", "secret": "b"}]
    config = write_config(json.dumps({"http": {"security": {"jwt": {"users": users}}}}))

    result = runner.invoke(cli, ["-c", str(config)])

    assert result.exit_code == 1
    assert 'duplicate "admin"' in result.output


def test_unreadable_tls_files_abort_startup(runner: CliRunner, write_config, tmp_path):
    config = write_config('{"logging": {"level": 0}}')

    result = runner.invoke(
        cli,
        ["-c", str(config), "-k", str(tmp_path / "missing.key"), "-C", str(tmp_path / "missing.pem")],
    )

    assert result.exit_code == 1
    assert "security files" in result.output


@pytest.mark.parametrize(("level", "shown"), [(0, False), (1, False), (2, True), (3, True)])
def test_config_warnings_follow_log_level(runner: CliRunner, write_config, monkeypatch, level, shown):
    monkeypatch.setattr("flask.Flask.run", lambda self, **kwargs: None)
    config = write_config(json.dumps({"mqtt": {"port": 1883}}))

    result = runner.invoke(cli, ["-c", str(config), "-l", str(level)])

    assert result.exit_code == 0, result.output
    assert ("unrecognised configuration file section" in result.output) is shown


def test_options_override_config(runner: CliRunner, write_config, monkeypatch):
    captured = {}

    def fake_run(self, **kwargs):
        captured.update(kwargs)

    monkeypatch.setattr("flask.Flask.run", fake_run)
    config = write_config(json.dumps({"http": {"port": 8000}, "logging": {"level": 3}}))

    result = runner.invoke(cli, ["-c", str(config), "-l", "1", "--host", "127.0.0.1"])

    assert result.exit_code == 0, result.output
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 8000
    assert captured["ssl_context"] is None
    assert logging.getLogger().level == logging.ERROR
