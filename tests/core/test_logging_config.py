import logging

import pytest
import structlog

from rest_security.logging_config import LEVELS, TRACE, configure_logging, stdlib_level


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (-1, logging.CRITICAL),
        (0, logging.CRITICAL),
        (1, logging.ERROR),
        (2, logging.WARNING),
        (3, logging.INFO),
        (4, logging.DEBUG),
        (5, TRACE),
        (9, TRACE),
    ],
)
def test_stdlib_level(level, expected):
    assert stdlib_level(level) == expected


def test_trace_level_is_named():
    assert logging.getLevelName(TRACE) == "TRACE"
    assert len(LEVELS) == 6


def test_errors_go_to_stderr(capsys):
    configure_logging(3)
    log = structlog.get_logger("rest_security.test")

    log.info("server started", port=8888)
    log.error("failed to read security files")
    log.debug("hidden at level 3")

    captured = capsys.readouterr()
    assert "server started" in captured.out
    assert "port=8888" in captured.out
    assert "failed to read security files" not in captured.out
    assert "failed to read security files" in captured.err
    assert "hidden at level 3" not in captured.out + captured.err


def test_json_logs(capsys):
    configure_logging(4, json_logs=True)

    structlog.get_logger("rest_security.test").debug("token issued", user="admin")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    assert '"event": "token issued"' in line
    assert '"user": "admin"' in line
    assert '"level": "debug"' in line


def test_trace_records_only_at_level_five(capsys):
    stdlib_logger = logging.getLogger("rest_security.test.trace")

    configure_logging(4)
    stdlib_logger.log(TRACE, "hidden below trace")
    configure_logging(5)
    stdlib_logger.log(TRACE, "shown at trace")

    out = capsys.readouterr().out
    assert "hidden below trace" not in out
    assert "shown at trace" in out


def test_high_level_is_reported(capsys):
    configure_logging(7)

    assert "unexpected high log level" in capsys.readouterr().out
