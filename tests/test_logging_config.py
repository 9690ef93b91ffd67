from __future__ import annotations

import logging

import pytest

from logging_config import ContextualFormatter, build_logging_config
from models.session import Severity
from services.store_client import FetchFailure


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.scheduler", logging.WARNING, __file__, 1, "Poll failed", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(
        _record(reason=FetchFailure.unreachable, batch_id="VAC-1", status_code=None, ignored="x")
    )

    assert line == "Poll failed | batch_id=VAC-1 reason=unreachable"


def test_formatter_quotes_values_with_spaces() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["batch_id", "severity"])

    line = formatter.format(_record(batch_id="VAC 1", severity=Severity.critical))

    assert line == "Poll failed | batch_id='VAC 1' severity=critical"


def test_formatter_without_context_leaves_message_alone() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record()) == "Poll failed"


@pytest.mark.parametrize(
    "level, transport_level",
    [(logging.DEBUG, logging.DEBUG), (logging.INFO, logging.WARNING), (logging.ERROR, logging.ERROR)],
)
def test_transport_loggers_stay_quiet_unless_debugging(level: int, transport_level: int) -> None:
    config = build_logging_config(level)

    assert config["root"]["level"] == level
    assert config["loggers"]["httpx"]["level"] == transport_level
    assert config["loggers"]["httpcore"]["level"] == transport_level
