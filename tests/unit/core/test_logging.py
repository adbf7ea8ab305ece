import logging

import pytest
import structlog

from quotaguard.core.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_logging():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_renderer_selected():
    configure_logging("debug", json_logs=True)

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    assert logging.getLogger().level == logging.DEBUG


def test_console_renderer_selected():
    configure_logging("warning", json_logs=False)

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_falls_back_to_info():
    configure_logging("chatty", json_logs=True)

    assert logging.getLogger().level == logging.INFO
