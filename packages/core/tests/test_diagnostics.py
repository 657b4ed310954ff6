"""Tests for the logging sink set up by the front-end."""

import io
import logging

from rich.console import Console

from redline_core.diagnostics import PACKAGE_LOGGERS, dispose_logging, init_logging


def test_handler_attached_to_package_loggers():
    handler = init_logging()
    try:
        for name in PACKAGE_LOGGERS:
            assert handler in logging.getLogger(name).handlers
    finally:
        dispose_logging(handler)
    for name in PACKAGE_LOGGERS:
        assert handler not in logging.getLogger(name).handlers


def test_verbose_enables_debug():
    handler = init_logging(verbose=True)
    try:
        assert logging.getLogger("redline_core").level == logging.DEBUG
    finally:
        dispose_logging(handler)


def test_quiet_mode_only_shows_warnings():
    buffer = io.StringIO()
    handler = init_logging(console=Console(file=buffer, width=120))
    try:
        logging.getLogger("redline_core.session").info("hidden detail")
        logging.getLogger("redline_core.session").warning("visible problem")
    finally:
        dispose_logging(handler)
    assert "visible problem" in buffer.getvalue()
    assert "hidden detail" not in buffer.getvalue()


def test_dispose_twice_is_safe():
    handler = init_logging()
    dispose_logging(handler)
    dispose_logging(handler)
