"""Tests for the entry point plumbing."""
import asyncio
import logging
import signal
from unittest.mock import Mock

from tangoquiz.__main__ import handle_exception, request_stop


def test_unhandled_error_is_logged_without_stopping_the_loop(caplog) -> None:
    loop = Mock(spec=asyncio.AbstractEventLoop)

    with caplog.at_level(logging.ERROR, logger="tangoquiz"):
        handle_exception(loop, {"message": "Task exception was never retrieved", "exception": ValueError("boom")})

    loop.stop.assert_not_called()
    assert "Task exception was never retrieved" in caplog.text
    assert "ValueError: boom" in caplog.text


def test_error_without_exception_is_logged(caplog) -> None:
    loop = Mock(spec=asyncio.AbstractEventLoop)

    with caplog.at_level(logging.ERROR, logger="tangoquiz"):
        handle_exception(loop, {"message": "Unclosed client session"})

    loop.stop.assert_not_called()
    assert "Unclosed client session" in caplog.text


def test_signal_requests_stop() -> None:
    stop = asyncio.Event()

    request_stop(signal.SIGTERM, stop)

    assert stop.is_set()
