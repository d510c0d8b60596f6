"""Tests for request id propagation into log records."""

import asyncio
import logging

import pytest

from booking_engine.logging_context import (
    LOG_FORMAT,
    NO_REQUEST_ID,
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    install_request_id,
    request_scope,
    set_request_id,
)


class TestRequestScope:
    def test_default_when_unset(self):
        assert get_request_id() == NO_REQUEST_ID

    def test_scope_sets_and_restores(self):
        with request_scope("REQ-outer"):
            assert get_request_id() == "REQ-outer"
            with request_scope() as inner:
                assert inner.startswith("REQ-")
                assert get_request_id() == inner
            assert get_request_id() == "REQ-outer"
        assert get_request_id() == NO_REQUEST_ID

    @pytest.mark.asyncio
    async def test_concurrent_tasks_keep_their_own_id(self):
        async def worker(request_id):
            with request_scope(request_id):
                await asyncio.sleep(0)
                return get_request_id()

        assert await asyncio.gather(worker("REQ-a"), worker("REQ-b")) == ["REQ-a", "REQ-b"]


class TestLogOutput:
    def _capture(self):
        stream_records = []

        class ListHandler(logging.Handler):
            def emit(self, record):
                stream_records.append(self.format(record))

        handler = ListHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        return handler, stream_records

    def test_request_id_printed_by_log_format(self):
        handler, lines = self._capture()
        install_request_id([handler])
        logger = logging.getLogger("booking_engine.test.plain")
        logger.addHandler(handler)
        try:
            with request_scope("REQ-1234abcd"):
                logger.warning("Reserving slot")
        finally:
            logger.removeHandler(handler)
        assert "[REQ-1234abcd]" in lines[0]
        assert "Reserving slot" in lines[0]

    def test_install_is_idempotent(self):
        handler, _ = self._capture()
        install_request_id([handler])
        install_request_id([handler])
        assert sum(isinstance(f, RequestIdFilter) for f in handler.filters) == 1

    def test_request_logger_has_single_filter(self):
        logger = get_request_logger("booking_engine.test.request")
        get_request_logger("booking_engine.test.request")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_set_request_id(self):
        with request_scope():
            set_request_id("REQ-manual")
            assert get_request_id() == "REQ-manual"
