"""Tests for per-session log context."""

import asyncio
import logging

import pytest

from payroll_validation.utils.logging import ContextFilter, log_context


def _record():
    return logging.LogRecord("payroll_validation", logging.INFO, __file__, 1, "message", None, None)


def test_filter_defaults_without_context():
    record = _record()
    assert ContextFilter().filter(record) is True
    assert record.claim_id == "-"
    assert record.session_id == "-"


def test_log_context_is_scoped_and_restored():
    context_filter = ContextFilter()
    with log_context(claim_id="claim-1", session_id="abc"):
        with log_context(session_id="def"):
            inner = _record()
            context_filter.filter(inner)
        outer = _record()
        context_filter.filter(outer)
    after = _record()
    context_filter.filter(after)

    assert (inner.claim_id, inner.session_id) == ("claim-1", "def")
    assert (outer.claim_id, outer.session_id) == ("claim-1", "abc")
    assert after.claim_id == "-"


@pytest.mark.asyncio
async def test_concurrent_tasks_keep_their_own_context():
    context_filter = ContextFilter()

    async def tagged(claim_id):
        with log_context(claim_id=claim_id):
            await asyncio.sleep(0.01)
            record = _record()
            context_filter.filter(record)
            return record.claim_id

    assert await asyncio.gather(tagged("claim-1"), tagged("claim-2")) == ["claim-1", "claim-2"]
