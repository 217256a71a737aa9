"""
Test suite for the rate-limit backoff retrier

Usage:
    pytest test_retry.py
"""

import pytest

from domain_checker_mcp.config import LookupConfig
from domain_checker_mcp.exceptions import RDAPLookupError
from domain_checker_mcp.retry import is_rate_limit_error, is_rate_limit_message, with_backoff


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def failing(message, succeed_after=None):
    """Build an operation that raises `message` until `succeed_after` calls."""
    calls = []

    async def operation():
        calls.append(1)
        if succeed_after is not None and len(calls) > succeed_after:
            return "ok"
        raise RDAPLookupError(message)

    return operation, calls


# =============================================================================
# Rate-limit detection
# =============================================================================

@pytest.mark.parametrize("text", [
    "RDAP status 429 Too Many Requests",
    "Rate limit exceeded",
    "query RATE LIMIT reached, try later",
    "too many requests",
])
def test_rate_limit_messages(text):
    assert is_rate_limit_message(text)


@pytest.mark.parametrize("text", [
    "RDAP status 404 Not Found",
    "Connection refused",
    "",
    None,
])
def test_non_rate_limit_messages(text):
    assert not is_rate_limit_message(text)


def test_rate_limit_error_uses_message():
    assert is_rate_limit_error(RDAPLookupError("429 Too Many Requests"))
    assert not is_rate_limit_error(ValueError("boom"))


# =============================================================================
# with_backoff
# =============================================================================

@pytest.mark.anyio
async def test_success_first_try_does_not_sleep():
    sleep = RecordingSleep()
    operation, calls = failing("unused", succeed_after=0)

    assert await with_backoff(operation, sleep=sleep) == "ok"
    assert len(calls) == 1
    assert sleep.delays == []


@pytest.mark.anyio
async def test_persistent_rate_limit_exhausts_three_attempts():
    sleep = RecordingSleep()
    operation, calls = failing("429 Too Many Requests")

    with pytest.raises(RDAPLookupError, match="Too Many Requests"):
        await with_backoff(operation, sleep=sleep)

    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.anyio
async def test_recovers_after_one_rate_limit():
    sleep = RecordingSleep()
    operation, calls = failing("rate limit exceeded", succeed_after=1)

    assert await with_backoff(operation, sleep=sleep) == "ok"
    assert len(calls) == 2
    assert sleep.delays == [1.0]


@pytest.mark.anyio
async def test_other_errors_are_not_retried():
    sleep = RecordingSleep()
    operation, calls = failing("Connection reset by peer")

    with pytest.raises(RDAPLookupError):
        await with_backoff(operation, sleep=sleep)

    assert len(calls) == 1
    assert sleep.delays == []


@pytest.mark.anyio
async def test_custom_backoff_schedule():
    sleep = RecordingSleep()
    config = LookupConfig(max_retries=4, initial_delay=0.5, backoff_multiplier=3.0)
    operation, calls = failing("Too Many Requests")

    with pytest.raises(RDAPLookupError):
        await with_backoff(operation, config, sleep)

    assert len(calls) == 4
    assert sleep.delays == [0.5, 1.5, 4.5]


@pytest.mark.anyio
async def test_single_attempt_config():
    sleep = RecordingSleep()
    operation, calls = failing("Too Many Requests")

    with pytest.raises(RDAPLookupError):
        await with_backoff(operation, LookupConfig(max_retries=1), sleep)

    assert len(calls) == 1
    assert sleep.delays == []
