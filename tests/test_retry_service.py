"""
Tests for the bounded retry scheduler.
"""
import pytest

from tv_aggregator.errors import (
    RetryExhaustedError,
    SourceConfigurationError,
    SourceParseError,
    TransientFetchError,
)
from tv_aggregator.services.retry_service import run_with_retry
from tests.helpers import ScriptedFetch


class TestRunWithRetry:
    """Test attempt counting, progress callbacks and error propagation."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = ScriptedFetch("ok")
        attempts = []

        result = await run_with_retry(operation, max_attempts=3, interval=0, on_attempt=attempts.append)

        assert result == "ok"
        assert len(operation.calls) == 1
        assert attempts == []

    @pytest.mark.asyncio
    async def test_exhaustion_makes_exactly_max_attempts(self):
        operation = ScriptedFetch(TransientFetchError("connection refused"))
        attempts = []

        with pytest.raises(RetryExhaustedError) as exc_info:
            await run_with_retry(operation, max_attempts=3, interval=0, on_attempt=attempts.append)

        assert len(operation.calls) == 3
        assert attempts == [2, 3]
        assert exc_info.value.attempts == 3
        assert str(exc_info.value) == "connection refused"
        assert isinstance(exc_info.value.last_error, TransientFetchError)

    @pytest.mark.asyncio
    async def test_recovers_on_last_attempt(self):
        operation = ScriptedFetch(
            TransientFetchError("timeout"),
            TransientFetchError("timeout"),
            "channels",
        )
        attempts = []

        result = await run_with_retry(operation, max_attempts=3, interval=0, on_attempt=attempts.append)

        assert result == "channels"
        assert len(operation.calls) == 3
        assert attempts == [2, 3]

    @pytest.mark.asyncio
    async def test_async_progress_callback_is_awaited(self):
        operation = ScriptedFetch(TransientFetchError("timeout"), "ok")
        seen = []

        async def on_attempt(attempt):
            seen.append(attempt)

        assert await run_with_retry(operation, max_attempts=2, interval=0, on_attempt=on_attempt) == "ok"
        assert seen == [2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [SourceParseError("bad m3u"), SourceConfigurationError("bad url")])
    async def test_non_transient_errors_are_not_retried(self, error):
        operation = ScriptedFetch(error)
        attempts = []

        with pytest.raises(type(error)):
            await run_with_retry(operation, max_attempts=5, interval=0, on_attempt=attempts.append)

        assert len(operation.calls) == 1
        assert attempts == []

    @pytest.mark.asyncio
    async def test_single_attempt_budget(self):
        operation = ScriptedFetch(TransientFetchError("down"))

        with pytest.raises(RetryExhaustedError):
            await run_with_retry(operation, max_attempts=1, interval=0)

        assert len(operation.calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_attempt_budget(self):
        with pytest.raises(ValueError):
            await run_with_retry(ScriptedFetch("ok"), max_attempts=0, interval=0)

    @pytest.mark.asyncio
    async def test_custom_retry_on(self):
        operation = ScriptedFetch(KeyError("flaky"), "ok")

        result = await run_with_retry(operation, max_attempts=2, interval=0, retry_on=(KeyError,))

        assert result == "ok"
