"""Unit tests for the provider retry wrapper."""

import pytest

from codecoach.llm.errors import ProviderError
from codecoach.llm.retry import call_with_retries, is_temporary_error, retry_on_temporary_error
from codecoach.observability.telemetry import get_counters


class Flaky:
    """Callable that raises the given errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestIsTemporaryError:
    @pytest.mark.parametrize(
        "message",
        [
            "Gemini API error: 429",
            "Request timeout after 60s",
            "Provider returned a non-2xx status code",
            "You exceeded your current QUOTA",
            "503 Service Unavailable",
        ],
    )
    def test_retryable_markers(self, message):
        assert is_temporary_error(RuntimeError(message))

    def test_other_errors_are_permanent(self):
        assert not is_temporary_error(ValueError("Invalid API key"))
        assert not is_temporary_error(ProviderError.from_status("OpenAI", 401))

    @pytest.mark.parametrize("status", [408, 500, 502, 503, 529])
    def test_server_side_statuses_are_temporary(self, status):
        assert is_temporary_error(ProviderError.from_status("Gemini", status))


class TestCallWithRetries:
    def test_success_first_try(self, no_sleep):
        op = Flaky()
        assert call_with_retries(op, max_retries=3, sleep=no_sleep) == "ok"
        assert op.calls == 1
        assert no_sleep.delays == []

    def test_retries_exactly_max_retries_times(self, no_sleep):
        """A persistent temporary error is retried max_retries times, then re-raised."""
        errors = [ProviderError.from_status("Gemini", 429) for _ in range(10)]
        op = Flaky(*errors)

        with pytest.raises(ProviderError, match="429"):
            call_with_retries(op, max_retries=3, base_delay=2.0, sleep=no_sleep)

        assert op.calls == 4
        assert no_sleep.delays == [2.0, 4.0, 8.0]
        assert get_counters("llm.retry") == {"llm.retry": 3, "llm.retry_exhausted": 1}

    def test_non_matching_error_stops_immediately(self, no_sleep):
        op = Flaky(ValueError("bad request body"), ValueError("never reached"))

        with pytest.raises(ValueError, match="bad request body"):
            call_with_retries(op, max_retries=3, sleep=no_sleep)

        assert op.calls == 1
        assert no_sleep.delays == []

    def test_recovers_after_temporary_errors(self, no_sleep):
        op = Flaky(RuntimeError("timeout"), RuntimeError("429 Too Many Requests"))
        assert call_with_retries(op, max_retries=3, base_delay=1.0, sleep=no_sleep) == "ok"
        assert op.calls == 3
        assert no_sleep.delays == [1.0, 2.0]

    def test_retries_provider_server_errors(self, no_sleep):
        op = Flaky(*[ProviderError.from_status("Gemini", 503) for _ in range(10)])

        with pytest.raises(ProviderError, match="503"):
            call_with_retries(op, max_retries=3, base_delay=1.0, sleep=no_sleep)

        assert op.calls == 4
        assert no_sleep.delays == [1.0, 2.0, 4.0]

    def test_zero_retries_makes_one_call(self, no_sleep):
        op = Flaky(RuntimeError("quota exceeded"))
        with pytest.raises(RuntimeError):
            call_with_retries(op, max_retries=0, sleep=no_sleep)
        assert op.calls == 1


def test_decorator_retries():
    op = Flaky(RuntimeError("timeout"))

    @retry_on_temporary_error(max_retries=2, base_delay=0.0)
    def wrapped():
        return op()

    assert wrapped() == "ok"
    assert op.calls == 2
