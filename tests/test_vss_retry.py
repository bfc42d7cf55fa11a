"""Tests for retry policies and the retry loop.

Verifies:
- Exponential backoff schedule, cap, and retryable-only behavior
- Max-attempts, jitter and filter wrappers compose
- retry() runs attempts sequentially, sleeps the decided delay,
  re-raises the final error verbatim, and never retries non-VssError
"""

from __future__ import annotations

import asyncio

import pytest

from vss_client.codec import JsonCodec
from vss_client.errors import (
    ConflictError,
    MalformedResponseError,
    VssError,
    VssServerError,
    VssTransportError,
    classify_response,
)
from vss_client.models import ErrorCode, ErrorResponse
from vss_client.retry import (
    ComposableRetryPolicy,
    ExponentialBackoffRetryPolicy,
    FilteredRetryPolicy,
    JitteredRetryPolicy,
    MaxAttemptsRetryPolicy,
    NoRetryPolicy,
    RetryAfter,
    RetryPolicy,
    Stop,
    retry,
)

CODEC = JsonCodec()

SERVER_ERROR = classify_response(503, b"busy", CODEC)
CLIENT_ERROR = classify_response(400, b"bad", CODEC)
CONFLICT_ERROR = classify_response(
    409,
    CODEC.encode(ErrorResponse(error_code=ErrorCode.CONFLICT_EXCEPTION, message="stale")),
    CODEC,
)


class TestDecisions:
    def test_retry_after_rejects_negative_delay(self) -> None:
        with pytest.raises(ValueError):
            RetryAfter(-1.0)

    def test_decisions_compare_by_value(self) -> None:
        assert Stop() == Stop()
        assert RetryAfter(0.5) == RetryAfter(0.5)


class TestComposableRetryPolicy:
    def test_base_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            ComposableRetryPolicy()  # type: ignore[abstract]

    def test_subclass_without_decide_cannot_be_instantiated(self) -> None:
        class Incomplete(ComposableRetryPolicy):
            pass

        with pytest.raises(TypeError):
            Incomplete()  # type: ignore[abstract]


class TestNoRetryPolicy:
    def test_always_stops(self) -> None:
        policy = NoRetryPolicy()

        assert isinstance(policy, RetryPolicy)
        assert policy.decide(1, SERVER_ERROR) == Stop()


class TestExponentialBackoffRetryPolicy:
    def test_exponential_schedule(self) -> None:
        policy = ExponentialBackoffRetryPolicy(base_delay_seconds=0.1)

        assert policy.decide(1, SERVER_ERROR) == RetryAfter(0.1)
        assert policy.decide(2, SERVER_ERROR) == RetryAfter(0.2)
        assert policy.decide(3, SERVER_ERROR) == RetryAfter(0.4)
        assert policy.decide(4, SERVER_ERROR) == RetryAfter(0.8)

    def test_cap_applied(self) -> None:
        policy = ExponentialBackoffRetryPolicy(base_delay_seconds=1.0, max_delay_seconds=5.0)

        assert policy.compute_delay(3) == 4.0
        assert policy.compute_delay(4) == 5.0
        assert policy.compute_delay(500) == 5.0

    def test_retries_transport_errors(self) -> None:
        policy = ExponentialBackoffRetryPolicy(base_delay_seconds=0.0)

        assert isinstance(policy.decide(1, VssTransportError()), RetryAfter)

    @pytest.mark.parametrize(
        "error",
        [CLIENT_ERROR, CONFLICT_ERROR, MalformedResponseError(status_code=200, body=b"")],
    )
    def test_stops_on_non_retryable(self, error: VssError) -> None:
        policy = ExponentialBackoffRetryPolicy(base_delay_seconds=0.1)

        assert policy.decide(1, error) == Stop()

    def test_rejects_negative_base(self) -> None:
        with pytest.raises(ValueError):
            ExponentialBackoffRetryPolicy(base_delay_seconds=-0.1)


class TestPolicyWrappers:
    def test_max_attempts_bounds_total_attempts(self) -> None:
        policy = ExponentialBackoffRetryPolicy(0.0).with_max_attempts(3)

        assert isinstance(policy, MaxAttemptsRetryPolicy)
        assert isinstance(policy.decide(1, SERVER_ERROR), RetryAfter)
        assert isinstance(policy.decide(2, SERVER_ERROR), RetryAfter)
        assert policy.decide(3, SERVER_ERROR) == Stop()

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            MaxAttemptsRetryPolicy(NoRetryPolicy(), 0)

    def test_jitter_within_bounds(self) -> None:
        policy = ExponentialBackoffRetryPolicy(1.0).with_max_jitter(0.5)

        assert isinstance(policy, JitteredRetryPolicy)
        for _ in range(100):
            decision = policy.decide(1, SERVER_ERROR)
            assert isinstance(decision, RetryAfter)
            assert 1.0 <= decision.delay_seconds <= 1.5

    def test_jitter_keeps_stop(self) -> None:
        policy = ExponentialBackoffRetryPolicy(1.0).with_max_jitter(0.5)

        assert policy.decide(1, CLIENT_ERROR) == Stop()

    def test_filter_skips_matching_errors(self) -> None:
        policy = ExponentialBackoffRetryPolicy(0.0).skip_retry_on_error(
            lambda e: isinstance(e, VssTransportError)
        )

        assert isinstance(policy, FilteredRetryPolicy)
        assert policy.decide(1, VssTransportError()) == Stop()
        assert isinstance(policy.decide(1, SERVER_ERROR), RetryAfter)

    def test_wrappers_compose(self) -> None:
        policy = (
            ExponentialBackoffRetryPolicy(0.1)
            .with_max_jitter(0.0)
            .with_max_attempts(2)
            .skip_retry_on_error(lambda e: isinstance(e, ConflictError))
        )

        assert policy.decide(1, SERVER_ERROR) == RetryAfter(0.1)
        assert policy.decide(2, SERVER_ERROR) == Stop()
        assert policy.decide(1, CONFLICT_ERROR) == Stop()


class RecordingPolicy:
    """Retries up to `retries` times with fixed delay, recording every call."""

    def __init__(self, retries: int, delay: float = 0.25) -> None:
        self._retries = retries
        self._delay = delay
        self.calls: list[tuple[int, VssError]] = []

    def decide(self, attempt: int, error: VssError) -> Stop | RetryAfter:
        self.calls.append((attempt, error))
        if attempt > self._retries:
            return Stop()
        return RetryAfter(self._delay)


class TestRetryLoop:
    @staticmethod
    def _run(operation, policy, sleeps: list[float]):  # type: ignore[no-untyped-def]
        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        return asyncio.run(retry(operation, policy, sleep=fake_sleep))

    def test_success_first_try_never_consults_policy(self) -> None:
        policy = RecordingPolicy(retries=5)
        sleeps: list[float] = []

        async def operation() -> str:
            return "ok"

        assert self._run(operation, policy, sleeps) == "ok"
        assert policy.calls == []
        assert sleeps == []

    def test_attempt_numbers_start_at_one_and_delay_is_slept(self) -> None:
        policy = RecordingPolicy(retries=2)
        sleeps: list[float] = []
        outcomes: list[object] = [SERVER_ERROR, SERVER_ERROR, "done"]

        async def operation() -> object:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert self._run(operation, policy, sleeps) == "done"
        assert [attempt for attempt, _ in policy.calls] == [1, 2]
        assert sleeps == [0.25, 0.25]

    def test_final_error_reraised_verbatim(self) -> None:
        policy = RecordingPolicy(retries=1)
        errors = [classify_response(500, b"a", CODEC), classify_response(503, b"b", CODEC)]
        raised = list(errors)

        async def operation() -> None:
            raise raised.pop(0)

        with pytest.raises(VssServerError) as exc_info:
            self._run(operation, policy, [])

        assert exc_info.value is errors[1]
        assert exc_info.value.body == b"b"

    def test_non_vss_errors_propagate_without_policy(self) -> None:
        policy = RecordingPolicy(retries=5)

        async def operation() -> None:
            raise KeyError("bug")

        with pytest.raises(KeyError):
            self._run(operation, policy, [])

        assert policy.calls == []

    def test_loop_has_no_attempt_bound_of_its_own(self) -> None:
        policy = RecordingPolicy(retries=50, delay=0.0)
        count = 0

        async def operation() -> int:
            nonlocal count
            count += 1
            if count <= 50:
                raise SERVER_ERROR
            return count

        assert self._run(operation, policy, []) == 51

    def test_attempts_are_sequential(self) -> None:
        in_flight = 0
        max_in_flight = 0
        remaining_failures = 3

        async def operation() -> str:
            nonlocal in_flight, max_in_flight, remaining_failures
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            if remaining_failures:
                remaining_failures -= 1
                raise SERVER_ERROR
            return "ok"

        policy = ExponentialBackoffRetryPolicy(0.0).with_max_attempts(10)

        assert asyncio.run(retry(operation, policy)) == "ok"
        assert max_in_flight == 1
