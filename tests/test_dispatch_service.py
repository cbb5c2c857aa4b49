"""
Unit tests for per-token dispatch and batch aggregation
"""
import random

import pytest

from premium_push.schemas.dispatch import (
    TEST_SENTINEL_TOKEN,
    DeliveryResult,
    DeliveryStatus,
    DispatchTarget,
    ErrorKind,
)
from premium_push.services.dispatch_service import NotificationDispatcher, summarize, token_problem
from conftest import FakeSender


def _targets(*tokens):
    return [DispatchTarget(device_id=f"d{i}", token=token) for i, token in enumerate(tokens)]


@pytest.mark.asyncio
async def test_sentinel_token_is_skipped_without_attempt(payload):
    sender = FakeSender()
    dispatcher = NotificationDispatcher(sender)

    batch = await dispatcher.dispatch(_targets(TEST_SENTINEL_TOKEN, "fcm-token-1"), payload)

    assert sender.sent == ["fcm-token-1"]
    skipped = batch.outcomes[0]
    assert skipped.status is DeliveryStatus.SKIPPED
    assert skipped.error_kind is ErrorKind.INVALID_TOKEN
    assert batch.outcomes[1].status is DeliveryStatus.DELIVERED


@pytest.mark.asyncio
async def test_missing_and_malformed_tokens_are_skipped(payload):
    sender = FakeSender()
    batch = await NotificationDispatcher(sender).dispatch(_targets(None, "  ", "has space"), payload)

    assert sender.sent == []
    assert [o.status for o in batch.outcomes] == [DeliveryStatus.SKIPPED] * 3
    assert batch.summary.skipped == 3


@pytest.mark.asyncio
async def test_auth_errors_are_aggregated_into_one_warning(payload):
    auth = DeliveryResult.failed(ErrorKind.AUTH_CONFIGURATION, "third-party-auth-error")
    sender = FakeSender({"t1": auth, "t2": auth})

    batch = await NotificationDispatcher(sender).dispatch(_targets("t1", "t2", "t3"), payload)

    summary = batch.summary
    assert summary.failed == 2
    assert summary.delivered == 1
    assert summary.errors_by_kind == {ErrorKind.AUTH_CONFIGURATION: 2}
    assert "2 device(s)" in summary.configuration_warning
    assert all(not o.retryable for o in batch.outcomes if o.error_kind is ErrorKind.AUTH_CONFIGURATION)
    # one attempt per token, no retry
    assert sorted(sender.sent) == ["t1", "t2", "t3"]


@pytest.mark.asyncio
async def test_slow_provider_is_classified_as_retryable_timeout(payload):
    sender = FakeSender(delay=0.5)

    batch = await NotificationDispatcher(sender, timeout_seconds=0.01).dispatch(_targets("t1"), payload)

    outcome = batch.outcomes[0]
    assert outcome.status is DeliveryStatus.FAILED
    assert outcome.error_kind is ErrorKind.TIMEOUT
    assert outcome.retryable is True


@pytest.mark.asyncio
async def test_sender_exception_becomes_provider_error(payload):
    sender = FakeSender({"t1": RuntimeError("socket closed")})

    batch = await NotificationDispatcher(sender).dispatch(_targets("t1"), payload)

    assert batch.outcomes[0].error_kind is ErrorKind.PROVIDER_ERROR
    assert batch.outcomes[0].message == "socket closed"


@pytest.mark.asyncio
async def test_concurrency_is_bounded(payload):
    sender = FakeSender(delay=0.02)

    batch = await NotificationDispatcher(sender, max_concurrency=2).dispatch(
        _targets(*[f"t{i}" for i in range(6)]), payload
    )

    assert batch.summary.delivered == 6
    assert sender.max_in_flight <= 2


@pytest.mark.asyncio
async def test_summary_counts_add_up_regardless_of_order(payload):
    sender = FakeSender(
        {
            "bad-auth": DeliveryResult.failed(ErrorKind.AUTH_CONFIGURATION),
            "gone": DeliveryResult.failed(ErrorKind.UNREGISTERED),
            "busy": DeliveryResult.failed(ErrorKind.RATE_LIMITED),
        }
    )
    targets = _targets("ok-1", "bad-auth", TEST_SENTINEL_TOKEN, "gone", None, "busy", "ok-2")

    batch = await NotificationDispatcher(sender, max_concurrency=3).dispatch(targets, payload)

    summary = batch.summary
    assert summary.total == len(targets)
    assert summary.delivered + summary.failed + summary.skipped == summary.total
    assert (summary.delivered, summary.failed, summary.skipped) == (2, 3, 2)

    shuffled = list(batch.outcomes)
    random.Random(7).shuffle(shuffled)
    assert summarize(shuffled) == summary
    assert summarize(reversed(batch.outcomes)) == summary


def test_dispatcher_rejects_zero_workers():
    with pytest.raises(ValueError):
        NotificationDispatcher(FakeSender(), max_concurrency=0)


def test_token_problem():
    assert token_problem(TEST_SENTINEL_TOKEN) == "test placeholder token"
    assert token_problem(None) == "missing push token"
    assert token_problem("ExponentPushToken[real]") is None
