"""
Per-token push delivery with outcome classification.

Each token gets exactly one attempt; retrying is left to whoever reads
the ``retryable`` flag on the outcomes.
"""
import asyncio
import logging
from collections import Counter
from typing import Iterable, List, Optional, Protocol, Sequence

from premium_push.schemas.dispatch import (
    TEST_SENTINEL_TOKEN,
    DeliveryResult,
    DeliveryStatus,
    DispatchBatch,
    DispatchOutcome,
    DispatchSummary,
    DispatchTarget,
    ErrorKind,
    PushPayload,
)
from premium_push.services.device_service import token_preview


log = logging.getLogger(__name__)


class PushSender(Protocol):

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        ...


def token_problem(token: Optional[str]) -> Optional[str]:
    if token is None or not token.strip():
        return "missing push token"
    if token == TEST_SENTINEL_TOKEN:
        return "test placeholder token"
    if any(ch.isspace() for ch in token):
        return "malformed push token"
    return None


def summarize(outcomes: Iterable[DispatchOutcome]) -> DispatchSummary:
    status_counts: Counter = Counter()
    kind_counts: Counter = Counter()
    for outcome in outcomes:
        status_counts[outcome.status] += 1
        if outcome.status is DeliveryStatus.FAILED and outcome.error_kind is not None:
            kind_counts[outcome.error_kind] += 1

    warning = None
    auth_failures = kind_counts.get(ErrorKind.AUTH_CONFIGURATION, 0)
    if auth_failures:
        warning = (
            f"Push provider rejected our credentials for {auth_failures} device(s); "
            "check the provider credential configuration"
        )

    return DispatchSummary(
        total=sum(status_counts.values()),
        delivered=status_counts[DeliveryStatus.DELIVERED],
        failed=status_counts[DeliveryStatus.FAILED],
        skipped=status_counts[DeliveryStatus.SKIPPED],
        errors_by_kind=dict(kind_counts),
        configuration_warning=warning,
    )


class NotificationDispatcher:

    def __init__(self, sender: PushSender, timeout_seconds: float = 10.0, max_concurrency: int = 8) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._sender = sender
        self._timeout = timeout_seconds
        self._max_concurrency = max_concurrency

    async def dispatch(self, targets: Sequence[DispatchTarget], payload: PushPayload) -> DispatchBatch:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(target: DispatchTarget) -> DispatchOutcome:
            async with semaphore:
                return await self._attempt(target, payload)

        outcomes: List[DispatchOutcome] = list(await asyncio.gather(*(_bounded(t) for t in targets)))
        summary = summarize(outcomes)
        log.info(
            "Dispatched %d target(s): delivered=%d failed=%d skipped=%d",
            summary.total,
            summary.delivered,
            summary.failed,
            summary.skipped,
        )
        if summary.configuration_warning:
            log.warning(summary.configuration_warning)
        return DispatchBatch(outcomes=outcomes, summary=summary)

    async def _attempt(self, target: DispatchTarget, payload: PushPayload) -> DispatchOutcome:
        problem = token_problem(target.token)
        if problem:
            return DispatchOutcome(
                device_id=target.device_id,
                status=DeliveryStatus.SKIPPED,
                error_kind=ErrorKind.INVALID_TOKEN,
                message=problem,
            )

        try:
            result = await asyncio.wait_for(self._sender.send(target.token, payload), timeout=self._timeout)
        except asyncio.TimeoutError:
            log.warning("Push to %s timed out after %.1fs", token_preview(target.token), self._timeout)
            result = DeliveryResult.failed(ErrorKind.TIMEOUT, f"no response within {self._timeout:g}s")
        except Exception as exc:
            log.exception("Push to %s raised", token_preview(target.token))
            result = DeliveryResult.failed(ErrorKind.PROVIDER_ERROR, str(exc))

        if result.delivered:
            return DispatchOutcome(device_id=target.device_id, status=DeliveryStatus.DELIVERED)

        kind = result.error_kind or ErrorKind.PROVIDER_ERROR
        if kind is not ErrorKind.AUTH_CONFIGURATION:
            # auth failures are reported once per batch by summarize()
            log.error("Push to %s failed: %s %s", token_preview(target.token), kind.value, result.message or "")
        return DispatchOutcome(
            device_id=target.device_id,
            status=DeliveryStatus.FAILED,
            error_kind=kind,
            retryable=kind.retryable,
            message=result.message,
        )
