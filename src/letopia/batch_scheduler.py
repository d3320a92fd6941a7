"""
batch_scheduler.py — Bounded-concurrency, rate-limited batch runner
===================================================================
Fans out N independent chat requests against a quota-limited upstream
without breaking its limits, and tolerates transient failures.

  RequestExecutor   One request: gate permit → rate slot → upstream call →
                    classify → (one retry on rate-limit) → record outcome.
  BatchScheduler    Partition 1..N into fixed-size batches; run each batch
                    concurrently, wait for all of it, sleep the batch delay,
                    move on.  Returns a RunSummary.

Batch delay
-----------
  delay = window / (requests_per_minute / batch_size)
  e.g. 15 req/min in batches of 5 → 3 batches per minute → 20 s per batch.

Known quirk
-----------
The single retry after a rate-limit error reuses the held concurrency
permit and does NOT go back through RateWindow, so a retry can push the
real upstream rate above the configured quota for that window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from letopia.batch_report import BatchReporter
from letopia.outcomes import (
    RequestOutcome,
    ResultAggregator,
    RunSummary,
    is_rate_limit_error,
)
from letopia.throttle import Clock, ConcurrencyGate, RateWindow, Sleep

logger = logging.getLogger(__name__)

Complete = Callable[[str], Awaitable[str]]

DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_POLL_INTERVAL  = 1.0
DEFAULT_RETRY_DELAY    = 5.0


def default_prompt(request_id: int) -> str:
    return f"Say 'Test {request_id} OK' in exactly 3 words."


def partition_batches(total_requests: int, batch_size: int) -> list[list[int]]:
    """Contiguous batches of request ids ``1..total_requests``; the last may be short."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    ids = list(range(1, total_requests + 1))
    return [ids[i:i + batch_size] for i in range(0, len(ids), batch_size)]


def compute_batch_delay(
    requests_per_minute: int,
    batch_size: int,
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
) -> float:
    if requests_per_minute < 1:
        raise ValueError("requests_per_minute must be at least 1")
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return window_seconds / (requests_per_minute / batch_size)


@dataclass(frozen=True)
class BatchPlan:
    total_requests:      int
    batch_size:          int
    concurrency_limit:   int
    requests_per_minute: int
    batches:             tuple[tuple[int, ...], ...]
    batch_delay:         float


# ─────────────────────────────────────────────────────────────────────────────
# Single request
# ─────────────────────────────────────────────────────────────────────────────

class RequestExecutor:
    """Runs one logical request to exactly one RequestOutcome."""

    def __init__(
        self,
        complete: Complete,
        gate: ConcurrencyGate,
        window: RateWindow,
        aggregator: ResultAggregator,
        reporter: Optional[BatchReporter] = None,
        prompt_for: Callable[[int], str] = default_prompt,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.complete    = complete
        self.gate        = gate
        self.window      = window
        self.aggregator  = aggregator
        self.reporter    = reporter or BatchReporter()
        self.prompt_for  = prompt_for
        self.retry_delay = retry_delay
        self._clock      = clock
        self._sleep      = sleep

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)

    async def execute(self, request_id: int) -> RequestOutcome:
        async with self.gate.permit():
            await self.window.acquire_slot()
            prompt  = self.prompt_for(request_id)
            started = self._clock()
            try:
                await self.complete(prompt)
            except Exception as exc:
                message = _error_text(exc)
                if is_rate_limit_error(message):
                    outcome = await self._retry_once(request_id, prompt)
                else:
                    outcome = RequestOutcome.failure(request_id, message, self._elapsed_ms(started))
            else:
                outcome = RequestOutcome.success(request_id, self._elapsed_ms(started))

            self.aggregator.record(outcome)
        self.reporter.request_finished(outcome)
        return outcome

    async def _retry_once(self, request_id: int, prompt: str) -> RequestOutcome:
        # Same permit, no new rate slot.
        self.reporter.request_rate_limited(request_id, self.retry_delay)
        logger.debug("Request %d rate limited; retrying in %.1fs", request_id, self.retry_delay)
        await self._sleep(self.retry_delay)

        started = self._clock()
        try:
            await self.complete(prompt)
        except Exception as exc:
            return RequestOutcome.failure(request_id, _error_text(exc), self._elapsed_ms(started))
        return RequestOutcome.success(request_id, self._elapsed_ms(started), retried=True)


def _error_text(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


# ─────────────────────────────────────────────────────────────────────────────
# Whole run
# ─────────────────────────────────────────────────────────────────────────────

class BatchScheduler:
    """
    Drives a full run.  Gate, rate window and aggregator are created fresh
    for every ``run()`` call; nothing survives between runs.
    """

    def __init__(
        self,
        complete: Complete,
        reporter: Optional[BatchReporter] = None,
        prompt_for: Callable[[int], str] = default_prompt,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.complete       = complete
        self.reporter       = reporter or BatchReporter()
        self.prompt_for     = prompt_for
        self.window_seconds = window_seconds
        self.poll_interval  = poll_interval
        self.retry_delay    = retry_delay
        self._clock         = clock
        self._sleep         = sleep

    def plan(
        self,
        total_requests: int,
        batch_size: int,
        concurrency_limit: int,
        requests_per_minute: int,
    ) -> BatchPlan:
        """Validate the run parameters and compute batches + delay up front."""
        if total_requests < 0:
            raise ValueError("total_requests must not be negative")
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        delay   = compute_batch_delay(requests_per_minute, batch_size, self.window_seconds)
        batches = tuple(tuple(b) for b in partition_batches(total_requests, batch_size))
        return BatchPlan(
            total_requests      = total_requests,
            batch_size          = batch_size,
            concurrency_limit   = concurrency_limit,
            requests_per_minute = requests_per_minute,
            batches             = batches,
            batch_delay         = delay,
        )

    async def run(
        self,
        total_requests: int,
        batch_size: int,
        concurrency_limit: int,
        requests_per_minute: int,
    ) -> RunSummary:
        plan = self.plan(total_requests, batch_size, concurrency_limit, requests_per_minute)

        aggregator = ResultAggregator()
        executor   = RequestExecutor(
            complete    = self.complete,
            gate        = ConcurrencyGate(concurrency_limit),
            window      = RateWindow(
                requests_per_minute,
                window_seconds = self.window_seconds,
                poll_interval  = self.poll_interval,
                clock          = self._clock,
                sleep          = self._sleep,
            ),
            aggregator  = aggregator,
            reporter    = self.reporter,
            prompt_for  = self.prompt_for,
            retry_delay = self.retry_delay,
            clock       = self._clock,
            sleep       = self._sleep,
        )

        self.reporter.run_started(plan)
        logger.info(
            "Batch run: %d request(s) in %d batch(es), delay %.1fs",
            total_requests, len(plan.batches), plan.batch_delay,
        )
        started = self._clock()

        for index, batch in enumerate(plan.batches, start=1):
            self.reporter.batch_started(index, len(plan.batches), len(batch))
            results = await asyncio.gather(
                *(executor.execute(request_id) for request_id in batch),
                return_exceptions=True,
            )
            for request_id, result in zip(batch, results):
                if isinstance(result, Exception):
                    self._record_fault(aggregator, request_id, result)
                elif isinstance(result, BaseException):
                    raise result

            if index < len(plan.batches):
                self.reporter.batch_waiting(plan.batch_delay)
                await self._sleep(plan.batch_delay)

        summary = aggregator.summarize(self._clock() - started, total_requests)
        self.reporter.run_finished(summary)
        return summary

    def _record_fault(self, aggregator: ResultAggregator, request_id: int, exc: Exception) -> None:
        """A fault outside the upstream call still yields exactly one outcome."""
        logger.warning("Request %d raised outside the upstream call: %r", request_id, exc)
        if aggregator.has(request_id):
            return
        aggregator.record(RequestOutcome.failure(request_id, _error_text(exc), 0))
