"""
outcomes.py — Request outcomes, failure classification and run summary
======================================================================
The upstream chat client only gives us exception text, so classification
is plain substring matching on three markers:

  "429"    → rate limited
  "quota"  → hard quota exhaustion
  "rate"   → rate limited (also makes the request eligible for one retry)

All of that lives in ``is_rate_limit_error`` / ``classify_failure`` so a
structured error code can replace it without touching the scheduler.

Data model
----------
  OutcomeKind       Terminal classification of one request.
  RequestOutcome    One per request id, immutable.
  RunSummary        Aggregate over a run; derived once at the end.
  ResultAggregator  Lock-guarded outcome collection + ``summarize``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


MAX_FAILURE_MESSAGE = 50

RATE_LIMIT_MARKERS = ("429", "rate")
QUOTA_MARKER       = "quota"


# ─── Enumerations ────────────────────────────────────────────────────────────

class OutcomeKind(str, Enum):
    """Terminal state of one request, including any retry."""
    SUCCESS          = "success"
    SUCCESS_ON_RETRY = "success_on_retry"
    RATE_LIMITED     = "rate_limited"      # retry also failed
    QUOTA_EXCEEDED   = "quota_exceeded"
    OTHER_FAILURE    = "other_failure"

    @property
    def succeeded(self) -> bool:
        return self in (OutcomeKind.SUCCESS, OutcomeKind.SUCCESS_ON_RETRY)


# ─── Classification ──────────────────────────────────────────────────────────

def is_rate_limit_error(message: str) -> bool:
    """True when the upstream error text looks like throttling (case-sensitive)."""
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def truncate_message(message: str, limit: int = MAX_FAILURE_MESSAGE) -> str:
    return message[:limit] + "..." if len(message) > limit else message


def classify_failure(message: str) -> tuple[OutcomeKind, str]:
    """Map a final (non-retried or retry-exhausted) error message to a kind + display text."""
    if "429" in message:
        return OutcomeKind.RATE_LIMITED, "Rate Limited"
    if QUOTA_MARKER in message:
        return OutcomeKind.QUOTA_EXCEEDED, "Quota Exceeded"
    if "rate" in message:
        return OutcomeKind.RATE_LIMITED, "Rate Limited"
    return OutcomeKind.OTHER_FAILURE, truncate_message(message)


# ─── Result types ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RequestOutcome:
    request_id: int
    kind:       OutcomeKind
    message:    str
    latency_ms: int

    @property
    def succeeded(self) -> bool:
        return self.kind.succeeded

    @classmethod
    def success(cls, request_id: int, latency_ms: int, retried: bool = False) -> "RequestOutcome":
        if retried:
            return cls(request_id, OutcomeKind.SUCCESS_ON_RETRY, "Success (retry)", latency_ms)
        return cls(request_id, OutcomeKind.SUCCESS, "Success", latency_ms)

    @classmethod
    def failure(cls, request_id: int, error_message: str, latency_ms: int) -> "RequestOutcome":
        kind, message = classify_failure(error_message)
        return cls(request_id, kind, message, latency_ms)


@dataclass(frozen=True)
class RunSummary:
    """Aggregate view of one scheduler run."""
    total_requests:        int
    succeeded:             int
    failed:                int
    success_rate:          float   # percent of total requested
    avg_latency_ms:        float   # successful outcomes only
    duration_seconds:      float
    throughput_per_minute: float
    rate_limited:          int
    retried:               int
    outcomes:              tuple[RequestOutcome, ...] = ()

    @property
    def duration_ms(self) -> int:
        return int(self.duration_seconds * 1000)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0


# ─── Aggregation ─────────────────────────────────────────────────────────────

def summarize(
    outcomes: Iterable[RequestOutcome],
    total_duration: float,
    total_requests: Optional[int] = None,
) -> RunSummary:
    """
    Pure summary of a run.  ``total_requests`` defaults to the number of
    outcomes; an empty outcome set yields zero rates instead of failing.
    """
    ordered = tuple(sorted(outcomes, key=lambda o: o.request_id))
    total   = len(ordered) if total_requests is None else total_requests

    successes = [o for o in ordered if o.succeeded]
    failed    = len(ordered) - len(successes)
    avg       = sum(o.latency_ms for o in successes) / len(successes) if successes else 0.0
    minutes   = total_duration / 60.0

    return RunSummary(
        total_requests        = total,
        succeeded             = len(successes),
        failed                = failed,
        success_rate          = len(successes) * 100.0 / total if total else 0.0,
        avg_latency_ms        = avg,
        duration_seconds      = total_duration,
        throughput_per_minute = total / minutes if minutes > 0 else 0.0,
        rate_limited          = sum(1 for o in ordered if o.kind == OutcomeKind.RATE_LIMITED),
        retried               = sum(1 for o in ordered if o.kind == OutcomeKind.SUCCESS_ON_RETRY),
        outcomes              = ordered,
    )


class ResultAggregator:
    """Collects outcomes from concurrently running requests."""

    def __init__(self) -> None:
        self._outcomes: list[RequestOutcome] = []
        self._seen: set[int] = set()
        self._lock = threading.Lock()

    def record(self, outcome: RequestOutcome) -> None:
        with self._lock:
            if outcome.request_id in self._seen:
                raise ValueError(f"Outcome already recorded for request {outcome.request_id}")
            self._seen.add(outcome.request_id)
            self._outcomes.append(outcome)

    def has(self, request_id: int) -> bool:
        with self._lock:
            return request_id in self._seen

    def outcomes(self) -> list[RequestOutcome]:
        with self._lock:
            return sorted(self._outcomes, key=lambda o: o.request_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)

    def summarize(self, total_duration: float, total_requests: Optional[int] = None) -> RunSummary:
        return summarize(self.outcomes(), total_duration, total_requests)
