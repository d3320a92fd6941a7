"""
batch_report.py — Progress reporting for batch runs
===================================================
The scheduler emits events; reporters decide what to do with them.

  BatchReporter          No-op base class (used when no reporter is given).
  ConsoleBatchReporter   Rich console output: header, batch delimiters,
                         per-request status lines and the summary block.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rich.console import Console

from letopia.outcomes import OutcomeKind, RequestOutcome, RunSummary

if TYPE_CHECKING:
    from letopia.batch_scheduler import BatchPlan


RULE = "═" * 55


class BatchReporter:
    """Event hooks called by the scheduler.  Every hook is optional."""

    def run_started(self, plan: "BatchPlan") -> None:
        pass

    def batch_started(self, index: int, total_batches: int, size: int) -> None:
        pass

    def request_rate_limited(self, request_id: int, retry_delay: float) -> None:
        pass

    def request_finished(self, outcome: RequestOutcome) -> None:
        pass

    def batch_waiting(self, delay: float) -> None:
        pass

    def run_finished(self, summary: RunSummary) -> None:
        pass


class ConsoleBatchReporter(BatchReporter):
    def __init__(self, console: Optional[Console] = None, title: str = "") -> None:
        self.console = console or Console()
        self.title   = title

    def run_started(self, plan: "BatchPlan") -> None:
        c = self.console
        c.print(RULE)
        c.print(f"  Batch Processing Test: {self.title}" if self.title else "  Batch Processing Test")
        c.print(f"  Total Requests: {plan.total_requests}")
        c.print(f"  Max Concurrent: {plan.concurrency_limit}")
        c.print(f"  Rate Limit: {plan.requests_per_minute} req/min")
        c.print(f"  Batch Size: {plan.batch_size} | Batch Delay: {plan.batch_delay:g}s")
        c.print(RULE)
        c.print()
        c.print(f"  Processing {len(plan.batches)} batch(es)...")
        c.print()

    def batch_started(self, index: int, total_batches: int, size: int) -> None:
        self.console.print(
            f"  ── Batch {index}/{total_batches} ({size} requests) ──", style="cyan"
        )

    def request_rate_limited(self, request_id: int, retry_delay: float) -> None:
        self.console.print(
            f"    [⏳] Request {request_id}: Rate limited, retrying in {retry_delay:g}s...",
            style="yellow", markup=False,
        )

    def request_finished(self, outcome: RequestOutcome) -> None:
        rid, ms = outcome.request_id, outcome.latency_ms
        if outcome.kind == OutcomeKind.SUCCESS:
            line, style = f"    [✓] Request {rid}: Success ({ms}ms)", "green"
        elif outcome.kind == OutcomeKind.SUCCESS_ON_RETRY:
            line, style = f"    [✓] Request {rid}: Success on retry ({ms}ms)", "green"
        else:
            line, style = f"    [✗] Request {rid}: {outcome.message} ({ms}ms)", "red"
        # markup off: upstream error text may contain [brackets]
        self.console.print(line, style=style, markup=False)

    def batch_waiting(self, delay: float) -> None:
        self.console.print(f"    Waiting {delay:.1f}s before next batch...", style="bright_black")

    def run_finished(self, summary: RunSummary) -> None:
        c = self.console
        c.print()
        c.print(RULE)
        c.print("  RESULTS SUMMARY")
        c.print(RULE)
        c.print(f"  Total Requests:    {summary.total_requests}")
        c.print(f"  Successful:        {summary.succeeded}", style="green")
        c.print(f"  Failed:            {summary.failed}", style="red")
        c.print(f"  Success Rate:      {summary.success_rate:.1f}%")
        c.print(f"  Total Time:        {summary.duration_ms}ms ({summary.duration_seconds:.1f}s)")
        c.print(f"  Avg Response Time: {summary.avg_latency_ms:.0f}ms")
        c.print(f"  Throughput:        {summary.throughput_per_minute:.1f} req/min")
        c.print(RULE)

        if summary.rate_limited:
            c.print()
            c.print(f"  ⚠ {summary.rate_limited} requests were rate limited", style="yellow")

        if summary.all_succeeded:
            c.print()
            c.print("  ✓ All requests completed successfully!", style="green")
