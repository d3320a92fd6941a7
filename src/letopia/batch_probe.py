"""
batch_probe.py — Batch throughput test against the chat endpoint (/test)
=======================================================================
Runs N short chat requests through BatchScheduler with the configured
concurrency / rate / batch limits and prints the per-request log and
summary.

Live mode   → real GitHub Models calls via ``openai.AsyncOpenAI``.
Mock mode   → ``simulated_completer``: random latency, occasional
              429-style failures; no credentials needed.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from openai import AsyncOpenAI
from rich.console import Console

from letopia.batch_report import ConsoleBatchReporter
from letopia.batch_scheduler import BatchScheduler, Complete
from letopia.config import Settings, get_settings
from letopia.outcomes import RunSummary

logger = logging.getLogger(__name__)


def make_async_client(settings: Settings) -> AsyncOpenAI:
    """
    GitHub Models client for batch runs.  SDK retries are off: the
    executor's single retry is the only one, and it is what the report shows.
    """
    if not settings.github.is_configured:
        raise EnvironmentError(
            "GitHub Models is not configured. Set GITHUB_TOKEN in your environment or .env file."
        )
    return AsyncOpenAI(
        base_url    = settings.github.endpoint,
        api_key     = settings.github.token,
        max_retries = 0,
    )


def make_chat_completer(settings: Settings, client: Optional[AsyncOpenAI] = None) -> Complete:
    """Async ``complete(prompt) -> text`` over GitHub Models."""
    client = client or make_async_client(settings)
    model  = settings.github.model_id

    async def complete(prompt: str) -> str:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    return complete


def simulated_completer(
    min_latency: float = 0.2,
    max_latency: float = 0.8,
    rate_limit_probability: float = 0.1,
    seed: Optional[int] = None,
) -> Complete:
    """Stand-in upstream for mock mode and tests."""
    rng = random.Random(seed)

    async def complete(prompt: str) -> str:
        await asyncio.sleep(rng.uniform(min_latency, max_latency))
        if rng.random() < rate_limit_probability:
            raise RuntimeError("Error code: 429 - rate limit exceeded for this model, please retry later")
        return "Test OK done"

    return complete


async def run_batch_probe_async(
    total_requests: int,
    settings: Optional[Settings] = None,
    console: Optional[Console] = None,
    complete: Optional[Complete] = None,
) -> RunSummary:
    settings = settings or get_settings()
    client: Optional[AsyncOpenAI] = None
    if complete is None:
        if settings.live_mode:
            client   = make_async_client(settings)
            complete = make_chat_completer(settings, client)
            title = settings.github.model_id
        else:
            logger.info("Mock mode: batch probe uses the simulated upstream")
            complete = simulated_completer()
            title = "simulated (mock mode)"
    else:
        title = settings.github.model_id

    scheduler = BatchScheduler(complete, reporter=ConsoleBatchReporter(console, title=title))
    try:
        return await scheduler.run(
            total_requests      = total_requests,
            batch_size          = settings.batch.batch_size,
            concurrency_limit   = settings.batch.max_concurrent_requests,
            requests_per_minute = settings.batch.requests_per_minute,
        )
    finally:
        if client is not None:
            await client.close()


def run_batch_probe(
    total_requests: int = 10,
    settings: Optional[Settings] = None,
    console: Optional[Console] = None,
    complete: Optional[Complete] = None,
) -> RunSummary:
    """Blocking entry point used by the CLI."""
    return asyncio.run(run_batch_probe_async(total_requests, settings, console, complete))
