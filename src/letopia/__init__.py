"""
letopia — Learning roadmap agent with a rate-limited batch scheduler
=====================================================================
Turns a free-text learning goal into a multi-phase roadmap by chatting
with a model on GitHub Models, and ships a batch runner that drives many
chat requests under a concurrency ceiling and a requests-per-minute quota.

Module map
----------
  config.py           Settings loaded from .env; live vs mock mode.
  models.py           Roadmap / Phase / Topic / Resource / Project (Pydantic).
  formatters.py       Markdown + JSON rendering and file helpers.
  web_search.py       Serper.dev client, platform site filters, URL checks.
  search_tools.py     Web search as JSON-returning agent function tools.
  roadmap_agent.py    RoadmapAgentService: threads, streaming, tool calls,
                      roadmap extraction.

  throttle.py         RateWindow (rolling quota) + ConcurrencyGate.
  outcomes.py         OutcomeKind, failure classification, RunSummary,
                      ResultAggregator.
  batch_scheduler.py  RequestExecutor + BatchScheduler.
  batch_report.py     Reporter hooks + rich console reporter.
  batch_probe.py      /test driver (live client or simulated upstream).
  cli.py              Interactive shell (`letopia` console script).

Batch run order
---------------
  partition 1..N → for each batch:
      gather(execute(id) for id in batch)   # gate → rate slot → call → retry?
      sleep(batch_delay) unless last batch
  → RunSummary
"""
__version__ = "0.1.0"
