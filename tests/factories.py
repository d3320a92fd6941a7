"""
Factory helpers and fakes for building test objects.
Imported by conftest.py fixtures AND directly by test modules.
"""
import asyncio
import os
import re
import sys
import time
from collections import defaultdict
from types import SimpleNamespace

# Ensure both src/ and tests/ are importable in all test files
_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode (safe to call multiple times)
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("GITHUB_TOKEN",   "<placeholder>")
os.environ.setdefault("SERPER_API_KEY", "<placeholder>")

from letopia.batch_report import BatchReporter
from letopia.config import (
    DEFAULT_ENDPOINT,
    AppConfig,
    BatchConfig,
    GitHubModelsConfig,
    SearchConfig,
    Settings,
)
from letopia.models import (
    Difficulty,
    Phase,
    Project,
    Resource,
    ResourceType,
    Roadmap,
    Topic,
)


# ─── Settings ─────────────────────────────────────────────────────────────────

def make_settings(
    token: str = "",
    serper_key: str = "",
    max_concurrent: int = 5,
    requests_per_minute: int = 15,
    batch_size: int = 5,
    force_mock: bool = True,
    model_id: str = "gpt-4o",
    endpoint: str = DEFAULT_ENDPOINT,
) -> Settings:
    return Settings(
        github = GitHubModelsConfig(token=token, model_id=model_id, endpoint=endpoint),
        search = SearchConfig(serper_api_key=serper_key),
        batch  = BatchConfig(
            max_concurrent_requests = max_concurrent,
            requests_per_minute     = requests_per_minute,
            batch_size              = batch_size,
        ),
        app    = AppConfig(force_mock_mode=force_mock, log_level="WARNING"),
    )


# ─── Roadmap ──────────────────────────────────────────────────────────────────

def make_roadmap(title: str = "Frontend Developer Roadmap", with_url: bool = True) -> Roadmap:
    return Roadmap(
        title           = title,
        domain          = "frontend",
        description     = "From HTML basics to shipping a React app.",
        target_audience = "Beginners with some computer literacy",
        prerequisites   = ["Basic computer skills"],
        total_duration  = "12 weeks",
        phases = [
            Phase(
                phase_number        = 1,
                title               = "Web Foundations",
                duration            = "4 weeks",
                learning_objectives = ["Write semantic HTML", "Style pages with CSS"],
                topics = [
                    Topic(
                        name           = "HTML",
                        description    = "Structure of web pages.",
                        key_concepts   = ["Elements", "Forms"],
                        hands_on_tasks = ["Build a personal page"],
                        resources = [
                            Resource(
                                title          = "HTML basics",
                                type           = ResourceType.DOCUMENTATION,
                                url            = "https://developer.mozilla.org/en-US/docs/Learn/HTML" if with_url else "",
                                difficulty     = Difficulty.BEGINNER,
                                estimated_time = "3 hours",
                            ),
                        ],
                    ),
                ],
                projects = [
                    Project(
                        name             = "Portfolio page",
                        description      = "A static portfolio site.",
                        skills_practiced = ["HTML", "CSS"],
                        difficulty       = Difficulty.BEGINNER,
                        estimated_time   = "1 week",
                        requirements     = ["Responsive layout"],
                    ),
                ],
                milestones = ["Portfolio deployed"],
            ),
        ],
        next_steps = ["Learn TypeScript"],
    )


# ─── Clock ────────────────────────────────────────────────────────────────────

class FakeClock:
    """Virtual time for a single coroutine: ``sleep`` advances ``now`` instantly."""

    def __init__(self, start: float = 0.0):
        self.now    = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


# ─── Upstream stand-in ────────────────────────────────────────────────────────

class ScriptedCompleter:
    """
    Async ``complete(prompt)`` stand-in.  The request id is the first number
    in the prompt.  ``script[id]`` lists per-attempt errors (None = succeed);
    attempts beyond the script succeed.
    """

    def __init__(self, script: dict | None = None, latency: float = 0.01):
        self.script    = {k: list(v) for k, v in (script or {}).items()}
        self.latency   = latency
        self.calls: list[int] = []
        self.starts    = defaultdict(list)
        self.ends: dict[int, float] = {}
        self.in_flight = 0
        self.peak      = 0

    async def __call__(self, prompt: str) -> str:
        request_id = int(re.search(r"\d+", prompt).group())
        self.calls.append(request_id)
        self.starts[request_id].append(time.monotonic())
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.latency)
            attempts = self.script.get(request_id)
            error = attempts.pop(0) if attempts else None
            if error is not None:
                raise error
            return f"Test {request_id} OK"
        finally:
            self.in_flight -= 1
            self.ends[request_id] = time.monotonic()

    def first_starts(self) -> list[float]:
        return sorted(ts[0] for ts in self.starts.values())


class RecordingReporter(BatchReporter):
    def __init__(self):
        self.events: list[tuple] = []

    def run_started(self, plan):
        self.events.append(("run_started", plan.total_requests))

    def batch_started(self, index, total_batches, size):
        self.events.append(("batch_started", index, total_batches, size))

    def request_rate_limited(self, request_id, retry_delay):
        self.events.append(("rate_limited", request_id))

    def request_finished(self, outcome):
        self.events.append(("finished", outcome.request_id))

    def batch_waiting(self, delay):
        self.events.append(("waiting", delay))

    def run_finished(self, summary):
        self.events.append(("run_finished", summary.total_requests))

    def names(self) -> list[str]:
        return [e[0] for e in self.events]


# ─── OpenAI client stand-ins ──────────────────────────────────────────────────

class FakeChatClient:
    """Mimics ``client.chat.completions.create``; replays canned responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests: list[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        return self.responses.pop(0)


def chat_response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def tool_call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def stream_chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def tool_call_delta(index: int, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


class FakeAsyncClient:
    """Mimics ``AsyncOpenAI`` for batch runs: awaitable ``create`` plus ``close``."""

    def __init__(self, reply: str = "Test OK done"):
        self.reply   = reply
        self.prompts: list[str] = []
        self.closed  = False
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.prompts.append(kwargs["messages"][-1]["content"])
        return chat_response(self.reply)

    async def close(self):
        self.closed = True
