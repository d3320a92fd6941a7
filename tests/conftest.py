"""
Shared pytest fixtures for the Letopia test suite.
All fixtures use mock mode — no GitHub token or Serper key required.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode: never call GitHub Models during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("GITHUB_TOKEN",   "<placeholder>")
os.environ.setdefault("SERPER_API_KEY", "<placeholder>")


import io

import pytest
from rich.console import Console

from factories import make_roadmap, make_settings, RecordingReporter


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def roadmap():
    return make_roadmap()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def console_buffer():
    return io.StringIO()


@pytest.fixture
def console(console_buffer):
    return Console(file=console_buffer, width=120, color_system=None, force_terminal=False)
