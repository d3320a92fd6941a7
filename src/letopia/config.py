"""
config.py — Central settings for the Letopia roadmap agent
==========================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

Live mode activates automatically when GITHUB_TOKEN contains a real
(non-placeholder) value and FORCE_MOCK_MODE is not set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from letopia.batch_scheduler import compute_batch_delay

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)


DEFAULT_ENDPOINT = "https://models.github.ai/inference"


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return not value or "<" in value or value.startswith("your-") or value == "PLACEHOLDER"


# ─── GitHub Models (OpenAI-compatible endpoint) ─────────────────────────────

@dataclass(frozen=True)
class GitHubModelsConfig:
    token:    str
    model_id: str
    endpoint: str

    @property
    def is_configured(self) -> bool:
        """True when the token is a real (non-placeholder) value."""
        return bool(self.token) and not _is_placeholder(self.token)


# ─── Serper.dev web search ───────────────────────────────────────────────────

@dataclass(frozen=True)
class SearchConfig:
    serper_api_key: str

    @property
    def is_configured(self) -> bool:
        return bool(self.serper_api_key) and not _is_placeholder(self.serper_api_key)


# ─── Batch scheduler limits ──────────────────────────────────────────────────

@dataclass(frozen=True)
class BatchConfig:
    max_concurrent_requests: int
    requests_per_minute:     int
    batch_size:              int

    @property
    def batch_delay_seconds(self) -> float:
        """Pause between batch starts; raises ValueError for non-positive limits."""
        return compute_batch_delay(self.requests_per_minute, self.batch_size)


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    force_mock_mode: bool
    log_level:       str


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    github: GitHubModelsConfig
    search: SearchConfig
    batch:  BatchConfig
    app:    AppConfig

    @property
    def live_mode(self) -> bool:
        """Automatically True when the GitHub token is real and FORCE_MOCK_MODE is false."""
        return self.github.is_configured and not self.app.force_mock_mode

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge for the CLI banner."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "GitHub Models":     badge(self.github.is_configured),
            "Serper Web Search": badge(self.search.is_configured),
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str  = lambda k, d="": os.getenv(k, d).strip()
    _int  = lambda k, d=0: int(os.getenv(k, str(d)) or d)
    _bool = lambda k, d=False: os.getenv(k, str(d)).lower() in ("1", "true", "yes")

    return Settings(
        github=GitHubModelsConfig(
            token    = _str("GITHUB_TOKEN"),
            model_id = _str("LETOPIA_MODEL_ID", "gpt-4o"),
            endpoint = _str("GITHUB_MODELS_ENDPOINT", DEFAULT_ENDPOINT).rstrip("/"),
        ),
        search=SearchConfig(
            serper_api_key = _str("SERPER_API_KEY"),
        ),
        batch=BatchConfig(
            max_concurrent_requests = _int("BATCH_MAX_CONCURRENT", 5),
            requests_per_minute     = _int("BATCH_REQUESTS_PER_MINUTE", 15),
            batch_size              = _int("BATCH_SIZE", 5),
        ),
        app=AppConfig(
            force_mock_mode = _bool("FORCE_MOCK_MODE", False),
            log_level       = _str("LOG_LEVEL", "WARNING").upper(),
        ),
    )
