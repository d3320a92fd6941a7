"""
web_search.py — Serper.dev (Google Search API) client
=====================================================
Finds real URLs for learning resources suggested by the roadmap agent.

  search(query)                               → first organic hit or None
  search_resource_url(title, platform, topic) → verified URL or ""

An empty string means "no verified URL"; the agent is told to drop the
resource instead of inventing a link.  HTTP and network failures are logged
and treated as "not found".
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

SERPER_API_URL = "https://google.serper.dev/search"


# ─── Platform tables ─────────────────────────────────────────────────────────

_SITE_FILTERS: dict[str, str] = {
    "youtube":           "youtube.com",
    "microsoft learn":   "learn.microsoft.com",
    "udemy":             "udemy.com",
    "coursera":          "coursera.org",
    "freecodecamp":      "freecodecamp.org",
    "pluralsight":       "pluralsight.com",
    "dev.to":            "dev.to",
    "medium":            "medium.com",
    "mdn web docs":      "developer.mozilla.org",
    "w3schools":         "w3schools.com",
    "github":            "github.com",
    "edx":               "edx.org",
    "codecademy":        "codecademy.com",
    "linkedin learning": "linkedin.com/learning",
    "stackoverflow":     "stackoverflow.com",
}

_PLATFORM_DOMAINS: dict[str, tuple[str, ...]] = {
    "youtube":           ("youtube.com", "youtu.be"),
    "microsoft learn":   ("learn.microsoft.com", "docs.microsoft.com"),
    "udemy":             ("udemy.com",),
    "coursera":          ("coursera.org",),
    "freecodecamp":      ("freecodecamp.org",),
    "pluralsight":       ("pluralsight.com",),
    "dev.to":            ("dev.to",),
    "medium":            ("medium.com",),
    "mdn web docs":      ("developer.mozilla.org",),
    "w3schools":         ("w3schools.com",),
    "github":            ("github.com",),
    "edx":               ("edx.org",),
    "codecademy":        ("codecademy.com",),
    "linkedin learning": ("linkedin.com/learning",),
}


def site_filter(platform: str) -> str:
    """Google ``site:`` value for a known platform, else ''."""
    return _SITE_FILTERS.get(platform.strip().lower(), "")


def is_valid_url(url: str, platform: str) -> bool:
    """URL must belong to the platform's domains; unknown platforms accept any URL."""
    if not url:
        return False
    domains = _PLATFORM_DOMAINS.get(platform.strip().lower())
    if domains is None:
        return True
    lowered = url.lower()
    return any(d in lowered for d in domains)


# ─── Result type ─────────────────────────────────────────────────────────────

@dataclass
class SearchResult:
    title:       str = ""
    url:         str = ""
    description: str = ""


# ─── Client ──────────────────────────────────────────────────────────────────

class WebSearchService:
    def __init__(self, api_key: str, endpoint: str = SERPER_API_URL, timeout: float = 10.0) -> None:
        self._api_key = api_key
        self.endpoint = endpoint
        self.timeout  = timeout

    def _post(self, payload: dict) -> dict:
        req = urllib.request.Request(
            self.endpoint,
            data=json.dumps(payload).encode(),
            headers={
                "X-API-KEY":    self._api_key,
                "Content-Type": "application/json",
                "Accept":       "application/json",
            },
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read())

    def search(self, query: str, max_results: int = 3) -> Optional[SearchResult]:
        try:
            data = self._post({"q": query, "num": max_results})
        except urllib.error.HTTPError as exc:
            body = exc.read().decode(errors="replace")[:200]
            logger.warning("Serper error %s for %r: %s", exc.code, query, body)
            return None
        except (urllib.error.URLError, OSError, ValueError) as exc:
            logger.warning("Serper request failed for %r: %s", query, exc)
            return None

        organic = data.get("organic") or []
        if not organic:
            return None
        first = organic[0]
        return SearchResult(
            title       = first.get("title") or "",
            url         = first.get("link") or "",
            description = first.get("snippet") or "",
        )

    def search_resource_url(self, resource_title: str, platform: str, topic: str) -> str:
        """Targeted query first, then a title + platform fallback; '' when nothing verifies."""
        site = site_filter(platform)

        query  = f"{resource_title} {topic} site:{site}" if site else f"{resource_title} {topic}"
        result = self.search(query)
        if result is not None and is_valid_url(result.url, platform):
            return result.url

        query  = f"{resource_title} site:{site}" if site else f"{resource_title} {platform}"
        result = self.search(query)
        if result is not None and is_valid_url(result.url, platform):
            return result.url

        logger.info("No verified URL for %r on %s", resource_title, platform)
        return ""
