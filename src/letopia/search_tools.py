"""
search_tools.py — Web search exposed as agent function tools
============================================================
Every tool returns a JSON string so the result can be fed straight back to
the model as a ``tool`` message.  ``TOOL_SCHEMAS`` is the OpenAI
``tools=[...]`` description of the same three functions.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Optional

from letopia.web_search import WebSearchService

logger = logging.getLogger(__name__)


TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "search_resource_url",
            "description": (
                "Search the web to find the real URL for a learning resource. Returns "
                "success=true with a URL if found, or success=false if not found. If "
                "success=false, DO NOT include this resource - try a different one instead."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "resource_title": {"type": "string", "description": "Title of the resource to find"},
                    "platform":       {"type": "string", "description": "Platform, e.g. YouTube, Udemy, Coursera"},
                    "topic":          {"type": "string", "description": "Main topic the resource covers"},
                },
                "required": ["resource_title", "platform", "topic"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "web_search",
            "description": "Search the web and return the top result URL and description.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "The search query"},
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "validate_url",
            "description": "Check whether a URL exists and is accessible.",
            "parameters": {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "The URL to validate"},
                },
                "required": ["url"],
            },
        },
    },
]


class SearchTools:
    def __init__(self, service: WebSearchService, head_timeout: float = 5.0) -> None:
        self.service      = service
        self.head_timeout = head_timeout

    def search_resource_url(self, resource_title: str, platform: str, topic: str) -> str:
        url = self.service.search_resource_url(resource_title, platform, topic)
        if not url:
            return json.dumps({
                "success": False,
                "message": (
                    f"Could not find a verified URL for '{resource_title}' on {platform}. "
                    "DO NOT include this resource in the roadmap. "
                    "Try searching for a different resource instead."
                ),
                "resourceTitle": resource_title,
                "platform":      platform,
            })
        return json.dumps({
            "success":       True,
            "url":           url,
            "resourceTitle": resource_title,
            "platform":      platform,
            "message":       "URL verified. You can include this resource in the roadmap.",
        })

    def web_search(self, query: str) -> str:
        result = self.service.search(query)
        if result is None:
            return json.dumps({"success": False, "message": "No results found for the query"})
        return json.dumps({
            "success":     True,
            "title":       result.title,
            "url":         result.url,
            "description": result.description,
        })

    def validate_url(self, url: str) -> str:
        req = urllib.request.Request(url, method="HEAD", headers={"User-Agent": "Mozilla/5.0"})
        try:
            with urllib.request.urlopen(req, timeout=self.head_timeout) as resp:
                status = resp.status
            return json.dumps({"valid": 200 <= status < 300, "statusCode": status, "url": url})
        except urllib.error.HTTPError as exc:
            return json.dumps({"valid": False, "statusCode": exc.code, "url": url})
        except (urllib.error.URLError, OSError, ValueError) as exc:
            return json.dumps({"valid": False, "error": str(exc), "url": url})

    # ── Dispatch ─────────────────────────────────────────────────────────────

    def dispatch(self, name: str, arguments: Optional[str]) -> str:
        """Run one model tool call.  Bad names/arguments come back as an error payload."""
        handlers = {
            "search_resource_url": self.search_resource_url,
            "web_search":          self.web_search,
            "validate_url":        self.validate_url,
        }
        handler = handlers.get(name)
        if handler is None:
            return json.dumps({"success": False, "message": f"Unknown tool '{name}'"})
        try:
            kwargs = json.loads(arguments or "{}")
            return handler(**kwargs)
        except (TypeError, ValueError) as exc:
            logger.warning("Tool %s called with bad arguments %r: %s", name, arguments, exc)
            return json.dumps({"success": False, "message": f"Invalid arguments for {name}: {exc}"})
