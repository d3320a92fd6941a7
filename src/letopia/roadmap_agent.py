"""
Roadmap Agent
=============
Conversational agent that turns a free-text learning goal into a
multi-phase learning roadmap.

RoadmapAgentService
    Wraps an OpenAI-compatible chat client pointed at GitHub Models.
    Conversation state lives in an AgentThread (message history); the
    system prompt is loaded from ``prompts/system_prompt.txt``.
    When Serper web search is configured the model may call the
    search tools (see search_tools.py) to verify resource URLs.

    run(user_input, thread)            → full reply text
    run_streaming(user_input, thread)  → iterator of text deltas
    extract_roadmap(thread)            → validated Roadmap (JSON mode)
"""

from __future__ import annotations

import json
import textwrap
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from openai import OpenAI

from letopia.config import Settings, get_settings
from letopia.models import Roadmap
from letopia.search_tools import TOOL_SCHEMAS, SearchTools
from letopia.web_search import WebSearchService

AGENT_NAME       = "Letopia - Roadmap Agent"
PROMPT_PATH      = Path(__file__).parent / "prompts" / "system_prompt.txt"
MAX_TOOL_ROUNDS  = 8


@dataclass
class AgentThread:
    """One conversation: ordered chat messages, system prompt excluded."""
    thread_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8].upper())
    messages:  list[dict[str, Any]] = field(default_factory=list)

    def add_user(self, text: str) -> None:
        self.messages.append({"role": "user", "content": text})

    def add_assistant(self, text: str) -> None:
        self.messages.append({"role": "assistant", "content": text})

    def transcript(self) -> list[dict[str, str]]:
        """User/assistant text turns only (tool traffic dropped)."""
        return [
            {"role": m["role"], "content": m["content"]}
            for m in self.messages
            if m["role"] in ("user", "assistant") and m.get("content") and not m.get("tool_calls")
        ]

    @property
    def has_replies(self) -> bool:
        return any(m["role"] == "assistant" and m.get("content") for m in self.messages)


# The JSON shape we expect back from extract_roadmap.
_ROADMAP_JSON_SCHEMA = {
    "title": "string",
    "domain": "string",
    "description": "string",
    "targetAudience": "string",
    "prerequisites": ["string"],
    "totalDuration": "string (e.g. '12 weeks')",
    "phases": [
        {
            "phaseNumber": "integer",
            "title": "string",
            "duration": "string",
            "learningObjectives": ["string"],
            "topics": [
                {
                    "name": "string",
                    "description": "string",
                    "keyConcepts": ["string"],
                    "handsOnTasks": ["string"],
                    "resources": [
                        {
                            "title": "string",
                            "type": "Documentation | Article | Video | Course | Tool | Book",
                            "url": "string (verified URL or empty)",
                            "description": "string",
                            "difficulty": "Beginner | Intermediate | Advanced",
                            "estimatedTime": "string",
                        }
                    ],
                }
            ],
            "projects": [
                {
                    "name": "string",
                    "description": "string",
                    "skillsPracticed": ["string"],
                    "difficulty": "Beginner | Intermediate | Advanced",
                    "estimatedTime": "string",
                    "requirements": ["string"],
                }
            ],
            "milestones": ["string"],
        }
    ],
    "nextSteps": ["string"],
}

_EXTRACTION_PROMPT = textwrap.dedent("""
    You convert a conversation about a learning roadmap into structured data.
    Use only what the assistant already proposed; do not invent URLs.

    Respond with ONLY a valid JSON object matching this schema exactly:
""") + json.dumps(_ROADMAP_JSON_SCHEMA, indent=2) + "\n\nDo NOT include any explanation, markdown, or extra text outside the JSON."


def load_system_prompt(path: Optional[Path] = None) -> str:
    prompt_path = Path(path) if path else PROMPT_PATH
    if not prompt_path.exists():
        raise FileNotFoundError(f"System prompt file not found at path: {prompt_path}")
    return prompt_path.read_text(encoding="utf-8")


class RoadmapAgentService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Any = None,
        tools: Optional[SearchTools] = None,
        prompt_path: Optional[Path] = None,
    ) -> None:
        self._settings     = settings or get_settings()
        self.system_prompt = load_system_prompt(prompt_path)
        self.name          = AGENT_NAME

        if client is None:
            if not self._settings.github.is_configured:
                raise EnvironmentError(
                    "GitHub Models is not configured. Set GITHUB_TOKEN in your environment or .env file."
                )
            client = OpenAI(
                base_url=self._settings.github.endpoint,
                api_key=self._settings.github.token,
            )
        self._client = client

        if tools is None and self._settings.search.is_configured:
            tools = SearchTools(WebSearchService(self._settings.search.serper_api_key))
        self.tools = tools

    @property
    def model(self) -> str:
        return self._settings.github.model_id

    def new_thread(self) -> AgentThread:
        return AgentThread()

    # ── Internal helpers ─────────────────────────────────────────────────────

    def _request(self, thread: AgentThread, **extra: Any) -> Any:
        kwargs: dict[str, Any] = {
            "model":    self.model,
            "messages": [{"role": "system", "content": self.system_prompt}, *thread.messages],
        }
        if self.tools is not None:
            kwargs["tools"] = TOOL_SCHEMAS
        kwargs.update(extra)
        return self._client.chat.completions.create(**kwargs)

    def _apply_tool_calls(self, thread: AgentThread, content: str, calls: list[dict[str, str]]) -> None:
        """Record the assistant's tool request and append one tool result per call."""
        thread.messages.append({
            "role": "assistant",
            "content": content,
            "tool_calls": [
                {
                    "id": c["id"],
                    "type": "function",
                    "function": {"name": c["name"], "arguments": c["arguments"]},
                }
                for c in calls
            ],
        })
        for c in calls:
            if self.tools is None:
                result = json.dumps({"success": False, "message": "Web search is not configured"})
            else:
                result = self.tools.dispatch(c["name"], c["arguments"])
            thread.messages.append({"role": "tool", "tool_call_id": c["id"], "content": result})

    # ── Public interface ──────────────────────────────────────────────────────

    def run(self, user_input: str, thread: Optional[AgentThread] = None) -> str:
        """Send one user turn and return the complete reply."""
        thread = thread if thread is not None else self.new_thread()
        mark = len(thread.messages)
        thread.add_user(user_input)

        try:
            for _ in range(MAX_TOOL_ROUNDS):
                message = self._request(thread).choices[0].message
                if message.tool_calls:
                    calls = [
                        {"id": tc.id, "name": tc.function.name, "arguments": tc.function.arguments}
                        for tc in message.tool_calls
                    ]
                    self._apply_tool_calls(thread, message.content or "", calls)
                    continue
                text = message.content or ""
                thread.add_assistant(text)
                return text
            raise RuntimeError(f"Agent exceeded {MAX_TOOL_ROUNDS} tool-call rounds without answering")
        except Exception:
            # a failed turn leaves the thread as it was
            del thread.messages[mark:]
            raise

    def run_streaming(self, user_input: str, thread: Optional[AgentThread] = None) -> Iterator[str]:
        """Send one user turn and yield the reply as it arrives."""
        thread = thread if thread is not None else self.new_thread()
        mark = len(thread.messages)
        thread.add_user(user_input)

        try:
            for _ in range(MAX_TOOL_ROUNDS):
                parts: list[str] = []
                calls: dict[int, dict[str, str]] = {}
                for chunk in self._request(thread, stream=True):
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    if delta.content:
                        parts.append(delta.content)
                        yield delta.content
                    for tc in delta.tool_calls or []:
                        slot = calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                        if tc.id:
                            slot["id"] = tc.id
                        if tc.function is not None:
                            slot["name"]      += tc.function.name or ""
                            slot["arguments"] += tc.function.arguments or ""

                if calls:
                    self._apply_tool_calls(thread, "".join(parts), [calls[i] for i in sorted(calls)])
                    continue
                thread.add_assistant("".join(parts))
                return
            raise RuntimeError(f"Agent exceeded {MAX_TOOL_ROUNDS} tool-call rounds without answering")
        except Exception:
            del thread.messages[mark:]
            raise

    def extract_roadmap(self, thread: AgentThread) -> Roadmap:
        """
        Turn the conversation into a validated Roadmap.

        Raises:
            ValueError           – the thread has no assistant reply yet.
            ValidationError      – JSON did not match the Roadmap model.
            json.JSONDecodeError – response was empty or not valid JSON.
        """
        if not thread.has_replies:
            raise ValueError("Nothing to save yet: ask the agent for a roadmap first.")

        response = self._client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": _EXTRACTION_PROMPT},
                *thread.transcript(),
                {"role": "user", "content": "Produce the roadmap JSON for this conversation."},
            ],
            temperature=0.2,
        )
        data = json.loads(response.choices[0].message.content or "")
        return Roadmap.model_validate(data)
