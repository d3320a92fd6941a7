"""
Data models for the Letopia roadmap agent.

A Roadmap is a sequence of Phases; each Phase groups Topics (with learning
Resources) and hands-on Projects.  Models are Pydantic so LLM JSON output can
be validated directly with ``Roadmap.model_validate``.  JSON field names are
camelCase on the wire and snake_case in Python.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ─── Enumerations ────────────────────────────────────────────────────────────

class _CaseInsensitiveEnum(str, Enum):
    """Accept 'video', 'VIDEO' or 'Video' from model output."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class ResourceType(_CaseInsensitiveEnum):
    DOCUMENTATION = "Documentation"
    ARTICLE       = "Article"
    VIDEO         = "Video"
    COURSE        = "Course"
    TOOL          = "Tool"
    BOOK          = "Book"


class Difficulty(_CaseInsensitiveEnum):
    BEGINNER     = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED     = "Advanced"


# ─── Roadmap tree ────────────────────────────────────────────────────────────

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Resource(_CamelModel):
    title:          str = ""
    type:           ResourceType = ResourceType.DOCUMENTATION
    url:            str = ""
    description:    str = ""
    difficulty:     Difficulty = Difficulty.BEGINNER
    estimated_time: str = ""


class Project(_CamelModel):
    name:             str = ""
    description:      str = ""
    skills_practiced: list[str] = Field(default_factory=list)
    difficulty:       Difficulty = Difficulty.BEGINNER
    estimated_time:   str = ""
    requirements:     list[str] = Field(default_factory=list)


class Topic(_CamelModel):
    name:            str = ""
    description:     str = ""
    resources:       list[Resource] = Field(default_factory=list)
    hands_on_tasks:  list[str] = Field(default_factory=list)
    key_concepts:    list[str] = Field(default_factory=list)


class Phase(_CamelModel):
    phase_number:        int = 0
    title:               str = ""
    duration:            str = ""
    learning_objectives: list[str] = Field(default_factory=list)
    topics:              list[Topic] = Field(default_factory=list)
    projects:            list[Project] = Field(default_factory=list)
    milestones:          list[str] = Field(default_factory=list)


class Roadmap(_CamelModel):
    """Structured learning roadmap produced from a conversation with the agent."""
    title:           str = ""
    domain:          str = ""
    description:     str = ""
    target_audience: str = ""
    prerequisites:   list[str] = Field(default_factory=list)
    total_duration:  str = ""
    phases:          list[Phase] = Field(default_factory=list)
    next_steps:      list[str] = Field(default_factory=list)
    generated_at:    datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # ── Derived helpers ──────────────────────────────────────────────────────

    def all_resources(self) -> list[Resource]:
        return [r for p in self.phases for t in p.topics for r in t.resources]

    def resources_missing_urls(self) -> list[Resource]:
        return [r for r in self.all_resources() if not r.url]
