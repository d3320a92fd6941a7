"""
formatters.py — Markdown and JSON rendering of a Roadmap
========================================================
  to_markdown(roadmap)      Full roadmap as GitHub-flavoured Markdown.
  format_phase(phase)       One phase (used by to_markdown).
  to_json / from_json       Indented camelCase JSON, enums as strings.
  save_markdown / save_json / load_json   File helpers (UTF-8).
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from letopia.models import Phase, Project, ResourceType, Roadmap, Topic

PathLike = Union[str, Path]

_RESOURCE_ICONS = {
    ResourceType.DOCUMENTATION: "📖",
    ResourceType.ARTICLE:       "📄",
    ResourceType.VIDEO:         "📺",
    ResourceType.COURSE:        "🎓",
    ResourceType.TOOL:          "🔧",
    ResourceType.BOOK:          "📚",
}


# ─── Markdown ────────────────────────────────────────────────────────────────

def _bullets(items: list[str], checkbox: bool = False) -> list[str]:
    prefix = "- [ ] " if checkbox else "- "
    return [f"{prefix}{item}" for item in items]


def to_markdown(roadmap: Roadmap) -> str:
    lines = [
        f"# 🗺️ {roadmap.title}",
        "",
        f"**Domain:** {roadmap.domain}",
        "",
        "## Overview",
        "",
        roadmap.description,
        "",
        f"- **Target Audience:** {roadmap.target_audience}",
        f"- **Total Duration:** {roadmap.total_duration}",
        f"- **Generated:** {roadmap.generated_at:%B %d, %Y}",
        "",
    ]

    if roadmap.prerequisites:
        lines += ["## Prerequisites", "", *_bullets(roadmap.prerequisites), ""]

    lines += ["---", ""]
    for phase in roadmap.phases:
        lines.append(format_phase(phase))

    if roadmap.next_steps:
        lines += ["## 🚀 Next Steps", "", *_bullets(roadmap.next_steps), ""]

    return "\n".join(lines) + "\n"


def format_phase(phase: Phase) -> str:
    lines = [
        f"## Phase {phase.phase_number}: {phase.title}",
        "",
        f"**Duration:** {phase.duration}",
        "",
    ]

    if phase.learning_objectives:
        lines += ["### 🎯 Learning Objectives", "", *_bullets(phase.learning_objectives, checkbox=True), ""]

    if phase.topics:
        lines += ["### 📚 Topics", ""]
        lines += [_format_topic(t) for t in phase.topics]

    if phase.projects:
        lines += ["### 🛠️ Projects", ""]
        lines += [_format_project(p) for p in phase.projects]

    if phase.milestones:
        lines += ["### ✅ Milestones", "", *_bullets(phase.milestones, checkbox=True), ""]

    lines += ["---", ""]
    return "\n".join(lines)


def _format_topic(topic: Topic) -> str:
    lines = [f"#### {topic.name}", "", topic.description, ""]

    if topic.key_concepts:
        lines += ["**Key Concepts:**", *_bullets(topic.key_concepts), ""]

    if topic.resources:
        lines += [
            "**Resources:**",
            "",
            "| Type | Title | Difficulty | Time |",
            "|------|-------|------------|------|",
        ]
        for r in topic.resources:
            icon  = _RESOURCE_ICONS.get(r.type, "📌")
            title = f"[{r.title}]({r.url})" if r.url else r.title
            lines.append(f"| {icon} {r.type.value} | {title} | {r.difficulty.value} | {r.estimated_time} |")
        lines.append("")

    if topic.hands_on_tasks:
        lines += ["**Hands-on Tasks:**", *_bullets(topic.hands_on_tasks, checkbox=True), ""]

    return "\n".join(lines)


def _format_project(project: Project) -> str:
    lines = [
        f"#### 💻 {project.name}",
        "",
        project.description,
        "",
        f"- **Difficulty:** {project.difficulty.value}",
        f"- **Estimated Time:** {project.estimated_time}",
    ]
    if project.skills_practiced:
        lines.append(f"- **Skills:** {', '.join(project.skills_practiced)}")
    if project.requirements:
        lines.append("- **Requirements:**")
        lines += [f"  - {req}" for req in project.requirements]
    lines.append("")
    return "\n".join(lines)


# ─── JSON ────────────────────────────────────────────────────────────────────

def to_json(roadmap: Roadmap) -> str:
    return roadmap.model_dump_json(by_alias=True, indent=2)


def from_json(text: str) -> Roadmap:
    """Parse roadmap JSON (camelCase or snake_case keys).  Raises pydantic.ValidationError."""
    return Roadmap.model_validate_json(text)


# ─── Files ───────────────────────────────────────────────────────────────────

def save_markdown(roadmap: Roadmap, path: PathLike) -> Path:
    p = Path(path)
    p.write_text(to_markdown(roadmap), encoding="utf-8")
    return p


def save_json(roadmap: Roadmap, path: PathLike) -> Path:
    p = Path(path)
    p.write_text(to_json(roadmap), encoding="utf-8")
    return p


def load_json(path: PathLike) -> Roadmap:
    return from_json(Path(path).read_text(encoding="utf-8"))
