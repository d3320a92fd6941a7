"""
Tests for formatters.py — Markdown and JSON export of a Roadmap.
Run: python -m pytest tests/test_formatters.py -v
"""
import json

from factories import make_roadmap

from letopia.formatters import (
    format_phase,
    from_json,
    load_json,
    save_json,
    save_markdown,
    to_json,
    to_markdown,
)


class TestMarkdown:
    def test_header_and_overview(self, roadmap):
        md = to_markdown(roadmap)
        assert md.startswith("# 🗺️ Frontend Developer Roadmap\n")
        assert "**Domain:** frontend" in md
        assert "## Overview" in md
        assert "- **Target Audience:** Beginners with some computer literacy" in md
        assert "- **Total Duration:** 12 weeks" in md
        assert "## Prerequisites" in md
        assert "## 🚀 Next Steps" in md

    def test_generated_date_format(self, roadmap):
        expected = roadmap.generated_at.strftime("%B %d, %Y")
        assert f"- **Generated:** {expected}" in to_markdown(roadmap)

    def test_phase_sections(self, roadmap):
        md = format_phase(roadmap.phases[0])
        assert md.startswith("## Phase 1: Web Foundations")
        assert "**Duration:** 4 weeks" in md
        assert "### 🎯 Learning Objectives" in md
        assert "- [ ] Write semantic HTML" in md
        assert "### 📚 Topics" in md
        assert "#### HTML" in md
        assert "### 🛠️ Projects" in md
        assert "#### 💻 Portfolio page" in md
        assert "### ✅ Milestones" in md
        assert "- [ ] Portfolio deployed" in md

    def test_resource_row_links_verified_url(self, roadmap):
        md = to_markdown(roadmap)
        assert "| Type | Title | Difficulty | Time |" in md
        assert (
            "| 📖 Documentation | [HTML basics](https://developer.mozilla.org/en-US/docs/Learn/HTML)"
            " | Beginner | 3 hours |"
        ) in md

    def test_resource_without_url_is_plain_text(self):
        md = to_markdown(make_roadmap(with_url=False))
        assert "| 📖 Documentation | HTML basics | Beginner | 3 hours |" in md
        assert "[HTML basics]()" not in md

    def test_empty_sections_omitted(self):
        roadmap = make_roadmap()
        roadmap.prerequisites = []
        roadmap.next_steps = []
        md = to_markdown(roadmap)
        assert "## Prerequisites" not in md
        assert "Next Steps" not in md


class TestJson:
    def test_keys_are_camel_case(self, roadmap):
        data = json.loads(to_json(roadmap))
        assert "targetAudience" in data
        assert "phaseNumber" in data["phases"][0]
        assert data["phases"][0]["topics"][0]["resources"][0]["type"] == "Documentation"

    def test_parse_back(self, roadmap):
        restored = from_json(to_json(roadmap))
        assert restored.title == roadmap.title
        assert restored.phases[0].topics[0].resources[0].url == roadmap.phases[0].topics[0].resources[0].url


class TestFiles:
    def test_save_markdown(self, roadmap, tmp_path):
        path = save_markdown(roadmap, tmp_path / "roadmap.md")
        assert path.read_text(encoding="utf-8").startswith("# 🗺️ ")

    def test_save_and_load_json(self, roadmap, tmp_path):
        path = save_json(roadmap, tmp_path / "roadmap.json")
        assert load_json(path).domain == "frontend"
