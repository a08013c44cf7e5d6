"""Export utilities for pipeline results.

Supports a markdown business report (written by the documentation stage),
plus JSON and CSV dumps of an idea list.  All functions use only the Python
standard library.
"""

from __future__ import annotations

import csv
import datetime
import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from idea_forge.domain.entities import Idea, Run
from idea_forge.modes.base import ModeProfile

SECTION_TITLES = (
    "Executive Summary",
    "Market Analysis",
    "Competitive Landscape",
    "Risk Assessment",
    "Recommendations",
)


@dataclass(frozen=True)
class IdeaSection:
    """Markdown body documenting one idea."""

    idea: Idea
    body: str


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------

def _fmt(score: float | None) -> str:
    return "n/a" if score is None else f"{score:.1f}"


def template_section(idea: Idea) -> str:
    """Section built from the idea's own fields, used without a producer."""
    r = idea.reasoning
    return "\n\n".join([
        f"### {SECTION_TITLES[0]}\n\n{idea.description}",
        f"### {SECTION_TITLES[1]}\n\n{r.market}",
        f"### {SECTION_TITLES[2]}\n\n{idea.competitor_analysis or 'Not analysed.'}",
        f"### {SECTION_TITLES[3]}\n\n{idea.critical_analysis or 'Not evaluated.'}\n\n"
        f"- Technical: {r.technical}\n- Capital: {r.capital}",
        f"### {SECTION_TITLES[4]}\n\n{r.overall or 'No recommendation available.'}",
    ])


def render_markdown_report(
    run: Run,
    profile: ModeProfile,
    sections: Sequence[IdeaSection],
) -> str:
    """Render the full report for one run.

    Ideas are ranked by overall score (unscored ideas last) in the summary
    table; the per-idea sections keep pipeline order.
    """
    prefs = run.preferences
    generated = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    lines = [
        f"# Business Idea Report: {prefs.vertical} / {prefs.sub_vertical}",
        "",
        f"*Run {run.id} · {profile.display_name} mode · business model "
        f"{prefs.business_model} · generated {generated}*",
        "",
        "## Summary",
        "",
        "| # | Idea | Model | Disruption | Market | Blue Ocean | Overall |",
        "|---|------|-------|-----------:|-------:|-----------:|--------:|",
    ]
    ranked = sorted(
        sections,
        key=lambda s: (s.idea.overall_score is None, -(s.idea.overall_score or 0.0)),
    )
    for rank, section in enumerate(ranked, start=1):
        idea = section.idea
        lines.append(
            f"| {rank} | {idea.title} | {idea.business_model.value} | "
            f"{idea.disruption_potential} | {idea.market_potential} | "
            f"{_fmt(idea.blue_ocean_score)} | {_fmt(idea.overall_score)} |"
        )
    for number, section in enumerate(sections, start=1):
        lines.extend(["", f"## {number}. {section.idea.title}", "", section.body.strip()])
    lines.append("")
    return "\n".join(lines)


def export_markdown(text: str, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    return out


# ---------------------------------------------------------------------------
# JSON / CSV
# ---------------------------------------------------------------------------

def export_json(ideas: Sequence[Idea], path: str | Path) -> None:
    """Export ideas (camelCase wire form) to a JSON file."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as fh:
        json.dump([idea.to_wire() for idea in ideas], fh, indent=2, ensure_ascii=False)


def export_csv(ideas: Sequence[Idea], path: str | Path) -> None:
    """Export one row per idea with its scores."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow([
            "id", "title", "business_model", "disruption", "market",
            "technical", "capital", "blue_ocean", "overall", "starred",
        ])
        for idea in ideas:
            writer.writerow([
                idea.id, idea.title, idea.business_model.value,
                idea.disruption_potential, idea.market_potential,
                idea.technical_complexity, idea.capital_intensity,
                "" if idea.blue_ocean_score is None else idea.blue_ocean_score,
                "" if idea.overall_score is None else idea.overall_score,
                idea.starred,
            ])
