"""Rich-based console output for pipeline runs.

:class:`ConsoleEventPrinter` is an event-bus handler that prints one line
per workflow event; :func:`render_ideas_table` summarises a finished run.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from idea_forge.domain.entities import Idea
from idea_forge.domain.enums import EventLevel, EventType
from idea_forge.domain.events import WorkflowEvent

_LEVEL_STYLES: dict[EventLevel, str] = {
    EventLevel.DEBUG: "dim",
    EventLevel.INFO: "white",
    EventLevel.WARN: "yellow",
    EventLevel.ERROR: "bold red",
}

_TYPE_STYLES: dict[EventType, str] = {
    EventType.STATUS: "cyan",
    EventType.PROGRESS: "green",
    EventType.RESULT: "magenta",
    EventType.ERROR: "red",
    EventType.LOG: "dim",
}


def _score(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f}"


class ConsoleEventPrinter:
    """Prints workflow events as they are published.

    Parameters
    ----------
    console:
        Target console.  Defaults to a console on ``sys.stdout``.
    show_progress:
        Print per-idea progress events; when ``False`` only status, result
        and error events are shown.
    """

    def __init__(self, console: Console | None = None, show_progress: bool = True) -> None:
        self.console = console or Console(file=sys.stdout)
        self.show_progress = show_progress

    def __call__(self, event: WorkflowEvent) -> None:
        if event.type is EventType.PROGRESS and not self.show_progress:
            return
        line = Text()
        line.append(f"[{event.stage}] ", style=_TYPE_STYLES.get(event.type, "white"))
        progress = event.metadata.get("progress")
        if isinstance(progress, (int, float)):
            line.append(f"{int(progress):>3}% ", style="dim")
        line.append(event.message, style=_LEVEL_STYLES.get(event.level, "white"))
        self.console.print(line)


def render_ideas_table(ideas: Sequence[Idea], title: str = "Business ideas") -> Table:
    """Table of ideas ranked by overall score."""
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Model")
    table.add_column("Disr.", justify="right")
    table.add_column("Market", justify="right")
    table.add_column("Tech", justify="right")
    table.add_column("Capital", justify="right")
    table.add_column("Blue ocean", justify="right")
    table.add_column("Overall", justify="right", style="bold green")

    ranked = sorted(
        ideas,
        key=lambda idea: idea.overall_score if idea.overall_score is not None else -1.0,
        reverse=True,
    )
    for rank, idea in enumerate(ranked, start=1):
        table.add_row(
            str(rank),
            idea.title,
            idea.business_model.value,
            str(idea.disruption_potential),
            str(idea.market_potential),
            str(idea.technical_complexity),
            str(idea.capital_intensity),
            _score(idea.blue_ocean_score),
            _score(idea.overall_score),
        )
    return table


def print_summary(console: Console, ideas: Sequence[Idea], report_path: Any = None) -> None:
    console.print(render_ideas_table(ideas))
    if report_path:
        console.print(f"Report written to [bold]{report_path}[/bold]")
