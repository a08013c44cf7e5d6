"""Presentation layer for idea-forge.

Public API
----------
- :class:`ConsoleEventPrinter` -- rich console rendering of workflow events
- :func:`render_ideas_table` -- ranked table of a run's ideas
- :func:`render_markdown_report`, :func:`export_markdown`,
  :func:`export_json`, :func:`export_csv` -- report and export utilities
"""

from idea_forge.presentation.console import ConsoleEventPrinter, render_ideas_table
from idea_forge.presentation.export import (
    export_csv,
    export_json,
    export_markdown,
    render_markdown_report,
)

__all__ = [
    "ConsoleEventPrinter",
    "render_ideas_table",
    "render_markdown_report",
    "export_markdown",
    "export_json",
    "export_csv",
]
