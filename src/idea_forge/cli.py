"""Command-line interface for idea-forge.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    idea-forge = "idea_forge.cli:main"

Usage examples::

    idea-forge run --vertical Health --subvertical Telemedicine --business-model B2C
    idea-forge run --mode solopreneur --ideas 5 --test-cache
    idea-forge modes
    idea-forge clear-cache --key ideation-ideas.json
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

DEFAULT_VERTICAL = "Media & Entertainment"
DEFAULT_SUB_VERTICAL = "Digital Media and Content Creation"
DEFAULT_BUSINESS_MODEL = "B2B SaaS"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="idea-forge",
        description="Generate, analyse, critique and document business ideas.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Run the idea pipeline once.",
        description=(
            "Run ideation, competitor analysis, critique and documentation. "
            "--vertical, --subvertical and --business-model must be given together."
        ),
    )
    run_parser.add_argument("--vertical", type=str, default=None, help="Industry vertical.")
    run_parser.add_argument("--subvertical", type=str, default=None, help="Sub-vertical.")
    run_parser.add_argument(
        "--business-model", type=str, default=None, help="Business model, e.g. B2C."
    )
    run_parser.add_argument(
        "--context", type=str, default=None, help="Additional free-text context."
    )
    run_parser.add_argument(
        "--mode",
        type=str,
        default=None,
        help="Execution mode tag (see 'idea-forge modes').",
    )
    run_parser.add_argument(
        "--ideas", type=int, default=None, help="Number of ideas to generate."
    )
    run_parser.add_argument(
        "--test-cache",
        action="store_true",
        default=None,
        help="Replay cached stage results when present, save them otherwise.",
    )
    refine = run_parser.add_mutually_exclusive_group()
    refine.add_argument(
        "--refine", dest="refine", action="store_true", default=None,
        help="Run the ideation refinement phase.",
    )
    refine.add_argument(
        "--no-refine", dest="refine", action="store_false",
        help="Skip the ideation refinement phase.",
    )
    run_parser.add_argument(
        "--config", type=str, default=None, help="JSON file with producer/pipeline sections."
    )
    run_parser.add_argument(
        "--quiet", action="store_true", default=False, help="Hide per-idea progress events."
    )

    # -- modes -------------------------------------------------------------
    subparsers.add_parser(
        "modes",
        help="List execution modes.",
        description="Display the registered execution modes and their scoring weights.",
    )

    # -- clear-cache -------------------------------------------------------
    clear_parser = subparsers.add_parser(
        "clear-cache",
        help="Delete cached stage results.",
        description="Delete one cache artifact, or all of them.",
    )
    clear_parser.add_argument(
        "--key", type=str, default=None, help="Artifact name; all artifacts when omitted."
    )
    clear_parser.add_argument(
        "--config", type=str, default=None, help="JSON file with a pipeline section."
    )

    return parser


# =========================================================================
# Helpers
# =========================================================================

def _configure_logging(level: str, log_dir: str = "") -> Path | None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)
    if not log_dir:
        return None
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"idea-forge-{datetime.now():%Y%m%d-%H%M%S}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    return path


def _load_configs(config_file: str | None) -> tuple[Any, Any]:
    from idea_forge.infrastructure.config import (
        PipelineConfig,
        ProducerConfig,
        load_config_from_json,
    )

    pipeline = PipelineConfig.from_env()
    producer = ProducerConfig.from_env()
    if config_file:
        sections = load_config_from_json(Path(config_file).read_text(encoding="utf-8"))
        pipeline = sections.get("pipeline", pipeline)
        producer = sections.get("producer", producer)
    return pipeline, producer


def _preferences(args: argparse.Namespace) -> Any:
    from idea_forge.domain.entities import BusinessPreferences

    given = [args.vertical, args.subvertical, args.business_model]
    if any(value is not None for value in given) and not all(given):
        raise ValueError("--vertical, --subvertical and --business-model must be given together")
    if args.vertical is None:
        return BusinessPreferences(
            vertical=DEFAULT_VERTICAL,
            sub_vertical=DEFAULT_SUB_VERTICAL,
            business_model=DEFAULT_BUSINESS_MODEL,
            additional_context=args.context,
        )
    return BusinessPreferences(
        vertical=args.vertical,
        sub_vertical=args.subvertical,
        business_model=args.business_model,
        additional_context=args.context,
    )


# =========================================================================
# Subcommand handlers
# =========================================================================

def _cmd_run(args: argparse.Namespace) -> int:
    """Handle the ``run`` subcommand."""
    from dotenv import load_dotenv
    from rich.console import Console

    from idea_forge.domain.exceptions import ConfigurationError, PipelineError
    from idea_forge.graph import PipelineBuilder
    from idea_forge.infrastructure.connections import ConnectionRegistry
    from idea_forge.infrastructure.event_bus import EventBus, EventRingBuffer, WorkflowEventEmitter
    from idea_forge.presentation.console import ConsoleEventPrinter, print_summary

    load_dotenv()
    pipeline, producer = _load_configs(args.config)
    overrides: dict[str, Any] = {}
    if args.ideas is not None:
        overrides["batch_size"] = args.ideas
    if args.test_cache is not None:
        overrides["use_cache"] = args.test_cache
    if args.refine is not None:
        overrides["use_refinement"] = args.refine
    pipeline = pipeline.with_overrides(**overrides)

    log_path = _configure_logging(args.log_level, pipeline.log_dir)
    console = Console()
    if log_path is not None:
        console.print(f"Logging to [dim]{log_path}[/dim]")

    try:
        preferences = _preferences(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    bus = EventBus()
    bus.subscribe_all(ConsoleEventPrinter(console, show_progress=not args.quiet))
    connections = ConnectionRegistry(EventRingBuffer(pipeline.event_buffer_size))

    try:
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline)
            .with_producer_config(producer)
            .with_emitter(WorkflowEventEmitter(bus))
            .with_connections(connections)
            .build()
        )
        result = asyncio.run(orchestrator.run(preferences, args.mode))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except PipelineError as exc:
        print(f"Pipeline failed: {exc}", file=sys.stderr)
        return 1

    print_summary(console, result.ideas, result.report.report_path if result.report else None)
    return 0


def _cmd_modes(args: argparse.Namespace) -> int:
    """Handle the ``modes`` subcommand."""
    from rich.console import Console
    from rich.table import Table

    from idea_forge.infrastructure.registry import create_default_registry

    registry = create_default_registry()
    table = Table(title="Execution modes")
    table.add_column("Tag", style="bold")
    table.add_column("Name")
    table.add_column("Team")
    table.add_column("Weights")
    for mode in registry.modes():
        profile = mode.profile
        weights = ", ".join(f"{k}={v:.2f}" for k, v in mode.scoring_weights().items())
        table.add_row(mode.mode, profile.display_name, profile.target_team_size, weights)
    Console().print(table)
    return 0


def _cmd_clear_cache(args: argparse.Namespace) -> int:
    """Handle the ``clear-cache`` subcommand."""
    from idea_forge.infrastructure.cache import FileCacheStore

    pipeline, _ = _load_configs(args.config)
    removed = FileCacheStore(pipeline.cache_dir).clear(args.key)
    print(f"Removed {removed} cache artifact(s) from {pipeline.cache_dir}")
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from idea_forge import __version__
        print(f"idea-forge {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command != "run":
        logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    handlers: dict[str, Any] = {
        "run": _cmd_run,
        "modes": _cmd_modes,
        "clear-cache": _cmd_clear_cache,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
