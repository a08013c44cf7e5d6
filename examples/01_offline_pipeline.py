#!/usr/bin/env python3
"""Example 01: Full pipeline run against a scripted model.

Demonstrates:
- Assembling the orchestrator with PipelineBuilder
- Streaming ideation with one malformed idea that gets recovered
- Printing workflow events with the rich console printer
- Inspecting the PipelineResult and the generated markdown report

Self-contained: no API key required.

Run:
    PYTHONPATH=src python examples/01_offline_pipeline.py
"""

from __future__ import annotations

import asyncio
import json
import tempfile

from rich.console import Console

from idea_forge.domain.entities import BusinessPreferences
from idea_forge.graph import PipelineBuilder
from idea_forge.infrastructure.config import PipelineConfig
from idea_forge.infrastructure.event_bus import EventBus, WorkflowEventEmitter
from idea_forge.presentation.console import ConsoleEventPrinter, print_summary
from idea_forge.testing import ScriptedChatModel


def _build_model() -> ScriptedChatModel:
    """Responses in the order the pipeline consumes them.

    1 streamed ideation document, then per idea: competitor analysis,
    critique and a documentation section.
    """
    ideas = [
        {
            "title": "ClinicCast",
            "description": "AI platform that turns telehealth visits into structured follow-up plans.",
            "businessModel": "B2C",
            "disruptionPotential": 7,
            "marketPotential": 8,
            "technicalComplexity": 6,
            "capitalIntensity": 4,
            "reasoning": {
                "disruption": "Replaces paper discharge notes.",
                "market": "Every remote consultation needs follow-up.",
                "technical": "Speech-to-text plus summarisation.",
                "capital": "Cloud costs scale with usage.",
            },
        },
    ]
    # The second idea is cut off mid-object, as a truncated stream would be.
    stream = (
        '{"ideas": [' + json.dumps(ideas[0])
        + ', {"title": "RuralRx", "description": "Pharmacy delivery for rural patients", '
        '"businessModel": "B2C", "disruptionPotential": 6, "marketPot'
    )
    competitor = [
        {"competitorAnalysis": "Several note-taking tools, none patient-facing.",
         "blueOceanDetails": {"competitorScore": 7, "saturationScore": 6, "innovationScore": 8}},
        {"competitorAnalysis": "Mail-order pharmacies dominate.", "blueOceanScore": 4.5,
         "blueOceanReasoning": "Crowded logistics market."},
    ]
    critic = [
        {"criticalAnalysis": "Clinical liability needs care.", "riskAdjustment": 0.5,
         "overallReasoning": "Strong pull from clinics."},
        {"criticalAnalysis": "Thin margins.", "riskAdjustment": -1.5,
         "overallReasoning": "Operationally heavy."},
    ]
    section = (
        "### Executive Summary\n\nScripted summary.\n\n"
        "### Recommendations\n\nPilot with three clinics."
    )
    return ScriptedChatModel(
        responses=[
            stream,
            *(json.dumps(c) for c in competitor),
            *(json.dumps(c) for c in critic),
            section,
            section,
        ],
        chunk_size=24,
    )


async def main() -> None:
    console = Console()
    bus = EventBus()
    bus.subscribe_all(ConsoleEventPrinter(console))

    with tempfile.TemporaryDirectory() as workdir:
        config = PipelineConfig(
            batch_size=2,
            cache_dir=f"{workdir}/cache",
            docs_dir=f"{workdir}/docs",
        )
        orchestrator = (
            PipelineBuilder()
            .with_config(config)
            .with_model(_build_model(), name="scripted")
            .with_emitter(WorkflowEventEmitter(bus))
            .build()
        )
        preferences = BusinessPreferences(
            vertical="Health",
            sub_vertical="Telemedicine",
            business_model="B2C",
        )
        result = await orchestrator.run(preferences)

        print_summary(console, result.ideas, result.report.report_path if result.report else None)
        console.rule("Report")
        with open(result.report.report_path, encoding="utf-8") as fh:
            console.print(fh.read())


if __name__ == "__main__":
    asyncio.run(main())
