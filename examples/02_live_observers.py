#!/usr/bin/env python3
"""Example 02: Live run with remote-style observers.

Demonstrates:
- Building producers from environment credentials (ProducerConfig.from_env)
- Wiring the connection registry to the event bus
- An observer subscribed to a single stage, reconnecting mid-run and
  receiving the buffered history it missed
- Cache replay on a second run (``use_cache=True``)

Requires at least one of OPENAI_API_KEY, ANTHROPIC_API_KEY or GOOGLE_API_KEY
(a ``.env`` file is read).

Run:
    PYTHONPATH=src python examples/02_live_observers.py
"""

from __future__ import annotations

import asyncio

from dotenv import load_dotenv
from rich.console import Console

from idea_forge.domain.entities import BusinessPreferences
from idea_forge.domain.exceptions import ConfigurationError
from idea_forge.graph import PipelineBuilder
from idea_forge.infrastructure.config import PipelineConfig, ProducerConfig
from idea_forge.infrastructure.connections import ConnectionRegistry, QueueConnection
from idea_forge.infrastructure.event_bus import EventRingBuffer


async def main() -> None:
    load_dotenv()
    console = Console()
    connections = ConnectionRegistry(EventRingBuffer(capacity=500))

    critic_watcher = QueueConnection()
    connections.add_connection("critic-watcher", critic_watcher, subscriptions=["CriticAgent"])

    try:
        builder = (
            PipelineBuilder()
            .with_config(PipelineConfig(batch_size=3, use_cache=True))
            .with_producer_config(ProducerConfig.from_env())
            .with_connections(connections)
        )
        orchestrator = builder.build()
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        return

    preferences = BusinessPreferences(
        vertical="Education",
        sub_vertical="Language Learning",
        business_model="B2C",
        additional_context="Focus on adult learners with little free time",
    )

    # Disconnect before the run; reconnecting replays what was missed.
    connections.remove_connection("critic-watcher")
    result = await orchestrator.run(preferences, "solopreneur")

    reconnected = QueueConnection()
    connections.add_connection("critic-watcher", reconnected)
    for message in reconnected.drain():
        if message["type"] == "workflow":
            event = message["data"]
            console.print(f"[cyan]{event['stage']}[/cyan] {event['message']}")

    console.print(f"{len(result.ideas)} ideas, report: {result.run.document_path}")

    # Same preferences again: every stage replays from the cache.
    again = await builder.build().run(preferences, "solopreneur")
    console.print(f"Cached run {again.run.id}: {len(again.ideas)} ideas")


if __name__ == "__main__":
    asyncio.run(main())
