"""idea-forge.

LangGraph pipeline that generates business ideas from user preferences,
analyses their competitive landscape, critiques them and writes a markdown
report, streaming progress events to any connected client.
"""

__version__ = "0.1.0"

from idea_forge.graph import (
    PipelineBuilder,
    PipelineOrchestrator,
    PipelineResult,
    build_pipeline_graph,
)

__all__ = [
    "PipelineBuilder",
    "PipelineOrchestrator",
    "PipelineResult",
    "build_pipeline_graph",
]
