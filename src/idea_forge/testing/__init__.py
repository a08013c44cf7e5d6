"""Public testing utilities for idea-forge.

Provides a scripted chat model for writing self-contained tests and offline
runs without requiring API keys.
"""

from idea_forge.testing.mock_llm import ScriptedChatModel

__all__ = ["ScriptedChatModel"]
