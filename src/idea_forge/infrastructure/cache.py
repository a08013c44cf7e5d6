"""File-based store for per-stage cache artifacts.

One JSON document per stage, named by a fixed key such as
``ideation-ideas.json``.  A missing file is a cache miss, never an error;
a file that exists but cannot be decoded raises ``CacheError``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from idea_forge.domain.exceptions import CacheError

logger = logging.getLogger(__name__)

IDEATION_CACHE_KEY = "ideation-ideas.json"
COMPETITOR_CACHE_KEY = "competitor-ideas.json"
CRITIC_CACHE_KEY = "critic-ideas.json"
DOCUMENTATION_CACHE_KEY = "documentation-output.json"

STAGE_CACHE_KEYS = (
    IDEATION_CACHE_KEY,
    COMPETITOR_CACHE_KEY,
    CRITIC_CACHE_KEY,
    DOCUMENTATION_CACHE_KEY,
)


class FileCacheStore:
    """JSON artifacts under a single directory.

    Parameters
    ----------
    directory:
        Created lazily on first write.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or Path(key).name != key:
            raise ValueError(f"Cache key must be a plain file name, got {key!r}")
        return self.directory / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def load(self, key: str) -> Any | None:
        """Return the decoded artifact for *key*, or ``None`` on a miss."""
        path = self.path_for(key)
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            logger.debug("Cache miss for %s", key)
            return None
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheError(f"Cannot read cache artifact {path}: {exc}", key=key) from exc
        logger.info("Cache hit for %s", key)
        return data

    def save(self, key: str, data: Any) -> Path:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False, default=str)
        logger.info("Cached result written to %s", path)
        return path

    def clear(self, key: str | None = None) -> int:
        """Delete one artifact, or every ``*.json`` artifact when *key* is None.

        Returns the number of files removed.
        """
        if key is not None:
            path = self.path_for(key)
            if path.is_file():
                path.unlink()
                logger.info("Cleared cache artifact %s", path)
                return 1
            return 0
        if not self.directory.is_dir():
            return 0
        removed = 0
        for path in self.directory.glob("*.json"):
            path.unlink()
            removed += 1
        logger.info("Cleared %d cache artifacts from %s", removed, self.directory)
        return removed

    def __repr__(self) -> str:
        return f"FileCacheStore(directory={str(self.directory)!r})"
