"""Configuration dataclasses for idea-forge.

Each config is a frozen ``dataclass`` with a ``validate()`` method that
raises ``ValueError`` on invalid combinations, ``to_dict`` / ``from_dict``
helpers and a ``from_env`` constructor reading the process environment.
The CLI loads ``.env`` files (python-dotenv) before calling ``from_env``.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from idea_forge.domain.enums import StageName
from idea_forge.domain.exceptions import ConfigurationError

PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
}

FALLBACK_ORDER = ("openai", "anthropic", "google")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUTHY


# ===================================================================== #
#  Producer Configuration                                                #
# ===================================================================== #

@dataclass(frozen=True)
class ProducerConfig:
    """Credentials and model selection for the generative producer.

    Attributes
    ----------
    llm_model:
        Default model spec (``"provider:model"`` or a bare model id) for any
        stage without its own override.
    ideation_model, competitor_model, critic_model, documentation_model:
        Optional per-stage model specs.
    max_retries:
        Retries the underlying SDK client performs on transient errors.
    use_fallbacks:
        Chain other credentialed providers behind the primary one.
    enable_web_search:
        Bind the provider's web-search tool for the competitor stage when
        the provider supports it.
    """

    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    llm_model: str = "gpt-4o"
    ideation_model: str = ""
    competitor_model: str = ""
    critic_model: str = ""
    documentation_model: str = ""
    temperature: float = 0.7
    max_retries: int = 2
    timeout: float = 120.0
    use_fallbacks: bool = True
    enable_web_search: bool = False

    def validate(self) -> None:
        if not self.llm_model:
            raise ValueError("llm_model must not be empty")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

    def api_key_for(self, provider: str) -> str:
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }.get(provider, "")

    @property
    def credentialed_providers(self) -> tuple[str, ...]:
        return tuple(p for p in FALLBACK_ORDER if self.api_key_for(p))

    def require_credentials(self) -> None:
        """Raise ``ConfigurationError`` if no provider has an API key."""
        if not self.credentialed_providers:
            raise ConfigurationError(
                "No producer credentials configured; set one of "
                + ", ".join(PROVIDER_KEY_ENV.values()),
                setting="api_key",
            )

    def model_for(self, stage: StageName | str) -> str:
        """Return the model spec configured for *stage*."""
        per_stage = {
            StageName.IDEATION.value: self.ideation_model,
            StageName.COMPETITOR.value: self.competitor_model,
            StageName.CRITIC.value: self.critic_model,
            StageName.DOCUMENTATION.value: self.documentation_model,
        }
        key = stage.value if isinstance(stage, StageName) else stage
        return per_stage.get(key) or self.llm_model

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for name in ("openai_api_key", "anthropic_api_key", "google_api_key"):
            if data[name]:
                data[name] = "***"
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProducerConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ProducerConfig:
        env = os.environ if env is None else env
        cfg = cls(
            openai_api_key=env.get("OPENAI_API_KEY", ""),
            anthropic_api_key=env.get("ANTHROPIC_API_KEY", ""),
            google_api_key=env.get("GOOGLE_API_KEY", ""),
            llm_model=env.get("LLM_MODEL") or cls.llm_model,
            ideation_model=env.get("IDEATION_MODEL", ""),
            competitor_model=env.get("COMPETITOR_MODEL", ""),
            critic_model=env.get("CRITIC_MODEL", ""),
            documentation_model=env.get("DOCUMENTATION_MODEL", ""),
            use_fallbacks=_env_flag(env, "USE_PROVIDER_FALLBACKS", True),
            enable_web_search=_env_flag(env, "ENABLE_WEB_SEARCH", False),
        )
        cfg.validate()
        return cfg


# ===================================================================== #
#  Pipeline Configuration                                                #
# ===================================================================== #

@dataclass(frozen=True)
class PipelineConfig:
    """Parameters governing one pipeline run.

    Attributes
    ----------
    batch_size:
        Number of ideas (pre-assigned identifiers) the ideation stage asks for.
    use_refinement:
        Run the ideation refinement phase.
    refinement_batch_size:
        Ideas per refinement request.
    execution_mode:
        Tag resolved through the execution-mode registry.
    use_cache:
        Wrap every stage in the cache interceptor.
    replay_min_delay, replay_max_delay:
        Bounds, in seconds, of the random pause before each replayed
        progress event on a cache hit.
    event_buffer_size:
        Capacity of the process-wide event ring buffer.
    """

    batch_size: int = 10
    use_refinement: bool = False
    refinement_batch_size: int = 3
    execution_mode: str = "classic-startup"
    use_cache: bool = False
    cache_dir: str = ".idea-forge/cache"
    docs_dir: str = "docs/generated"
    log_dir: str = ""
    replay_min_delay: float = 0.5
    replay_max_delay: float = 1.0
    event_buffer_size: int = 1000

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.refinement_batch_size < 1:
            raise ValueError(
                f"refinement_batch_size must be >= 1, got {self.refinement_batch_size}"
            )
        if self.replay_min_delay < 0 or self.replay_max_delay < self.replay_min_delay:
            raise ValueError(
                "replay delays must satisfy 0 <= replay_min_delay <= replay_max_delay, "
                f"got {self.replay_min_delay} / {self.replay_max_delay}"
            )
        if self.event_buffer_size < 1:
            raise ValueError(
                f"event_buffer_size must be >= 1, got {self.event_buffer_size}"
            )
        if not self.cache_dir:
            raise ValueError("cache_dir must not be empty")
        if not self.docs_dir:
            raise ValueError("docs_dir must not be empty")

    def with_overrides(self, **changes: Any) -> PipelineConfig:
        cfg = replace(self, **{k: v for k, v in changes.items() if v is not None})
        cfg.validate()
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PipelineConfig:
        env = os.environ if env is None else env
        cfg = cls(
            use_refinement=_env_flag(env, "USE_REFINEMENT", cls.use_refinement),
            execution_mode=env.get("EXECUTION_MODE") or cls.execution_mode,
            use_cache=_env_flag(env, "USE_TEST_CACHE", cls.use_cache),
            cache_dir=env.get("IDEA_FORGE_CACHE_DIR") or cls.cache_dir,
            docs_dir=env.get("IDEA_FORGE_DOCS_DIR") or cls.docs_dir,
            log_dir=env.get("IDEA_FORGE_LOG_DIR", ""),
        )
        cfg.validate()
        return cfg


# ===================================================================== #
#  JSON loader                                                           #
# ===================================================================== #

_CONFIG_MAP: dict[str, type] = {
    "producer": ProducerConfig,
    "pipeline": PipelineConfig,
}


def load_config_from_json(json_str: str) -> dict[str, Any]:
    """Parse a JSON string into a dict of typed config objects.

    The JSON is expected to be an object whose top-level keys correspond to
    config section names (``producer``, ``pipeline``).  Unknown sections are
    preserved as raw dicts.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    result: dict[str, Any] = {}
    for section, data in raw.items():
        cls = _CONFIG_MAP.get(section)
        if cls is not None and isinstance(data, dict):
            result[section] = cls.from_dict(data)
        else:
            result[section] = data
    return result
