"""
Critique Configuration.

Central configuration for orchestration timeouts, tier caps and the
anchoring thresholds used by the change tracker.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv

load_dotenv()


# ============================================================================
# Default Paths
# ============================================================================


def get_default_config_path() -> Path:
    """Get the default configuration file location."""
    if env_path := os.environ.get("CRITIQUE_CONFIG"):
        return Path(env_path)
    return Path.home() / ".critique" / "config.json"


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


# ============================================================================
# Configuration Classes
# ============================================================================


@dataclass
class OrchestrationConfig:
    """Timeouts and parallelism caps for the two worker tiers."""

    fast_timeout: float = 8.0  # seconds
    research_timeout: float = 30.0  # seconds
    fast_parallel_cap: int = 3
    research_parallel_cap: int = 2
    cleanup_delay: float = 5.0  # grace period before a finished session is evicted
    default_budget: str = "standard"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrchestrationConfig":
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})

    @classmethod
    def from_env(cls, base: "OrchestrationConfig | None" = None) -> "OrchestrationConfig":
        base = base or cls()
        return cls(
            fast_timeout=_env_float("CRITIQUE_FAST_TIMEOUT", base.fast_timeout),
            research_timeout=_env_float("CRITIQUE_RESEARCH_TIMEOUT", base.research_timeout),
            fast_parallel_cap=base.fast_parallel_cap,
            research_parallel_cap=base.research_parallel_cap,
            cleanup_delay=_env_float("CRITIQUE_CLEANUP_DELAY", base.cleanup_delay),
            default_budget=base.default_budget,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fast_timeout": self.fast_timeout,
            "research_timeout": self.research_timeout,
            "fast_parallel_cap": self.fast_parallel_cap,
            "research_parallel_cap": self.research_parallel_cap,
            "cleanup_delay": self.cleanup_delay,
            "default_budget": self.default_budget,
        }


@dataclass
class AnchoringConfig:
    """Thresholds for fuzzy re-anchoring and edit-driven retraction."""

    similarity_threshold: float = 0.8  # Default for find_text_snippet(s)
    snippet_threshold: float = 0.75  # Anchoring worker-quoted snippets
    inferred_threshold: float = 0.6  # Anchoring by title/feedback text
    min_window: int = 50  # Minimum sliding window size in characters
    retraction_overlap: float = 0.3  # Overlap fraction above which an anchor is retracted
    nearby_window: int = 50  # Distance for length-changing edits to trigger re-evaluation
    context_window: int = 100  # Distance for changes handed to an evaluator
    history_limit: int = 10
    fallback_span: int = 50

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnchoringConfig":
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})

    @classmethod
    def from_env(cls, base: "AnchoringConfig | None" = None) -> "AnchoringConfig":
        base = base or cls()
        data = base.to_dict()
        data["similarity_threshold"] = _env_float(
            "CRITIQUE_SIMILARITY_THRESHOLD", base.similarity_threshold
        )
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "similarity_threshold": self.similarity_threshold,
            "snippet_threshold": self.snippet_threshold,
            "inferred_threshold": self.inferred_threshold,
            "min_window": self.min_window,
            "retraction_overlap": self.retraction_overlap,
            "nearby_window": self.nearby_window,
            "context_window": self.context_window,
            "history_limit": self.history_limit,
            "fallback_span": self.fallback_span,
        }


@dataclass
class CritiqueConfig:
    """Main configuration.

    Aggregates all sub-configurations and provides load/save functionality.
    """

    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    anchoring: AnchoringConfig = field(default_factory=AnchoringConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "CritiqueConfig":
        """Load configuration from a JSON file, then apply environment overrides.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            CritiqueConfig instance
        """
        config_path = Path(config_path) if config_path else get_default_config_path()

        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                config = cls.from_dict(json.load(f))
        else:
            config = cls()

        return config.with_env_overrides()

    def with_env_overrides(self) -> "CritiqueConfig":
        return CritiqueConfig(
            orchestration=OrchestrationConfig.from_env(self.orchestration),
            anchoring=AnchoringConfig.from_env(self.anchoring),
            log_level=os.environ.get("CRITIQUE_LOG_LEVEL", self.log_level).upper(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CritiqueConfig":
        """Create config from dictionary."""
        return cls(
            orchestration=OrchestrationConfig.from_dict(data.get("orchestration", {})),
            anchoring=AnchoringConfig.from_dict(data.get("anchoring", {})),
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "orchestration": self.orchestration.to_dict(),
            "anchoring": self.anchoring.to_dict(),
            "log_level": self.log_level,
        }

    def save(self, config_path: str | Path | None = None) -> Path:
        """Save configuration to a JSON file.

        Args:
            config_path: Path to save to. If None, uses default location.

        Returns:
            Path to saved file
        """
        config_path = Path(config_path) if config_path else get_default_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

        return config_path


# ============================================================================
# Global Config Instance
# ============================================================================


_global_config: CritiqueConfig | None = None


def get_config() -> CritiqueConfig:
    """Get the global configuration instance.

    Returns:
        CritiqueConfig singleton
    """
    global _global_config
    if _global_config is None:
        _global_config = CritiqueConfig.load()
    return _global_config


def set_config(config: CritiqueConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reload_config(config_path: str | Path | None = None) -> CritiqueConfig:
    """Reload configuration from disk.

    Args:
        config_path: Optional path to load from

    Returns:
        Newly loaded configuration
    """
    global _global_config
    _global_config = CritiqueConfig.load(config_path)
    return _global_config
