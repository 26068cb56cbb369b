"""
Critique App - configuration and command-line entry point.
"""

from critique.app.config import (
    AnchoringConfig,
    CritiqueConfig,
    OrchestrationConfig,
    get_config,
    reload_config,
    set_config,
)

__all__ = [
    "AnchoringConfig",
    "CritiqueConfig",
    "OrchestrationConfig",
    "get_config",
    "reload_config",
    "set_config",
]
