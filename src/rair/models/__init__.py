"""
Data models for the watch session.

Configuration Models:
- PartialConfig: one configuration source with optional fields
- EffectiveConfig: the merged snapshot a session runs with

Runtime Models:
- ChangeEvent / Trigger: change ingestion and its debounced signal
- HookSpec, BuildPlan, RunPlan, Artifact: what a cycle executes
- OrchestratorState, CycleOutcome: state machine bookkeeping
"""

from .config import EffectiveConfig, PartialConfig
from .runtime import (
    Artifact,
    BuildMode,
    BuildPlan,
    ChangeEvent,
    CyclePlan,
    CycleOutcome,
    HookSpec,
    OrchestratorState,
    RunPlan,
    Trigger,
)

__all__ = [
    # Configuration
    "EffectiveConfig",
    "PartialConfig",
    # Runtime
    "Artifact",
    "BuildMode",
    "BuildPlan",
    "ChangeEvent",
    "CyclePlan",
    "CycleOutcome",
    "HookSpec",
    "OrchestratorState",
    "RunPlan",
    "Trigger",
]
