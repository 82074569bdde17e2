"""
Runtime data models.

Values that flow through a watch session: change events and the triggers
they collapse into, the hook, build and run plans a cycle executes, and the
orchestrator's state.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Sequence, Tuple


@dataclass(frozen=True)
class ChangeEvent:
    """A single relevant path change reported by the watch source."""

    path: Path
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class Trigger:
    """Relevant changes have settled; one rebuild should happen."""

    timestamp: float = field(default_factory=time.monotonic)
    # Distinct paths of the change events collapsed into this trigger.
    paths: Tuple[Path, ...] = ()


@dataclass(frozen=True)
class HookSpec:
    """
    An ordered list of commands run as one hook.

    Absent hooks are represented by an empty HookSpec.
    """

    name: str
    steps: Tuple[Tuple[str, ...], ...] = ()

    @classmethod
    def from_lists(cls, name: str, steps: Optional[Sequence[Sequence[str]]]) -> "HookSpec":
        return cls(name=name, steps=tuple(tuple(step) for step in (steps or ())))

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Tuple[str, ...]]:
        return iter(self.steps)


class BuildMode(Enum):
    """How the build command was derived."""
    PACKAGE = "package"
    SINGLE_FILE = "single_file"
    OVERRIDE = "override"


@dataclass(frozen=True)
class BuildPlan:
    """The build command of a session, resolved once from configuration."""

    program: str
    args: Tuple[str, ...] = ()
    working_dir: Optional[Path] = None
    mode: BuildMode = BuildMode.OVERRIDE

    @classmethod
    def from_argv(cls, argv: Sequence[str], working_dir: Optional[Path] = None,
                  mode: BuildMode = BuildMode.OVERRIDE) -> "BuildPlan":
        if not argv:
            raise ValueError("build argv cannot be empty")
        return cls(program=argv[0], args=tuple(argv[1:]), working_dir=working_dir, mode=mode)

    @property
    def argv(self) -> Tuple[str, ...]:
        return (self.program,) + self.args


@dataclass(frozen=True)
class RunPlan:
    """The program a successful cycle starts."""

    program: str
    args: Tuple[str, ...] = ()

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> "RunPlan":
        if not argv:
            raise ValueError("run argv cannot be empty")
        return cls(program=argv[0], args=tuple(argv[1:]))

    @property
    def argv(self) -> Tuple[str, ...]:
        return (self.program,) + self.args


@dataclass(frozen=True)
class Artifact:
    """Result of a successful build. `path` is None when no resolution was needed."""

    path: Optional[Path] = None


@dataclass(frozen=True)
class CyclePlan:
    """
    Everything an orchestrator cycle executes, resolved once per session.

    `run_plan` is None when the program to run is only known after a build
    (package mode without an explicit run command).
    """

    build_plan: BuildPlan
    run_plan: Optional[RunPlan] = None
    pre_build: HookSpec = HookSpec("pre_build")
    post_build: HookSpec = HookSpec("post_build")
    pre_run: HookSpec = HookSpec("pre_run")
    post_run: HookSpec = HookSpec("post_run")
    on_build_fail: HookSpec = HookSpec("on_build_fail")
    grace_seconds: float = 5.0
    clear: bool = False


class OrchestratorState(Enum):
    """States of the rebuild/restart state machine."""
    IDLE = "idle"
    BUILDING = "building"
    FAILED = "failed"
    STARTING = "starting"
    RESTARTING = "restarting"
    RUNNING = "running"


class CycleOutcome(Enum):
    """How a single orchestrator cycle ended."""
    RESTARTED = "restarted"
    PRE_BUILD_FAILED = "pre_build_failed"
    BUILD_FAILED = "build_failed"
    POST_BUILD_FAILED = "post_build_failed"
    PRE_RUN_FAILED = "pre_run_failed"
    SPAWN_FAILED = "spawn_failed"
