"""
Build execution.

Runs the session's build command to completion and classifies the result
purely by exit status. In package mode the produced executable is then
located through an artifact resolver.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

from ..models.runtime import Artifact, BuildMode, BuildPlan
from ..system.commands import format_argv, run_forwarding
from ..validation import ArtifactNotFound, BuildFailure

logger = logging.getLogger(__name__)


class ArtifactResolver(Protocol):
    def resolve(self) -> Path:
        ...


class BuildExecutor:
    """
    Runs one build at a time; never retries.

    Args:
        resolver: Locates the built executable in package mode. When None,
            or when the run command is explicit, no resolution happens.
        runner: Callable with the signature of `run_forwarding`
    """

    def __init__(self, resolver: Optional[ArtifactResolver] = None,
                 runner: Callable[..., int] = run_forwarding):
        self.resolver = resolver
        self._runner = runner
        self.last_duration: Optional[float] = None

    def build(self, plan: BuildPlan, resolve_artifact: bool = True) -> Artifact:
        """
        Run the build described by `plan`.

        Args:
            plan: The build command and its working directory
            resolve_artifact: Whether a package-mode build should locate its
                executable afterwards

        Returns:
            The Artifact; its path is set only when it was resolved.

        Raises:
            BuildFailure: If the build exits nonzero, cannot start, or its
                artifact cannot be found.
        """
        logger.info(f"Build: {format_argv(plan.argv)}")
        start = time.monotonic()
        try:
            status = self._runner(plan.argv, cwd=plan.working_dir)
        except (OSError, ValueError) as e:
            raise BuildFailure(reason=f"{type(e).__name__}: {e}") from e
        finally:
            self.last_duration = time.monotonic() - start

        if status != 0:
            raise BuildFailure(exit_status=status)

        logger.info(f"Build succeeded in {self.last_duration:.2f}s")

        if plan.mode is not BuildMode.PACKAGE or not resolve_artifact or self.resolver is None:
            return Artifact()

        try:
            return Artifact(path=self.resolver.resolve())
        except ArtifactNotFound as e:
            raise BuildFailure(resolver_miss=True, reason=str(e)) from e
