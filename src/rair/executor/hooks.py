"""
Hook execution.

A hook is an ordered list of commands. They run one at a time with their
output forwarded, and the first failing step aborts the rest.
"""

import logging
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from ..models.runtime import HookSpec
from ..system.commands import format_argv, run_forwarding
from ..validation import HookFailure

logger = logging.getLogger(__name__)

CommandRunner = Callable[..., int]


class HookRunner:
    """
    Runs HookSpecs sequentially, stopping at the first failure.

    Args:
        cwd: Working directory for hook commands
        env: Environment for hook commands, or None to inherit
        runner: Callable with the signature of `run_forwarding`
    """

    def __init__(self, cwd: Optional[Path] = None, env: Optional[Mapping[str, str]] = None,
                 runner: CommandRunner = run_forwarding):
        self.cwd = cwd
        self.env = env
        self._runner = runner

    def run(self, spec: HookSpec) -> None:
        """
        Run every step of `spec` in order.

        Raises:
            HookFailure: On the first step that exits nonzero or cannot start.
        """
        if not spec:
            return

        logger.info(f"Running {spec.name} hook ({len(spec)} step(s))")
        for index, argv in enumerate(spec):
            self._run_step(spec.name, index, argv)

    def _run_step(self, hook: str, index: int, argv: Sequence[str]) -> None:
        if not argv:
            raise HookFailure(hook, index, reason="argv is empty")

        logger.debug(f"{hook}[{index}]: {format_argv(argv)}")
        try:
            status = self._runner(argv, cwd=self.cwd, env=self.env)
        except (OSError, ValueError) as e:
            raise HookFailure(hook, index, reason=f"{type(e).__name__}: {e}", argv=argv) from e

        if status != 0:
            raise HookFailure(hook, index, exit_status=status, argv=argv)
