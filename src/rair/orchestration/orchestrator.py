"""
The rebuild/restart state machine.

One worker thread runs cycles strictly one after another. Triggers that
arrive while a cycle is in flight collapse into a single pending flag, so
any number of them causes exactly one further cycle.
"""

import logging
import threading
from typing import Callable, Optional

from ..executor import BuildExecutor, HookRunner
from ..models.runtime import CycleOutcome, CyclePlan, HookSpec, OrchestratorState, RunPlan, Trigger
from ..validation import BuildFailure, ErrorSeverity, HookFailure, SpawnFailure, handle_error
from .process_manager import ProcessTreeSupervisor, SupervisedProcess
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Sequences hooks, the build and process replacement for each Trigger.

    A cycle runs pre_build, build, post_build, pre_run, then stops the
    current process and starts the new one, then post_run. A failure before
    the replacement step leaves the current process running untouched.

    Args:
        plan: Resolved build and run plans plus hooks
        hook_runner: Runs HookSpecs
        builder: Runs the build and resolves its artifact
        supervisor: Starts and stops run process trees
        clear_screen: Called before each restart when `plan.clear` is set
    """

    def __init__(self, plan: CyclePlan, hook_runner: HookRunner, builder: BuildExecutor,
                 supervisor: ProcessTreeSupervisor, clear_screen: Optional[Callable[[], None]] = None):
        self.plan = plan
        self.hook_runner = hook_runner
        self.builder = builder
        self.supervisor = supervisor
        self._clear_screen = clear_screen

        self._cond = threading.Condition()
        self._pending: Optional[Trigger] = None
        self._busy = False
        self._stopping = False
        self._state = OrchestratorState.IDLE
        self._current: Optional[SupervisedProcess] = None
        self._exit_reported = False
        self._cycles_completed = 0
        self._thread: Optional[threading.Thread] = None

        # Set when the worker dies on an unexpected error.
        self.fatal_error: Optional[BaseException] = None

    @property
    def state(self) -> OrchestratorState:
        with self._cond:
            return self._state

    @property
    def current(self) -> Optional[SupervisedProcess]:
        return self._current

    @property
    def cycles_completed(self) -> int:
        with self._cond:
            return self._cycles_completed

    def notify(self, trigger: Trigger) -> None:
        """Record `trigger` as pending. Safe to call from any thread."""
        with self._cond:
            if self._stopping:
                return
            if self._pending is not None or self._busy:
                logger.debug("Change detected during cycle; rebuild queued")
            self._pending = trigger
            self._cond.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no cycle is running or pending. False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._stopping or (not self._busy and self._pending is None),
                timeout,
            )

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._worker, name="rair-orchestrator", daemon=True)
        self._thread.start()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def shutdown(self, grace: Optional[float] = None) -> None:
        """
        Stop accepting triggers, let the in-flight cycle finish, then stop
        the current process tree.
        """
        with self._cond:
            self._stopping = True
            self._pending = None
            self._cond.notify_all()

        if self._thread is not None and self._thread is not threading.current_thread():
            # In-flight hooks and builds are never cancelled.
            if self._busy:
                logger.info("Waiting for the current cycle to finish...")
            self._thread.join()

        if self._current is not None:
            self.supervisor.stop(self._current, self.plan.grace_seconds if grace is None else grace)
            self._current = None
        logger.info("Orchestrator stopped")

    def run_cycle(self, trigger: Trigger) -> CycleOutcome:
        """
        Run one full cycle for `trigger` and return to Idle.

        Hook, build and spawn failures are absorbed and reported through the
        returned outcome. Any other exception propagates.
        """
        if trigger.paths:
            logger.debug(f"Cycle triggered by {len(trigger.paths)} changed path(s)")
        try:
            return self._cycle()
        finally:
            with self._cond:
                self._cycles_completed += 1
            self._transition(OrchestratorState.IDLE)

    def _cycle(self) -> CycleOutcome:
        plan = self.plan
        self._transition(OrchestratorState.BUILDING)

        try:
            self.hook_runner.run(plan.pre_build)
        except HookFailure as e:
            self._fail(e, "pre_build hook", run_build_fail_hook=True)
            return CycleOutcome.PRE_BUILD_FAILED

        try:
            artifact = self.builder.build(plan.build_plan, resolve_artifact=plan.run_plan is None)
            run_plan = plan.run_plan
            if run_plan is None:
                if artifact.path is None:
                    raise BuildFailure(resolver_miss=True, reason="no executable to run")
                run_plan = RunPlan(program=str(artifact.path))
        except BuildFailure as e:
            self._fail(e, "build", run_build_fail_hook=True)
            return CycleOutcome.BUILD_FAILED

        try:
            self.hook_runner.run(plan.post_build)
        except HookFailure as e:
            self._fail(e, "post_build hook")
            return CycleOutcome.POST_BUILD_FAILED

        self._transition(OrchestratorState.STARTING)
        try:
            self.hook_runner.run(plan.pre_run)
        except HookFailure as e:
            self._fail(e, "pre_run hook")
            return CycleOutcome.PRE_RUN_FAILED

        self._transition(OrchestratorState.RESTARTING)
        if not self._replace(run_plan):
            return CycleOutcome.SPAWN_FAILED

        self._transition(OrchestratorState.RUNNING)
        self._run_advisory(plan.post_run)
        return CycleOutcome.RESTARTED

    def _replace(self, run_plan: RunPlan) -> bool:
        """Stop the current tree, then start the new one. False on spawn failure."""
        previous = self._current
        if previous is not None:
            self.supervisor.stop(previous, self.plan.grace_seconds)
            self._current = None

        if self.plan.clear and self._clear_screen is not None:
            self._clear_screen()

        try:
            self._current = self.supervisor.start(run_plan)
        except SpawnFailure as e:
            handle_error(e, "starting run program", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            return False
        self._exit_reported = False
        return True

    def _fail(self, error: Exception, phase: str, run_build_fail_hook: bool = False) -> None:
        handle_error(error, phase, severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
        self._transition(OrchestratorState.FAILED)
        if run_build_fail_hook:
            self._run_advisory(self.plan.on_build_fail)
        if self._current is not None:
            logger.info(f"Keeping previous process (PID: {self._current.pid}) running")

    def _run_advisory(self, spec: HookSpec) -> None:
        try:
            self.hook_runner.run(spec)
        except HookFailure as e:
            handle_error(e, f"{spec.name} hook", severity=ErrorSeverity.WARNING, reraise=False, logger=logger)

    def _transition(self, new_state: OrchestratorState) -> None:
        with self._cond:
            old_state = self._state
            self._state = new_state
            self._cond.notify_all()
        if old_state is not new_state:
            logger.info(f"[{new_state.value}]")

    def _check_unexpected_exit(self) -> None:
        current = self._current
        if current is None or self._exit_reported:
            return
        status = self.supervisor.poll(current)
        if status is not None:
            self._exit_reported = True
            logger.warning(f"Process {current.pid} exited with status {status}; waiting for changes")

    def _worker(self) -> None:
        while True:
            with self._cond:
                while self._pending is None and not self._stopping:
                    self._cond.wait(TimeoutConstants.IDLE_POLL_INTERVAL)
                    self._check_unexpected_exit()
                if self._stopping:
                    return
                trigger = self._pending
                self._pending = None
                self._busy = True

            try:
                self.run_cycle(trigger)
            except Exception as e:
                handle_error(e, "orchestrator cycle", severity=ErrorSeverity.CRITICAL, reraise=False, logger=logger)
                with self._cond:
                    self.fatal_error = e
                    self._stopping = True
                    self._busy = False
                    self._cond.notify_all()
                return

            with self._cond:
                self._busy = False
                self._cond.notify_all()
