"""
The watch session.

Wires the watch source, debouncer, orchestrator and their collaborators for
one EffectiveConfig and drives the session until shutdown is requested or a
fatal failure occurs.
"""

import logging
from typing import Callable, Optional

from watchdog.observers import Observer

from ..config import cycle_plan
from ..executor import BuildExecutor, HookRunner
from ..models.config import EffectiveConfig
from ..models.runtime import BuildMode, Trigger
from ..system import CargoArtifactResolver, PathFilter, clear_screen
from ..validation import WatchSourceFailure
from ..watching import Debouncer, WatchSource
from .orchestrator import Orchestrator
from .process_manager import ProcessTreeSupervisor, Spawner
from .shared_state import SessionState, TimeoutConstants
from .signal_handler import SignalHandler

logger = logging.getLogger(__name__)


class WatchSession:
    """
    Runs one watch session from first build to shutdown.

    Args:
        config: The session's configuration snapshot
        observer_factory: Creates the watchdog observer
        spawner: Isolation group factory for run programs, or None for the
            platform default
    """

    def __init__(self, config: EffectiveConfig, observer_factory: Callable[[], Observer] = Observer,
                 spawner: Optional[Spawner] = None):
        self.config = config
        self.state = SessionState()
        self.plan = cycle_plan(config)

        resolver = None
        if self.plan.build_plan.mode is BuildMode.PACKAGE and self.plan.run_plan is None:
            resolver = CargoArtifactResolver(
                manifest_path=config.manifest_path,
                bin_name=config.bin,
                package=config.package,
                release=config.release,
                working_dir=config.working_dir,
            )

        self.orchestrator = Orchestrator(
            plan=self.plan,
            hook_runner=HookRunner(cwd=config.working_dir),
            builder=BuildExecutor(resolver=resolver),
            supervisor=ProcessTreeSupervisor(spawner=spawner, cwd=config.working_dir),
            clear_screen=clear_screen,
        )
        self.debouncer = Debouncer(self.orchestrator.notify, config.debounce_seconds)
        self.path_filter = PathFilter(
            config.ignore_globs, config.include_ext, config.exclude_ext, root=config.working_dir.resolve()
        )
        self.watch_source = WatchSource(
            [p if p.is_absolute() else config.working_dir / p for p in config.watch],
            sink=self.debouncer.ingest,
            is_relevant=self.path_filter,
            observer_factory=observer_factory,
        )
        self.signal_handler = SignalHandler(self.state)

    def request_shutdown(self) -> None:
        self.state.shutdown_requested.set()

    def run(self) -> None:
        """
        Run until shutdown is requested.

        Raises:
            ConfigurationError: If no watch path exists
            WatchSourceFailure: If the watcher dies or cannot start
        """
        self.signal_handler.setup_signal_handlers()
        try:
            self.setup()
            self.loop()
        except Exception as e:
            self.state.fatal_error = e
            raise
        finally:
            self.teardown()
            self.signal_handler.cleanup_signal_handlers()

    def setup(self) -> None:
        logger.info("Starting watch session...")
        self.watch_source.start()
        self.orchestrator.start()
        # Build and run once without waiting for an edit.
        self.orchestrator.notify(Trigger())

    def loop(self) -> None:
        while not self.state.shutdown_requested.wait(TimeoutConstants.WATCH_HEALTH_INTERVAL):
            if not self.watch_source.is_alive():
                raise WatchSourceFailure("file watcher stopped unexpectedly")
            if self.orchestrator.fatal_error is not None:
                raise self.orchestrator.fatal_error
        logger.info("Shutdown requested")

    def teardown(self) -> None:
        """Stop ingestion first so no new cycle is queued, then drain the orchestrator."""
        logger.info("Tearing down watch session...")
        self.debouncer.close()
        self.watch_source.stop(TimeoutConstants.OBSERVER_STOP_TIMEOUT)
        self.orchestrator.shutdown(self.config.grace_seconds)
        logger.info("Teardown complete.")
