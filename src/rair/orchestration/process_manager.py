"""
Process tree supervision for the orchestration module.

The run program is started as the root of its own isolation group so that
it and everything it spawns can be terminated together: a new session (and
therefore process group) on POSIX, a kill-on-close Job Object on Windows.
Group membership is backed up by tracking the root's descendants through psutil,
which also catches children that moved to a group of their own.

Termination escalates: a graceful request to the whole group, then, once the
grace window has passed, a forced kill of whatever is left.
"""

import logging
import os
import signal
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set

import psutil

from ..models.runtime import RunPlan
from ..system.commands import format_argv
from ..system.job_object import JobObject
from ..validation import ErrorSeverity, SpawnFailure, TerminationTimeout, handle_error
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)

ACTIVE_ENV_VAR = "RAIR_ACTIVE"

# winbase.h; not exported by subprocess
CREATE_SUSPENDED = 0x00000004


def _is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


class IsolationGroup(ABC):
    """
    One spawned program together with every process it starts.

    Implementations must make `signal_graceful` and `kill` reach the whole
    group, and report through `live_pids` every member that is still running
    (zombies excluded).
    """

    @property
    @abstractmethod
    def pid(self) -> int:
        """PID of the group's root process."""

    @abstractmethod
    def poll(self) -> Optional[int]:
        """Root exit status, or None while it runs. Reaps the root."""

    @abstractmethod
    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the root to exit. None if `timeout` elapsed first."""

    @abstractmethod
    def signal_graceful(self) -> None:
        """Ask every member to exit."""

    @abstractmethod
    def kill(self) -> None:
        """Force-terminate every member."""

    @abstractmethod
    def live_pids(self) -> Set[int]:
        """PIDs of members still running."""

    def track_descendants(self) -> None:
        """Record the root's current descendants so they are signaled even if they leave the group."""

    def release(self) -> None:
        """Free OS resources held for the group once it is no longer needed."""


class PopenIsolationGroup(IsolationGroup):
    """Shared behaviour of the OS-backed groups: a Popen root plus tracked descendants."""

    def __init__(self, popen: subprocess.Popen):
        self.popen = popen
        self._tracked: Dict[int, psutil.Process] = {}

    @property
    def pid(self) -> int:
        return self.popen.pid

    def poll(self) -> Optional[int]:
        return self.popen.poll()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        try:
            return self.popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def track_descendants(self) -> None:
        if self.poll() is not None:
            return
        try:
            children = psutil.Process(self.pid).children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            # Root exited or became inaccessible during enumeration
            return
        for child in children:
            self._tracked.setdefault(child.pid, child)

    def _tracked_alive(self) -> List[psutil.Process]:
        alive = [p for p in self._tracked.values() if _is_process_alive(p)]
        self._tracked = {p.pid: p for p in alive}
        return alive

    def _signal_tracked(self, force: bool) -> None:
        for process in self._tracked_alive():
            try:
                if force:
                    process.kill()
                else:
                    process.terminate()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                logger.warning(f"Access denied signaling PID {process.pid}")


class PosixProcessGroup(PopenIsolationGroup):
    """The root leads a new session; its process group is the isolation group."""

    @classmethod
    def spawn(cls, argv: Sequence[str], env: Mapping[str, str], cwd: Optional[Path] = None) -> "PosixProcessGroup":
        popen = subprocess.Popen(list(argv), env=dict(env), cwd=cwd, start_new_session=True)
        return cls(popen)

    @property
    def pgid(self) -> int:
        # A session leader's pgid equals its pid, even after it exits.
        return self.popen.pid

    def _killpg(self, sig: int) -> None:
        try:
            os.killpg(self.pgid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            logger.warning(f"No permission to signal process group {self.pgid}")

    def signal_graceful(self) -> None:
        self._killpg(signal.SIGTERM)
        self._signal_tracked(force=False)

    def kill(self) -> None:
        self._killpg(signal.SIGKILL)
        self._signal_tracked(force=True)

    def _group_pids(self) -> Set[int]:
        try:
            os.killpg(self.pgid, 0)
        except ProcessLookupError:
            return set()
        except PermissionError:
            pass

        # killpg(0) also succeeds for zombie-only groups; look at each member.
        pids = set()
        for proc in psutil.process_iter(["status"]):
            if proc.info.get("status") in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD):
                continue
            try:
                if os.getpgid(proc.pid) == self.pgid:
                    pids.add(proc.pid)
            except OSError:
                continue
        return pids

    def live_pids(self) -> Set[int]:
        self.poll()
        return self._group_pids() | {p.pid for p in self._tracked_alive()}


class WindowsProcessGroup(PopenIsolationGroup):
    """
    The root gets a new console process group and is placed in a kill-on-close
    Job Object before it runs.

    The root is created suspended and only resumed once it is in the job, so
    nothing it starts can escape. Children stay in the job after their parent
    exits. Descendant tracking through psutil remains as a backstop for when
    no job could be set up.
    """

    def __init__(self, popen: subprocess.Popen, job: Optional[JobObject] = None):
        super().__init__(popen)
        self.job = job

    @classmethod
    def spawn(cls, argv: Sequence[str], env: Mapping[str, str], cwd: Optional[Path] = None) -> "WindowsProcessGroup":
        popen = subprocess.Popen(
            list(argv),
            env=dict(env),
            cwd=cwd,
            creationflags=subprocess.CREATE_NEW_PROCESS_GROUP | CREATE_SUSPENDED,
        )
        job = cls._create_job(popen.pid)
        try:
            psutil.Process(popen.pid).resume()
        except psutil.Error as e:
            if job is not None:
                job.terminate()
                job.close()
            popen.kill()
            raise OSError(f"could not resume PID {popen.pid}: {e}") from e
        return cls(popen, job)

    @staticmethod
    def _create_job(pid: int) -> Optional[JobObject]:
        job = None
        try:
            job = JobObject()
            job.assign(pid)
        except OSError as e:
            logger.warning(f"No job object for PID {pid}, falling back to descendant tracking: {e}")
            if job is not None:
                job.close()
            return None
        return job

    def signal_graceful(self) -> None:
        self.track_descendants()
        if self.poll() is None:
            try:
                self.popen.send_signal(signal.CTRL_BREAK_EVENT)
            except OSError as e:
                logger.debug(f"CTRL_BREAK to {self.pid} failed: {e}")

    def kill(self) -> None:
        self.track_descendants()
        if self.job is not None:
            self.job.terminate()
        self._signal_tracked(force=True)
        if self.poll() is None:
            try:
                self.popen.kill()
            except OSError as e:
                logger.debug(f"Kill of {self.pid} failed: {e}")

    def live_pids(self) -> Set[int]:
        self.track_descendants()
        pids = {p.pid for p in self._tracked_alive()}
        if self.job is not None:
            pids |= self.job.pids()
        if self.poll() is None:
            pids.add(self.pid)
        return pids

    def release(self) -> None:
        if self.job is not None:
            self.job.close()
            self.job = None


Spawner = Callable[[Sequence[str], Mapping[str, str], Optional[Path]], IsolationGroup]


def default_spawner() -> Spawner:
    """The isolation group implementation for this platform."""
    if os.name == "nt":
        return WindowsProcessGroup.spawn
    return PosixProcessGroup.spawn


@dataclass(frozen=True)
class SupervisedProcess:
    """Handle to a started run program. Replaced, never mutated."""

    group: IsolationGroup
    plan: RunPlan
    started_at: float = field(default_factory=time.monotonic)

    @property
    def pid(self) -> int:
        return self.group.pid


class ProcessTreeSupervisor:
    """
    Starts run programs as isolation groups and tears whole groups down.

    Args:
        spawner: Creates an IsolationGroup from (argv, env, cwd)
        cwd: Working directory for started programs
        poll_interval: How often group membership is re-checked while stopping
        force_timeout: How long to wait for a forced kill to take effect
    """

    def __init__(self, spawner: Optional[Spawner] = None, cwd: Optional[Path] = None,
                 poll_interval: float = TimeoutConstants.TERMINATION_POLL_INTERVAL,
                 force_timeout: float = TimeoutConstants.TERMINATION_FORCE_TIMEOUT):
        self._spawner = spawner or default_spawner()
        self.cwd = cwd
        self.poll_interval = poll_interval
        self.force_timeout = force_timeout

    def start(self, plan: RunPlan) -> SupervisedProcess:
        """
        Start `plan` as the root of a fresh isolation group.

        The child sees ACTIVE_ENV_VAR=1 so a nested rair refuses to start.

        Raises:
            SpawnFailure: If the program cannot be started
        """
        env = os.environ.copy()
        env[ACTIVE_ENV_VAR] = "1"
        logger.info(f"Run: {format_argv(plan.argv)}")
        try:
            group = self._spawner(plan.argv, env, self.cwd)
        except (OSError, ValueError) as e:
            raise SpawnFailure(f"{type(e).__name__}: {e}", plan.argv) from e
        logger.info(f"Started process (PID: {group.pid})")
        return SupervisedProcess(group=group, plan=plan)

    def stop(self, handle: SupervisedProcess, grace: float = TimeoutConstants.TERMINATION_GRACE_TIMEOUT) -> bool:
        """
        Terminate every process in the handle's group.

        Stopping a group that already exited is a no-op.

        Returns:
            True if the group exited within `grace`, False if a forced kill
            was needed.
        """
        group = handle.group
        try:
            return self._terminate(group, grace)
        finally:
            group.release()

    def _terminate(self, group: IsolationGroup, grace: float) -> bool:
        group.track_descendants()
        if not group.live_pids():
            logger.debug(f"Process group {group.pid} already exited")
            return True

        logger.info(f"Stopping process tree (PID: {group.pid})")
        group.signal_graceful()
        if self._wait_until_empty(group, grace):
            logger.info(f"Process tree {group.pid} exited")
            return True

        handle_error(
            error=TerminationTimeout(group.pid, grace, len(group.live_pids())),
            context="stopping process tree",
            severity=ErrorSeverity.WARNING,
            reraise=False,
            logger=logger,
        )
        group.kill()
        if not self._wait_until_empty(group, self.force_timeout):
            self._handle_stubborn_processes(group)
        group.poll()
        return False

    def wait_exit(self, handle: SupervisedProcess, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the root to exit and return its status; None on timeout."""
        return handle.group.wait(timeout)

    def poll(self, handle: SupervisedProcess) -> Optional[int]:
        return handle.group.poll()

    def is_running(self, handle: SupervisedProcess) -> bool:
        return bool(handle.group.live_pids())

    def _wait_until_empty(self, group: IsolationGroup, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            group.track_descendants()
            if not group.live_pids():
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(self.poll_interval)

    def _handle_stubborn_processes(self, group: IsolationGroup) -> None:
        """Report processes that survived a forced kill."""
        survivors = group.live_pids()
        logger.error(f"Failed to terminate {len(survivors)} stubborn processes in group {group.pid}")
        for pid in survivors:
            try:
                process = psutil.Process(pid)
                logger.error(f"Stubborn process: PID {pid}, name: {process.name()}, "
                             f"status: {process.status()}, cmdline: {' '.join(process.cmdline()[:3])}")
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.error(f"Could not get info for stubborn process PID {pid}: {e}")
