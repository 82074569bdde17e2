"""
Pytest configuration and shared fixtures for the rair test suite.

This module provides common fixtures, fake collaborators and test utilities
for all test modules in the rair project.
"""

import itertools
import shutil
import sys
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Set, Union

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rair.models.runtime import BuildMode, BuildPlan, CyclePlan, HookSpec, RunPlan  # noqa: E402
from rair.orchestration.process_manager import IsolationGroup  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "posix: mark test as requiring POSIX process groups")
    config.addinivalue_line("markers", "windows: mark test as requiring Windows job objects")


def pytest_collection_modifyitems(config, items):
    """Skip tests bound to the other platform family."""
    if sys.platform == "win32":
        skipped, skip = "posix", pytest.mark.skip(reason="requires POSIX process groups")
    else:
        skipped, skip = "windows", pytest.mark.skip(reason="requires Windows job objects")
    for item in items:
        if skipped in item.keywords:
            item.add_marker(skip)


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path).resolve()
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def python_cmd():
    """Build an argv that runs a Python snippet with the current interpreter."""

    def _make(code: str) -> List[str]:
        return [sys.executable, "-c", code]

    return _make


@pytest.fixture
def cargo_project(temp_dir):
    """A directory laid out like a cargo package."""
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "main.rs").write_text('fn main() { println!("hi"); }\n')
    (temp_dir / "Cargo.toml").write_text('[package]\nname = "demo"\nversion = "0.1.0"\n')
    return temp_dir


# ============================================================================
# Fake Collaborators
# ============================================================================


class RecordingRunner:
    """
    Stands in for `run_forwarding`.

    Each call is recorded; the exit status is looked up by program name in
    `results`. A result that is an exception instance is raised instead.
    Programs listed in `gates` block until their gate event is set.
    """

    def __init__(self, results: Optional[Dict[str, Union[int, Exception]]] = None):
        self.results = dict(results or {})
        self.calls: List[List[str]] = []
        self.gates: Dict[str, threading.Event] = {}
        self.entered: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def gate(self, program: str) -> threading.Event:
        self.gates[program] = threading.Event()
        self.entered[program] = threading.Event()
        return self.gates[program]

    def programs(self) -> List[str]:
        with self._lock:
            return [call[0] for call in self.calls]

    def __call__(self, argv: Sequence[str], cwd: Optional[Path] = None,
                 env: Optional[Mapping[str, str]] = None) -> int:
        with self._lock:
            self.calls.append(list(argv))
        program = argv[0]
        if program in self.gates:
            self.entered[program].set()
            self.gates[program].wait(10)
        result = self.results.get(program, 0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeIsolationGroup(IsolationGroup):
    """
    In-memory isolation group.

    Args:
        pid: Root PID
        members: Number of processes in the group, root included
        ignores_graceful: Whether graceful termination is ignored
    """

    def __init__(self, pid: int, members: int = 1, ignores_graceful: bool = False):
        self._pid = pid
        self._live: Set[int] = {pid + i for i in range(members)}
        self.ignores_graceful = ignores_graceful
        self.status: Optional[int] = None
        self.graceful_calls = 0
        self.kill_calls = 0
        self.release_calls = 0

    @property
    def pid(self) -> int:
        return self._pid

    def poll(self) -> Optional[int]:
        return self.status

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        return self.status

    def exit(self, status: int = 0) -> None:
        """Simulate the whole tree exiting on its own."""
        self._live.clear()
        self.status = status

    def signal_graceful(self) -> None:
        self.graceful_calls += 1
        if not self.ignores_graceful:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)

    def live_pids(self) -> Set[int]:
        return set(self._live)

    def release(self) -> None:
        self.release_calls += 1


class FakeSpawner:
    """Spawner producing FakeIsolationGroups; records every spawn."""

    def __init__(self, members: int = 1, ignores_graceful: bool = False):
        self.members = members
        self.ignores_graceful = ignores_graceful
        self.fail_with: Optional[Exception] = None
        self.groups: List[FakeIsolationGroup] = []
        self.spawned: List[Sequence[str]] = []
        self.envs: List[Mapping[str, str]] = []
        self._pids = itertools.count(1000, 100)

    def __call__(self, argv: Sequence[str], env: Mapping[str, str], cwd: Optional[Path] = None) -> IsolationGroup:
        if self.fail_with is not None:
            raise self.fail_with
        group = FakeIsolationGroup(next(self._pids), self.members, self.ignores_graceful)
        self.groups.append(group)
        self.spawned.append(list(argv))
        self.envs.append(dict(env))
        return group


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def fake_spawner():
    return FakeSpawner()


@pytest.fixture
def cycle_plan_factory():
    """Build a CyclePlan with fake program names that RecordingRunner understands."""

    def _make(**overrides) -> CyclePlan:
        values = dict(
            build_plan=BuildPlan.from_argv(["build-tool", "all"], mode=BuildMode.OVERRIDE),
            run_plan=RunPlan.from_argv(["app", "--serve"]),
            grace_seconds=0.2,
        )
        for name in ("pre_build", "post_build", "pre_run", "post_run", "on_build_fail"):
            if name in overrides:
                overrides[name] = HookSpec.from_lists(name, overrides[name])
        values.update(overrides)
        return CyclePlan(**values)

    return _make
