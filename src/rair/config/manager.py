"""
Effective configuration assembly.

Merges the configuration file with command-line flags (flags win field by
field), fills in defaults, derives the default package build command and
produces the per-session CyclePlan.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..models.config import EffectiveConfig, PartialConfig
from ..models.runtime import BuildMode, BuildPlan, CyclePlan, HookSpec, RunPlan
from ..validation import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 250
DEFAULT_GRACE_SECONDS = 5.0
DEFAULT_IGNORE = ("**/target/**", "**/.git/**")
DEFAULT_INCLUDE_EXT = ("rs", "toml")
PACKAGE_MANIFEST = "Cargo.toml"
PACKAGE_WATCH_PATHS = ("src", "Cargo.toml", "Cargo.lock")
SOURCE_SUFFIX = ".rs"


def normalize_extension(ext: str) -> str:
    """'.RS' -> 'rs'."""
    return ext.strip().lstrip(".").lower()


def default_build_argv(
    release: bool = False,
    manifest_path: Optional[Path] = None,
    workspace: bool = False,
    package: Optional[str] = None,
    bin: Optional[str] = None,
    all_features: bool = False,
    no_default_features: bool = False,
    features: Sequence[str] = (),
) -> List[str]:
    """Build the package manager's build argv from the selection flags."""
    argv = ["cargo", "build"]
    if release:
        argv.append("--release")
    if manifest_path is not None:
        argv += ["--manifest-path", str(manifest_path)]
    if workspace:
        argv.append("--workspace")
    if package:
        argv += ["-p", package]
    if bin:
        argv += ["--bin", bin]
    if all_features:
        argv.append("--all-features")
    if no_default_features:
        argv.append("--no-default-features")
    if features:
        argv += ["--features", ",".join(features)]
    return argv


def _hooks(steps: Optional[Iterable[Sequence[str]]]):
    return tuple(tuple(step) for step in (steps or ()))


def effective_config(
    cli: PartialConfig,
    file: Optional[PartialConfig] = None,
    working_dir: Optional[Path] = None,
) -> EffectiveConfig:
    """
    Merge configuration sources and apply defaults.

    Args:
        cli: Values given on the command line
        file: Values from the configuration file, if any
        working_dir: Directory the session runs in (defaults to cwd)

    Returns:
        The session's EffectiveConfig
    """
    working_dir = working_dir or Path.cwd()
    merged = cli.merged_over(file or PartialConfig())

    if merged.watch is not None:
        watch = merged.watch
    elif (working_dir / PACKAGE_MANIFEST).exists():
        watch = list(PACKAGE_WATCH_PATHS)
    else:
        watch = ["."]

    manifest_path = Path(merged.manifest_path) if merged.manifest_path else None
    features = tuple(merged.features or ())
    release = bool(merged.release)
    workspace = bool(merged.workspace)
    all_features = bool(merged.all_features)
    no_default_features = bool(merged.no_default_features)

    if merged.build is not None:
        build = merged.build
    else:
        build = default_build_argv(
            release=release,
            manifest_path=manifest_path,
            workspace=workspace,
            package=merged.package,
            bin=merged.bin,
            all_features=all_features,
            no_default_features=no_default_features,
            features=features,
        )

    include_ext = merged.include_ext if merged.include_ext is not None else DEFAULT_INCLUDE_EXT

    return EffectiveConfig(
        watch=tuple(Path(p) for p in watch),
        ignore_globs=tuple(merged.ignore if merged.ignore is not None else DEFAULT_IGNORE),
        include_ext=frozenset(normalize_extension(e) for e in include_ext),
        exclude_ext=frozenset(normalize_extension(e) for e in (merged.exclude_ext or ())),
        debounce_ms=merged.debounce_ms if merged.debounce_ms is not None else DEFAULT_DEBOUNCE_MS,
        clear=merged.clear if merged.clear is not None else True,
        grace_seconds=merged.grace_seconds if merged.grace_seconds is not None else DEFAULT_GRACE_SECONDS,
        build=tuple(build),
        run=tuple(merged.run) if merged.run is not None else None,
        manifest_path=manifest_path,
        package=merged.package,
        bin=merged.bin,
        features=features,
        all_features=all_features,
        no_default_features=no_default_features,
        workspace=workspace,
        release=release,
        explicit_build=merged.build is not None,
        files_mode=merged.files_mode,
        pre_build=_hooks(merged.pre_build),
        post_build=_hooks(merged.post_build),
        pre_run=_hooks(merged.pre_run),
        post_run=_hooks(merged.post_run),
        on_build_fail=_hooks(merged.on_build_fail),
        working_dir=working_dir,
    )


def single_file_output_path() -> Path:
    """Where files mode writes the compiled program."""
    name = "rair-out.exe" if os.name == "nt" else "rair-out"
    return Path(tempfile.gettempdir()) / name


def files_mode_config(files: Sequence[Path], output_path: Optional[Path] = None) -> PartialConfig:
    """
    Configuration for compiling and running the given source files directly.

    Raises:
        ConfigurationError: If no files are given, one is missing, or one is
            not a source file
    """
    if not files:
        raise ConfigurationError("no files provided")

    for f in files:
        if not Path(f).exists():
            raise ConfigurationError(f"file does not exist: {f}")
        if Path(f).suffix != SOURCE_SUFFIX:
            raise ConfigurationError(f"not a {SOURCE_SUFFIX} file: {f}")

    output_path = output_path or single_file_output_path()
    build = ["rustc"] + [str(f) for f in files] + ["-o", str(output_path)]

    return PartialConfig(
        watch=["."],
        include_ext=["rs"],
        ignore=list(DEFAULT_IGNORE),
        build=build,
        run=[str(output_path)],
        clear=True,
        files_mode=True,
    )


def build_mode(eff: EffectiveConfig) -> BuildMode:
    if eff.files_mode:
        return BuildMode.SINGLE_FILE
    if eff.explicit_build:
        return BuildMode.OVERRIDE
    return BuildMode.PACKAGE


def build_plan(eff: EffectiveConfig) -> BuildPlan:
    return BuildPlan.from_argv(eff.build, working_dir=eff.working_dir, mode=build_mode(eff))


def run_plan(eff: EffectiveConfig) -> Optional[RunPlan]:
    """The explicit run command, or None when the build artifact is run."""
    return RunPlan.from_argv(eff.run) if eff.run else None


def cycle_plan(eff: EffectiveConfig) -> CyclePlan:
    """Resolve the plans and hooks every orchestrator cycle executes."""
    return CyclePlan(
        build_plan=build_plan(eff),
        run_plan=run_plan(eff),
        pre_build=HookSpec("pre_build", eff.pre_build),
        post_build=HookSpec("post_build", eff.post_build),
        pre_run=HookSpec("pre_run", eff.pre_run),
        post_run=HookSpec("post_run", eff.post_run),
        on_build_fail=HookSpec("on_build_fail", eff.on_build_fail),
        grace_seconds=eff.grace_seconds,
        clear=eff.clear,
    )
