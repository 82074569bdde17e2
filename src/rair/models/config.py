"""
Configuration data models.

PartialConfig mirrors one configuration source (the `.rair.toml` file or
the command line) where every field is optional; EffectiveConfig is the
merged, defaulted snapshot a watch session runs with.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple


@dataclass
class PartialConfig:
    """
    One configuration source. None means "not specified here".
    """

    # [watching]
    watch: Optional[List[str]] = None
    ignore: Optional[List[str]] = None
    include_ext: Optional[List[str]] = None
    exclude_ext: Optional[List[str]] = None
    debounce_ms: Optional[int] = None
    clear: Optional[bool] = None
    grace_seconds: Optional[float] = None

    # Explicit build argv; derived from the package flags when omitted.
    build: Optional[List[str]] = None
    # Explicit run argv; resolved from build metadata when omitted.
    run: Optional[List[str]] = None

    # Package-managed build selection
    manifest_path: Optional[str] = None
    package: Optional[str] = None
    bin: Optional[str] = None
    features: Optional[List[str]] = None
    all_features: Optional[bool] = None
    no_default_features: Optional[bool] = None
    workspace: Optional[bool] = None
    release: Optional[bool] = None

    # Hooks: each a list of argv lists
    pre_build: Optional[List[List[str]]] = None
    post_build: Optional[List[List[str]]] = None
    pre_run: Optional[List[List[str]]] = None
    post_run: Optional[List[List[str]]] = None
    on_build_fail: Optional[List[List[str]]] = None

    # Set by files mode; not read from the config file.
    files_mode: bool = False

    def merged_over(self, base: "PartialConfig") -> "PartialConfig":
        """Return a copy of `base` with every field this source specifies overriding it."""
        merged = PartialConfig()
        for f in fields(self):
            value = getattr(self, f.name)
            setattr(merged, f.name, value if value is not None else getattr(base, f.name))
        merged.files_mode = self.files_mode or base.files_mode
        return merged


@dataclass(frozen=True)
class EffectiveConfig:
    """
    The immutable configuration snapshot for one watch session.
    """

    watch: Tuple[Path, ...]
    ignore_globs: Tuple[str, ...]
    include_ext: FrozenSet[str]
    exclude_ext: FrozenSet[str]
    debounce_ms: int
    clear: bool
    grace_seconds: float

    # Always present: explicit or derived.
    build: Tuple[str, ...]
    run: Optional[Tuple[str, ...]]

    manifest_path: Optional[Path] = None
    package: Optional[str] = None
    bin: Optional[str] = None
    features: Tuple[str, ...] = ()
    all_features: bool = False
    no_default_features: bool = False
    workspace: bool = False
    release: bool = False
    explicit_build: bool = False
    files_mode: bool = False

    pre_build: Tuple[Tuple[str, ...], ...] = ()
    post_build: Tuple[Tuple[str, ...], ...] = ()
    pre_run: Tuple[Tuple[str, ...], ...] = ()
    post_run: Tuple[Tuple[str, ...], ...] = ()
    on_build_fail: Tuple[Tuple[str, ...], ...] = ()

    working_dir: Path = field(default_factory=Path.cwd)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0
