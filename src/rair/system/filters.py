"""
Path relevance filtering.

Decides which changed paths should feed the debouncer: ignore globs first,
then the package manifests that always matter, then the extension sets.
"""

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, Optional, Union

ALWAYS_RELEVANT = frozenset({"Cargo.toml", "Cargo.lock"})


def _normalize(path: Union[str, Path]) -> str:
    return str(path).replace("\\", "/")


def matches_any_glob(path: Union[str, Path], globs: Iterable[str]) -> bool:
    """
    Glob matching against forward-slash-normalized paths.

    `*` crosses directory separators, and a leading `**/` also matches
    zero directories, so `**/.git/**` matches both `a/.git/x` and `.git/x`.
    """
    norm = _normalize(path)
    for pattern in globs:
        pattern = _normalize(pattern)
        if fnmatch(norm, pattern):
            return True
        if pattern.startswith("**/") and fnmatch(norm, pattern[3:]):
            return True
    return False


def is_relevant_path(path: Union[str, Path], include_ext: Iterable[str], exclude_ext: Iterable[str]) -> bool:
    """True if a change to this path should trigger a rebuild."""
    path = Path(path)
    if path.name in ALWAYS_RELEVANT:
        return True

    ext = path.suffix.lstrip(".").lower()
    if not ext:
        return False
    if ext in exclude_ext:
        return False
    return ext in include_ext


class PathFilter:
    """Ignore globs plus extension relevance, bound once per session."""

    def __init__(self, ignore_globs: Iterable[str], include_ext: Iterable[str],
                 exclude_ext: Iterable[str] = (), root: Optional[Path] = None):
        self.ignore_globs = tuple(ignore_globs)
        self.include_ext = frozenset(include_ext)
        self.exclude_ext = frozenset(exclude_ext)
        self.root = root

    def _candidates(self, path: Path):
        yield path
        if self.root is not None:
            try:
                yield path.relative_to(self.root)
            except ValueError:
                pass

    def is_ignored(self, path: Union[str, Path]) -> bool:
        return any(matches_any_glob(p, self.ignore_globs) for p in self._candidates(Path(path)))

    def __call__(self, path: Union[str, Path]) -> bool:
        if self.is_ignored(path):
            return False
        return is_relevant_path(path, self.include_ext, self.exclude_ext)
