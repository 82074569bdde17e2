"""
Unit tests for path relevance filtering.
"""

from pathlib import Path

import pytest

from rair.system.filters import PathFilter, is_relevant_path, matches_any_glob


@pytest.mark.unit
class TestGlobMatching:
    """Test cases for ignore glob matching."""

    @pytest.mark.parametrize("path,globs,expected", [
        ("/proj/target/debug/app", ["**/target/**"], True),
        ("target/debug/app", ["**/target/**"], True),
        (".git/HEAD", ["**/.git/**"], True),
        ("/proj/src/.git/x", ["**/.git/**"], True),
        ("/proj/src/main.rs", ["**/target/**"], False),
        ("/proj/src/main.rs", ["*.rs"], True),
        ("/proj/src/gen_a.rs", ["**/gen_?.rs"], True),
        ("/proj/src/main.rs", [], False),
    ])
    def test_matches_any_glob(self, path, globs, expected):
        assert matches_any_glob(path, globs) is expected

    def test_windows_separators_normalized(self):
        assert matches_any_glob("C:\\proj\\target\\debug\\app.exe", ["**/target/**"])


@pytest.mark.unit
class TestRelevance:
    """Test cases for extension relevance."""

    @pytest.mark.parametrize("path,expected", [
        ("src/main.rs", True),
        ("src/MAIN.RS", True),
        ("Cargo.toml", True),
        ("Cargo.lock", True),
        ("README.md", False),
        ("Makefile", False),
        ("src/.hidden", False),
    ])
    def test_default_include_set(self, path, expected):
        assert is_relevant_path(path, {"rs", "toml"}, set()) is expected

    def test_exclude_wins_over_include(self):
        assert not is_relevant_path("build.rs", {"rs"}, {"rs"})

    def test_manifests_always_relevant(self):
        assert is_relevant_path("Cargo.lock", {"rs"}, {"lock"})


@pytest.mark.unit
class TestPathFilter:
    """Test cases for the bound PathFilter."""

    def test_ignored_before_relevance(self):
        path_filter = PathFilter(["**/target/**"], {"rs"})
        assert not path_filter(Path("/proj/target/debug/build/out.rs"))
        assert path_filter(Path("/proj/src/main.rs"))

    def test_root_relative_globs(self, temp_dir):
        path_filter = PathFilter(["generated/*"], {"rs"}, root=temp_dir)

        assert path_filter.is_ignored(temp_dir / "generated" / "bindings.rs")
        assert not path_filter(temp_dir / "generated" / "bindings.rs")
        assert path_filter(temp_dir / "src" / "lib.rs")

    def test_path_outside_root(self, temp_dir):
        path_filter = PathFilter(["generated/*"], {"rs"}, root=temp_dir / "a")
        assert path_filter(temp_dir / "b" / "generated" / "x.rs")
