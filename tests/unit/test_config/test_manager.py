"""
Unit tests for effective configuration assembly.

Covers defaults, CLI-over-file precedence, the derived package build
command, files mode and CyclePlan resolution.
"""

from pathlib import Path

import pytest

from rair.config.manager import (
    DEFAULT_IGNORE,
    build_plan,
    cycle_plan,
    default_build_argv,
    effective_config,
    files_mode_config,
    normalize_extension,
    run_plan,
)
from rair.models.config import PartialConfig
from rair.models.runtime import BuildMode
from rair.validation import ConfigurationError


@pytest.mark.unit
class TestDefaults:
    """Test cases for default values."""

    def test_package_defaults(self, cargo_project):
        eff = effective_config(PartialConfig(), working_dir=cargo_project)

        assert eff.watch == (Path("src"), Path("Cargo.toml"), Path("Cargo.lock"))
        assert eff.ignore_globs == DEFAULT_IGNORE
        assert eff.include_ext == frozenset({"rs", "toml"})
        assert eff.exclude_ext == frozenset()
        assert eff.debounce_ms == 250
        assert eff.debounce_seconds == 0.25
        assert eff.clear is True
        assert eff.grace_seconds == 5.0
        assert eff.build == ("cargo", "build")
        assert eff.run is None
        assert eff.explicit_build is False
        assert eff.pre_build == ()

    def test_watch_defaults_to_cwd_without_manifest(self, temp_dir):
        eff = effective_config(PartialConfig(), working_dir=temp_dir)
        assert eff.watch == (Path("."),)

    def test_extensions_normalized(self, temp_dir):
        eff = effective_config(PartialConfig(include_ext=[".RS", "Toml"], exclude_ext=[".md"]), working_dir=temp_dir)
        assert eff.include_ext == frozenset({"rs", "toml"})
        assert eff.exclude_ext == frozenset({"md"})

    @pytest.mark.parametrize("raw,expected", [(".rs", "rs"), ("RS", "rs"), (" toml ", "toml")])
    def test_normalize_extension(self, raw, expected):
        assert normalize_extension(raw) == expected


@pytest.mark.unit
class TestMerge:
    """CLI values win field by field over the configuration file."""

    def test_cli_overrides_file(self, temp_dir):
        file = PartialConfig(debounce_ms=100, clear=False, run=["./a"])
        cli = PartialConfig(debounce_ms=500)

        eff = effective_config(cli, file, working_dir=temp_dir)

        assert eff.debounce_ms == 500
        assert eff.clear is False
        assert eff.run == ("./a",)

    def test_cli_false_still_overrides(self, temp_dir):
        eff = effective_config(PartialConfig(clear=False), PartialConfig(clear=True), working_dir=temp_dir)
        assert eff.clear is False

    def test_hooks_from_file(self, temp_dir):
        file = PartialConfig(pre_build=[["cargo", "fmt"]], on_build_fail=[["say", "no"]])
        eff = effective_config(PartialConfig(), file, working_dir=temp_dir)

        assert eff.pre_build == (("cargo", "fmt"),)
        assert eff.on_build_fail == (("say", "no"),)

    def test_explicit_build_overrides_package_flags(self, temp_dir):
        eff = effective_config(PartialConfig(build=["make"], release=True), working_dir=temp_dir)
        assert eff.build == ("make",)
        assert eff.explicit_build is True


@pytest.mark.unit
class TestBuildArgv:
    """Test cases for the derived package build command."""

    def test_flag_order(self):
        argv = default_build_argv(
            release=True,
            manifest_path=Path("crates/app/Cargo.toml"),
            workspace=True,
            package="app",
            bin="server",
            all_features=True,
            no_default_features=True,
            features=["tls", "metrics"],
        )
        assert argv == [
            "cargo", "build", "--release",
            "--manifest-path", str(Path("crates/app/Cargo.toml")),
            "--workspace", "-p", "app", "--bin", "server",
            "--all-features", "--no-default-features",
            "--features", "tls,metrics",
        ]

    def test_flags_flow_from_config(self, temp_dir):
        eff = effective_config(PartialConfig(release=True, bin="server", features=["tls"]), working_dir=temp_dir)
        assert eff.build == ("cargo", "build", "--release", "--bin", "server", "--features", "tls")


@pytest.mark.unit
class TestFilesMode:
    """Test cases for compiling individual source files."""

    def test_files_mode_config(self, temp_dir):
        source = temp_dir / "main.rs"
        source.write_text("fn main() {}\n")
        out = temp_dir / "out"

        config = files_mode_config([source], output_path=out)

        assert config.build == ["rustc", str(source), "-o", str(out)]
        assert config.run == [str(out)]
        assert config.watch == ["."]
        assert config.include_ext == ["rs"]
        assert config.clear is True
        assert config.files_mode is True

    def test_files_mode_plan(self, temp_dir):
        source = temp_dir / "main.rs"
        source.write_text("fn main() {}\n")
        eff = effective_config(PartialConfig(), files_mode_config([source]), working_dir=temp_dir)

        plan = cycle_plan(eff)
        assert plan.build_plan.mode is BuildMode.SINGLE_FILE
        assert plan.build_plan.program == "rustc"
        assert plan.run_plan is not None

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError):
            files_mode_config([temp_dir / "missing.rs"])

    def test_wrong_extension(self, temp_dir):
        other = temp_dir / "main.c"
        other.write_text("int main() {}\n")
        with pytest.raises(ConfigurationError):
            files_mode_config([other])

    def test_no_files(self):
        with pytest.raises(ConfigurationError):
            files_mode_config([])


@pytest.mark.unit
class TestPlans:
    """Test cases for plan resolution."""

    def test_package_mode_without_run(self, cargo_project):
        eff = effective_config(PartialConfig(), working_dir=cargo_project)

        plan = build_plan(eff)
        assert plan.mode is BuildMode.PACKAGE
        assert plan.working_dir == cargo_project
        assert run_plan(eff) is None

    def test_override_mode(self, temp_dir):
        eff = effective_config(PartialConfig(build=["make", "-j4"], run=["./app", "-v"]), working_dir=temp_dir)

        assert build_plan(eff).mode is BuildMode.OVERRIDE
        assert run_plan(eff).argv == ("./app", "-v")

    def test_cycle_plan_hooks_and_timing(self, temp_dir):
        eff = effective_config(
            PartialConfig(run=["./app"], grace_seconds=1.5, clear=False,
                          pre_build=[["a"], ["b", "c"]], post_run=[["d"]]),
            working_dir=temp_dir,
        )
        plan = cycle_plan(eff)

        assert plan.pre_build.name == "pre_build"
        assert list(plan.pre_build) == [("a",), ("b", "c")]
        assert list(plan.post_run) == [("d",)]
        assert not plan.on_build_fail
        assert plan.grace_seconds == 1.5
        assert plan.clear is False
