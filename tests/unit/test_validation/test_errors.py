"""
Unit tests for the error taxonomy and error handling helpers.
"""

import logging

import pytest

from rair.validation import (
    BuildFailure,
    ConfigurationError,
    ErrorSeverity,
    HookFailure,
    RairError,
    SpawnFailure,
    TerminationTimeout,
    ValidationError,
    WatchSourceFailure,
    handle_cli_error,
    handle_error,
)


@pytest.mark.unit
class TestTaxonomy:
    @pytest.mark.parametrize("error", [
        ConfigurationError("x"),
        ValidationError("x"),
        HookFailure("pre_build", 0, exit_status=1),
        BuildFailure(exit_status=1),
        SpawnFailure("missing"),
        TerminationTimeout(10, 5.0, 2),
        WatchSourceFailure("x"),
    ])
    def test_all_errors_share_base(self, error):
        assert isinstance(error, RairError)

    def test_hook_failure_messages(self):
        assert str(HookFailure("pre_run", 1, exit_status=2)) == "hook pre_run[1] exited with status 2"
        assert "could not be started" in str(HookFailure("pre_run", 0, reason="not found"))

    def test_build_failure_messages(self):
        assert "status 101" in str(BuildFailure(exit_status=101))
        assert "not found" in str(BuildFailure(resolver_miss=True, reason="gone"))
        assert "could not be started" in str(BuildFailure(reason="EACCES"))

    def test_validation_error_fields(self):
        error = ValidationError("bad", field_name="debounce_ms", value=-1)
        assert error.field_name == "debounce_ms"
        assert error.value == -1
        assert error.severity is ErrorSeverity.ERROR


@pytest.mark.unit
class TestHandlers:
    def test_handle_error_logs_and_reraises(self, caplog):
        caplog.set_level(logging.ERROR)
        with pytest.raises(BuildFailure):
            handle_error(BuildFailure(exit_status=1), "build")
        assert "Error in build" in caplog.text

    def test_handle_error_without_reraise(self, caplog):
        caplog.set_level(logging.WARNING)
        handle_error(SpawnFailure("x"), "start", severity=ErrorSeverity.WARNING, reraise=False)
        assert caplog.records[-1].levelno == logging.WARNING

    def test_severity_as_string(self, caplog):
        caplog.set_level(logging.INFO)
        handle_error(RuntimeError("x"), "ctx", severity="info", reraise=False)
        assert caplog.records[-1].levelno == logging.INFO

    def test_handle_cli_error_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ConfigurationError("bad"), "configuration", exit_code=2)
        assert exc_info.value.code == 2
