"""Tests for the error hierarchy."""

import pytest

from pipeio import (
    ArchiveError,
    ConfigurationError,
    CorruptedStreamError,
    PipeIOError,
    StageError,
    ValidationError,
    WriteAfterEndError,
)


class TestErrors:
    """Test pipeio error types."""

    def test_base_error(self):
        """Test base PipeIOError functionality."""
        error = PipeIOError("Test error", stage="gzip")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {"stage": "gzip"}

    def test_context_defaults_to_empty(self):
        """Test that context is empty when none is given."""
        assert ValidationError("bad call").context == {}

    @pytest.mark.parametrize(
        "error_type",
        [ValidationError, ConfigurationError, StageError],
    )
    def test_top_level_errors(self, error_type):
        """Test that every error derives from PipeIOError."""
        error = error_type("failed")

        assert isinstance(error, PipeIOError)
        assert isinstance(error, Exception)

    @pytest.mark.parametrize(
        "error_type",
        [WriteAfterEndError, CorruptedStreamError, ArchiveError],
    )
    def test_stage_errors(self, error_type):
        """Test that stage failures share StageError."""
        error = error_type("stage failed", stage="s")

        assert isinstance(error, StageError)
        assert error.context["stage"] == "s"

    def test_error_context_preservation(self):
        """Test that multiple context fields are preserved."""
        error = ArchiveError("bad member", stage="untar", member="../x", reason="unsafe path")

        assert error.context["stage"] == "untar"
        assert error.context["member"] == "../x"
        assert error.context["reason"] == "unsafe path"
