"""Application-wide error definitions."""

from typing import Any, Dict


class PipeIOError(Exception):
    """Base exception for all pipeio errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ValidationError(PipeIOError):
    """Invocation parameters are malformed."""
    pass


class ConfigurationError(PipeIOError):
    """Configuration is invalid or missing."""
    pass


class StageError(PipeIOError):
    """Base exception for failures raised by stage implementations."""
    pass


class WriteAfterEndError(StageError):
    """Data was written to a stage that already received its end signal."""
    pass


class CorruptedStreamError(StageError):
    """Encoded input ended early or is malformed."""
    pass


class ArchiveError(StageError):
    """Archive packing or extraction failed."""
    pass
