"""Compose byte stages into pipelines that settle exactly once."""

from .errors import (
    PipeIOError,
    ValidationError,
    ConfigurationError,
    StageError,
    WriteAfterEndError,
    CorruptedStreamError,
    ArchiveError,
)
from .pipeline import (
    EventEmitter,
    Stage,
    Source,
    Sink,
    Through,
    PipeOptions,
    Pipeline,
    pipe,
    pipe_async,
)

__version__ = "0.1.0"

__all__ = [
    "PipeIOError",
    "ValidationError",
    "ConfigurationError",
    "StageError",
    "WriteAfterEndError",
    "CorruptedStreamError",
    "ArchiveError",
    "EventEmitter",
    "Stage",
    "Source",
    "Sink",
    "Through",
    "PipeOptions",
    "Pipeline",
    "pipe",
    "pipe_async",
]
