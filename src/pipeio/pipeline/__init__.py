"""Pipeline composition: validation, linking, settlement and cleanup."""

from .events import EventEmitter
from .stage import Stage, Source, Sink, Through, DEFAULT_CHUNK_SIZE, DEFAULT_HIGH_WATER_MARK
from .registry import ListenerRegistry, Registration
from .linker import Link, build_links
from .settlement import Settlement
from .validator import PipeOptions
from .pipe import Pipeline, pipe, pipe_async

__all__ = [
    "EventEmitter",
    "Stage",
    "Source",
    "Sink",
    "Through",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_HIGH_WATER_MARK",
    "ListenerRegistry",
    "Registration",
    "Link",
    "build_links",
    "Settlement",
    "PipeOptions",
    "Pipeline",
    "pipe",
    "pipe_async",
]
