"""Connect adjacent stages with backpressure and end propagation."""

from dataclasses import dataclass
from typing import List, Sequence

from ..logging_config import get_logger
from .registry import ListenerRegistry
from .stage import Sink, Source, Stage

logger = get_logger(__name__)


@dataclass(frozen=True)
class Link:
    """Data connection from ``upstream`` into ``downstream``."""

    upstream: Source
    downstream: Sink
    propagate_end: bool


def build_links(stages: Sequence[Stage], end: bool = True) -> List[Link]:
    """Create one Link per adjacent pair; only the last one honors ``end``."""
    last = len(stages) - 2
    return [
        Link(stages[i], stages[i + 1], propagate_end=end if i == last else True)
        for i in range(len(stages) - 1)
    ]


def connect(link: Link, registry: ListenerRegistry) -> None:
    """Subscribe the handlers that move data across ``link``."""
    upstream, downstream = link.upstream, link.downstream

    def on_data(chunk: bytes) -> None:
        if not downstream.write(chunk):
            upstream.pause()

    def on_drain() -> None:
        upstream.resume()

    registry.add(upstream, "data", on_data)
    registry.add(downstream, "drain", on_drain)

    if link.propagate_end:
        def on_end() -> None:
            downstream.end()

        registry.add(upstream, "end", on_end)

    logger.debug(
        f"Linked {upstream.name} -> {downstream.name}",
        extra={
            "extra_fields": {
                "upstream": upstream.name,
                "downstream": downstream.name,
                "propagate_end": link.propagate_end,
            }
        },
    )


def start(stages: Sequence[Stage]) -> None:
    """Start every producing stage, most downstream first."""
    for stage in reversed(stages):
        if isinstance(stage, Source):
            stage.start()
