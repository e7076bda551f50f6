"""Compose stages into a pipeline that settles exactly once."""

import asyncio
from typing import Any, Callable, List, Optional

from ..logging_config import get_logger
from .linker import Link, build_links, connect, start
from .registry import ListenerRegistry
from .settlement import Settlement
from .stage import Stage
from .validator import PipeOptions, validate_invocation

logger = get_logger(__name__)


class Pipeline:
    """One linked run of ``stages``; never reused after it settles."""

    def __init__(
        self,
        stages: List[Stage],
        options: PipeOptions,
        callback: Callable[..., Any],
    ) -> None:
        self.stages = stages
        self.options = options
        self.name = " | ".join(stage.name for stage in stages)
        self.registry = ListenerRegistry()
        self.links: List[Link] = build_links(stages, end=options.end)
        self.settlement = Settlement(self.name, callback, self.registry, stages)

    @property
    def settled(self) -> bool:
        return self.settlement.settled

    @property
    def error(self) -> Optional[BaseException]:
        return self.settlement.error

    def run(self) -> "Pipeline":
        """Wire every stage and start the producers."""
        # Fail before any subscription when there is no loop to settle on
        asyncio.get_running_loop()

        logger.debug(
            f"Starting pipeline: {self.name}",
            extra={
                "extra_fields": {
                    "pipeline": self.name,
                    "stage_count": len(self.stages),
                    "end": self.options.end,
                }
            },
        )

        self.settlement.watch(self.links)
        for link in self.links:
            connect(link, self.registry)
        start(self.stages)
        return self


def pipe(streams: Any = None, options: Any = None, callback: Any = None) -> Pipeline:
    """Pipe ``streams`` into each other and call ``callback`` once when done.

    ``callback()`` is called with no argument on success and with the first
    stage error otherwise, always from a later turn of the running loop.
    ``options`` is optional (``pipe(streams, callback)`` works) and accepts
    a mapping or :class:`PipeOptions`; ``end=False`` leaves the last stage
    open so another pipeline can keep writing into it.

    Raises:
        ValidationError: If ``streams`` is empty or ``callback`` is missing
    """
    stages, pipe_options, done = validate_invocation(streams, options, callback)
    return Pipeline(stages, pipe_options, done).run()


async def pipe_async(streams: Any, options: Any = None) -> None:
    """Awaitable form of :func:`pipe`; raises the stage error on failure."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def on_settled(error: Optional[BaseException] = None) -> None:
        if future.done():
            return
        if error is None:
            future.set_result(None)
        else:
            future.set_exception(error)

    pipe(streams, options, on_settled)
    await future
