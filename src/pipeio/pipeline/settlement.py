"""Turn the first terminal event of a pipeline into exactly one callback."""

import asyncio
from typing import Any, Callable, List, Optional, Sequence, Set

from ..logging_config import get_logger
from .linker import Link
from .registry import ListenerRegistry
from .stage import Sink, Source, Stage

logger = get_logger(__name__)


class Settlement:
    """Once-only latch: ``pending`` until the first error or completion.

    The latch belongs to one pipeline. Settling removes every registration
    recorded in ``registry`` and cancels the latch's own waiter tasks before
    the callback is scheduled; on the error path every stage is destroyed as
    well, discarding data still in flight.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[..., Any],
        registry: ListenerRegistry,
        stages: Sequence[Stage],
    ) -> None:
        self.name = name
        self.callback = callback
        self.registry = registry
        self.stages: List[Stage] = list(stages)
        self.settled = False
        self.error: Optional[BaseException] = None
        self._tasks: Set[asyncio.Task] = set()

    def watch(self, links: Sequence[Link]) -> None:
        """Subscribe to errors on every stage and to completion of the last."""
        for stage in self.stages:
            self.registry.add(stage, "error", self._error_handler(stage))

        last = self.stages[-1]
        final_link = links[-1] if links else None

        if isinstance(last, Source):
            # Nobody reads the last stage's output, drop it so it keeps flowing
            def discard(chunk: bytes) -> None:
                pass

            self.registry.add(last, "data", discard)

        if final_link is not None and not final_link.propagate_end:
            self.registry.add(final_link.upstream, "end", self._flush_handler(final_link.downstream))
        elif isinstance(last, Source):
            self.registry.add(last, "end", self._completion_handler(last, "end"))
        else:
            self.registry.add(last, "finish", self._completion_handler(last, "finish"))

    def _error_handler(self, stage: Stage) -> Callable[[BaseException], None]:
        def on_error(error: BaseException) -> None:
            if not self.settle(error):
                return
            logger.warning(
                f"Stage {stage.name} failed in pipeline {self.name}: {error}",
                extra={
                    "extra_fields": {
                        "pipeline": self.name,
                        "stage": stage.name,
                        "error_type": type(error).__name__,
                    }
                },
            )

        return on_error

    def _completion_handler(self, stage: Stage, event: str) -> Callable[[], None]:
        def on_complete() -> None:
            logger.debug(f"Pipeline {self.name} completed on {stage.name} {event}")
            self.settle()

        return on_complete

    def _flush_handler(self, sink: Sink) -> Callable[[], None]:
        def on_upstream_end() -> None:
            task = asyncio.get_running_loop().create_task(self._settle_when_flushed(sink))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return on_upstream_end

    async def _settle_when_flushed(self, sink: Sink) -> None:
        await sink.wait_flushed()
        self.settle()

    def settle(self, error: Optional[BaseException] = None) -> bool:
        """Settle once. Returns False if the pipeline had already settled."""
        if self.settled:
            logger.debug(
                f"Ignoring event after settlement of {self.name}",
                extra={"extra_fields": {"pipeline": self.name, "late_error": repr(error)}},
            )
            return False

        self.settled = True
        self.error = error

        removed = self.registry.remove_all()

        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

        if error is not None:
            for stage in self.stages:
                stage.destroy()

        logger.debug(
            f"Pipeline {self.name} settled",
            extra={
                "extra_fields": {
                    "pipeline": self.name,
                    "success": error is None,
                    "registrations_removed": removed,
                }
            },
        )

        asyncio.get_running_loop().call_soon(self._invoke_callback)
        return True

    def _invoke_callback(self) -> None:
        if self.error is None:
            self.callback()
        else:
            self.callback(self.error)
