"""Stage capability classes.

A pipeline is built from three roles:

* :class:`Source` produces chunks (``data`` events) until it emits ``end``.
* :class:`Sink` accepts chunks through :meth:`Sink.write`, reports
  backpressure by returning ``False`` and emitting ``drain`` later, and emits
  ``finish`` once :meth:`Sink.end` was called and everything was written.
* :class:`Through` is both, transforming what it is written into what it emits.

Every stage may emit ``error`` until it completes and emits ``close`` once its
resources are released. Concrete stages only implement the underscore hooks;
exceptions raised from a hook become a single ``error`` event.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Coroutine, Deque, Optional, Set

from ..errors import WriteAfterEndError
from ..logging_config import get_logger
from .events import EventEmitter

DEFAULT_HIGH_WATER_MARK = 16 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_READABLE_QUEUE_SIZE = 16


class Stage(EventEmitter, ABC):
    """Base class for pipeline participants."""

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__()
        self.name = name or type(self).__name__
        self.logger = get_logger(f"{__name__}.{self.name}")
        self.destroyed = False
        self.closed = False
        self._tasks: Set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def destroy(self, error: Optional[BaseException] = None) -> None:
        """Stop all pending work and release resources.

        Buffered data is discarded. When ``error`` is given it is emitted as
        the stage's ``error`` event. Calling destroy twice is a no-op.
        """
        if self.destroyed:
            return
        self.destroyed = True

        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

        if error is not None:
            self.logger.debug(
                f"Stage failed: {self.name}",
                extra={"extra_fields": {"stage": self.name, "error_type": type(error).__name__}},
            )
            self.emit("error", error)

        self._spawn(self._finish_close())

    async def _finish_close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._close()
        except Exception as e:
            self.logger.warning(f"Failed to release {self.name}: {e}")
        self.emit("close")

    async def _close(self) -> None:
        """Release resources held by the stage."""


class Source(Stage):
    """Stage that produces chunks."""

    def __init__(self, name: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(name=name, **kwargs)
        self.readable_ended = False
        self._started = False
        self._flowing = asyncio.Event()
        self._flowing.set()

    @property
    def is_paused(self) -> bool:
        return not self._flowing.is_set()

    def start(self) -> None:
        """Begin producing. Idempotent."""
        if self._started or self.destroyed:
            return
        self._started = True
        self._spawn(self._pump())

    def pause(self) -> None:
        self._flowing.clear()

    def resume(self) -> None:
        self._flowing.set()

    async def _pump(self) -> None:
        try:
            while True:
                await self._flowing.wait()
                chunk = await self._read()
                if chunk is None:
                    break
                if chunk:
                    self.emit("data", chunk)
                if self.destroyed:
                    return
        except Exception as e:
            self.destroy(e)
            return

        self.readable_ended = True
        self.emit("end")
        await self._readable_done()

    async def _readable_done(self) -> None:
        await self._finish_close()

    @abstractmethod
    async def _read(self) -> Optional[bytes]:
        """Return the next chunk, or None when there is no more data."""


class Sink(Stage):
    """Stage that accepts chunks."""

    def __init__(
        self,
        name: Optional[str] = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        **kwargs: Any,
    ) -> None:
        super().__init__(name=name, **kwargs)
        if high_water_mark < 1:
            raise ValueError(f"high_water_mark must be positive, got {high_water_mark}")
        self.high_water_mark = high_water_mark
        self.writable_finished = False
        self._ending = False
        self._buffer: Deque[bytes] = deque()
        self._buffered_bytes = 0
        self._need_drain = False
        self._worker: Optional[asyncio.Task] = None
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def writable_ended(self) -> bool:
        """True once end() was called."""
        return self._ending

    @property
    def buffered_bytes(self) -> int:
        return self._buffered_bytes

    def write(self, chunk: bytes) -> bool:
        """Queue ``chunk``. Returns False when the caller should wait for ``drain``."""
        if self.destroyed:
            return False
        if self._ending:
            self.destroy(WriteAfterEndError(f"write after end: {self.name}", stage=self.name))
            return False

        self._buffer.append(chunk)
        self._buffered_bytes += len(chunk)
        self._idle.clear()
        self._ensure_worker()
        self._wakeup.set()

        if self._buffered_bytes >= self.high_water_mark:
            self._need_drain = True
            return False
        return True

    def end(self) -> None:
        """Signal that no more data will be written.

        Ending a sink that already finished destroys it with
        :class:`WriteAfterEndError`; a repeated call before that is a no-op.
        """
        if self.destroyed:
            return
        if self.writable_finished:
            self.destroy(WriteAfterEndError(f"end after finish: {self.name}", stage=self.name))
            return
        if self._ending:
            return
        self._ending = True
        self._ensure_worker()
        self._wakeup.set()

    async def wait_flushed(self) -> None:
        """Wait until every queued chunk was handed to the write hook."""
        await self._idle.wait()

    def _ensure_worker(self) -> None:
        if self._worker is None:
            self._worker = self._spawn(self._run_writer())

    async def _run_writer(self) -> None:
        try:
            await self._open()
            while True:
                while self._buffer:
                    chunk = self._buffer[0]
                    await self._write(chunk)
                    self._buffer.popleft()
                    self._buffered_bytes -= len(chunk)

                self._idle.set()
                if self._need_drain:
                    self._need_drain = False
                    self.emit("drain")
                    continue
                if self._ending:
                    break
                self._wakeup.clear()
                await self._wakeup.wait()

            await self._final()
        except Exception as e:
            self.destroy(e)
            return

        self.writable_finished = True
        self.emit("finish")
        await self._writable_done()

    async def _writable_done(self) -> None:
        await self._finish_close()

    async def _open(self) -> None:
        """Acquire resources before the first write."""

    @abstractmethod
    async def _write(self, chunk: bytes) -> None:
        """Consume one chunk."""

    async def _final(self) -> None:
        """Flush and close the underlying resource after the last write."""


class Through(Source, Sink):
    """Stage that transforms written chunks into emitted chunks.

    The writable side feeds a bounded queue read by the readable side, so
    a slow consumer eventually backs up into :meth:`write`.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        readable_queue_size: int = DEFAULT_READABLE_QUEUE_SIZE,
    ) -> None:
        super().__init__(name=name, high_water_mark=high_water_mark)
        self._output: asyncio.Queue = asyncio.Queue(maxsize=readable_queue_size)

    async def _write(self, chunk: bytes) -> None:
        await self._push(self._transform(chunk))

    async def _final(self) -> None:
        await self._push(self._flush())
        await self._output.put(None)

    async def _push(self, data: bytes) -> None:
        if data:
            await self._output.put(data)

    async def _read(self) -> Optional[bytes]:
        return await self._output.get()

    async def _readable_done(self) -> None:
        if self.writable_finished:
            await self._finish_close()

    async def _writable_done(self) -> None:
        if self.readable_ended:
            await self._finish_close()

    @abstractmethod
    def _transform(self, chunk: bytes) -> bytes:
        """Return the output for one input chunk (may be empty)."""

    def _flush(self) -> bytes:
        """Return any output still held once input has ended."""
        return b""
