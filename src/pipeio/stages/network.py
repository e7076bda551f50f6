"""Stages over asyncio streams (sockets, subprocess pipes, response bodies)."""

import asyncio
from typing import Optional

from ..pipeline.stage import DEFAULT_CHUNK_SIZE, DEFAULT_HIGH_WATER_MARK, Sink, Source


class StreamReaderSource(Source):
    """Emits what arrives on an ``asyncio.StreamReader`` until EOF."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name or "stream-reader")
        self.reader = reader
        self.chunk_size = chunk_size

    async def _read(self) -> Optional[bytes]:
        chunk = await self.reader.read(self.chunk_size)
        return chunk or None


class StreamWriterSink(Sink):
    """Writes to an ``asyncio.StreamWriter``, honoring its flow control.

    Ending the sink closes the writer, so the peer sees EOF.
    """

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name or "stream-writer", high_water_mark=high_water_mark)
        self.writer = writer

    async def _write(self, chunk: bytes) -> None:
        self.writer.write(chunk)
        await self.writer.drain()

    async def _final(self) -> None:
        await self._close()

    async def _close(self) -> None:
        if not self.writer.is_closing():
            self.writer.close()
        await self.writer.wait_closed()
