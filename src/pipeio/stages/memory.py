"""In-memory stages."""

import asyncio
from typing import Optional

from ..pipeline.stage import DEFAULT_CHUNK_SIZE, DEFAULT_HIGH_WATER_MARK, Sink, Source


class BytesSource(Source):
    """Emits a bytes object in fixed-size chunks."""

    def __init__(
        self,
        content: bytes,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name)
        self._content = bytes(content)
        self._offset = 0
        self.chunk_size = chunk_size

    async def _read(self) -> Optional[bytes]:
        if self._offset >= len(self._content):
            return None
        chunk = self._content[self._offset:self._offset + self.chunk_size]
        self._offset += len(chunk)
        # Let downstream workers run between chunks
        await asyncio.sleep(0)
        return chunk


class BufferSink(Sink):
    """Collects everything written to it."""

    def __init__(
        self,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name, high_water_mark=high_water_mark)
        self._data = bytearray()

    async def _write(self, chunk: bytes) -> None:
        self._data.extend(chunk)

    def getvalue(self) -> bytes:
        return bytes(self._data)
