"""File stages backed by aiofiles.

Errors from the operating system (``FileNotFoundError``,
``IsADirectoryError``, ``PermissionError``) are emitted unchanged, so callers
can inspect ``errno``.
"""

from pathlib import Path
from typing import Any, Optional, Union

import aiofiles

from ..pipeline.stage import DEFAULT_CHUNK_SIZE, DEFAULT_HIGH_WATER_MARK, Sink, Source

PathLike = Union[str, Path]


class FileSource(Source):
    """Reads a file from the start, opening it on the first read."""

    def __init__(
        self,
        path: PathLike,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        name: Optional[str] = None,
    ) -> None:
        self.path = Path(path)
        super().__init__(name=name or f"read:{self.path.name or self.path}")
        self.chunk_size = chunk_size
        self._file: Any = None

    async def _read(self) -> Optional[bytes]:
        if self._file is None:
            self._file = await aiofiles.open(self.path, "rb")
        chunk = await self._file.read(self.chunk_size)
        return chunk or None

    async def _close(self) -> None:
        if self._file is not None:
            file, self._file = self._file, None
            await file.close()


class FileSink(Sink):
    """Writes a file; the file is created on the first write or on end."""

    def __init__(
        self,
        path: PathLike,
        append: bool = False,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        name: Optional[str] = None,
    ) -> None:
        self.path = Path(path)
        super().__init__(
            name=name or f"write:{self.path.name or self.path}",
            high_water_mark=high_water_mark,
        )
        self.append = append
        self._file: Any = None

    async def _open(self) -> None:
        self._file = await aiofiles.open(self.path, "ab" if self.append else "wb")

    async def _write(self, chunk: bytes) -> None:
        await self._file.write(chunk)

    async def _final(self) -> None:
        # finish is only emitted once the data reached the OS
        await self._close()

    async def _close(self) -> None:
        if self._file is not None:
            file, self._file = self._file, None
            await file.close()
