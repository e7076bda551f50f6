"""Tar archive stages."""

import asyncio
import io
import tarfile
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from ..errors import ArchiveError
from ..pipeline.stage import DEFAULT_CHUNK_SIZE, DEFAULT_HIGH_WATER_MARK, Sink, Source

PathLike = Union[str, Path]

# Archives up to this size stay in memory while they are received
SPOOL_MAX_SIZE = 8 * 1024 * 1024

# Extraction filter support arrived in 3.11.4; without it extract() is unfiltered
EXTRACT_KWARGS = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}


def is_safe_path(base_dir: Path, member_path: str) -> bool:
    """Check that ``member_path`` stays inside ``base_dir`` once resolved."""
    base = base_dir.resolve()
    target_path = (base / member_path).resolve()
    return target_path == base or base in target_path.parents


class TarPackSource(Source):
    """Emits a tar archive of ``entries`` (relative to ``root``).

    All entries of ``root`` are packed when ``entries`` is None. The archive
    is built in a worker thread on the first read.
    """

    def __init__(
        self,
        root: PathLike,
        entries: Optional[Sequence[str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name or "tar-pack")
        self.root = Path(root)
        self.entries = list(entries) if entries is not None else None
        self.chunk_size = chunk_size
        self._archive: Optional[io.BytesIO] = None

    async def _read(self) -> Optional[bytes]:
        if self._archive is None:
            self._archive = await asyncio.to_thread(self._build)
        chunk = self._archive.read(self.chunk_size)
        return chunk or None

    def _build(self) -> io.BytesIO:
        if not self.root.is_dir():
            raise ArchiveError(
                f"Archive root is not a directory: {self.root}", stage=self.name, path=str(self.root)
            )

        entries = self.entries
        if entries is None:
            entries = sorted(path.name for path in self.root.iterdir())

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as tar:
            for entry in entries:
                tar.add(self.root / entry, arcname=entry)
        buffer.seek(0)
        return buffer

    async def _close(self) -> None:
        self._archive = None


class TarExtractSink(Sink):
    """Extracts a tar stream into ``target_dir`` once the stream ends.

    Members that would land outside ``target_dir`` are skipped with a
    warning. Malformed input fails with ``tarfile.ReadError``.
    """

    def __init__(
        self,
        target_dir: PathLike,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name=name or "tar-extract", high_water_mark=high_water_mark)
        self.target_dir = Path(target_dir)
        self.extracted: List[str] = []
        self.skipped: List[str] = []
        self._spool: Any = None

    async def _open(self) -> None:
        self._spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)

    async def _write(self, chunk: bytes) -> None:
        await asyncio.to_thread(self._spool.write, chunk)

    async def _final(self) -> None:
        await asyncio.to_thread(self._extract)
        await self._close()

    def _extract(self) -> None:
        self._spool.seek(0)
        self.target_dir.mkdir(parents=True, exist_ok=True)

        with tarfile.open(fileobj=self._spool, mode="r:") as tar:
            for member in tar:
                # Security check: prevent path traversal
                if not is_safe_path(self.target_dir, member.name) or member.issym() or member.islnk():
                    self.logger.warning(f"Skipping unsafe path: {member.name}")
                    self.skipped.append(member.name)
                    continue
                tar.extract(member, self.target_dir, **EXTRACT_KWARGS)
                self.extracted.append(member.name)

        self.logger.debug(
            f"Extracted {len(self.extracted)} member(s) into {self.target_dir}",
            extra={"extra_fields": {"stage": self.name, "skipped": len(self.skipped)}},
        )

    async def _close(self) -> None:
        if self._spool is not None:
            spool, self._spool = self._spool, None
            spool.close()
