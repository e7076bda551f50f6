"""Gzip transforms built on zlib."""

import zlib
from typing import Any, Optional

from ..errors import CorruptedStreamError
from ..pipeline.stage import Through

# wbits for a gzip header and trailer around the deflate stream
GZIP_WBITS = 16 + zlib.MAX_WBITS


class GzipCompress(Through):
    """Compresses written bytes into a gzip stream."""

    def __init__(self, level: int = 6, name: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(name=name or "gzip", **kwargs)
        self.level = level
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)

    def _transform(self, chunk: bytes) -> bytes:
        return self._compressor.compress(chunk)

    def _flush(self) -> bytes:
        return self._compressor.flush()


class GzipDecompress(Through):
    """Decompresses a gzip stream, including concatenated members.

    A bad header surfaces as ``zlib.error``; input that stops before the
    gzip trailer raises :class:`CorruptedStreamError` when the input ends.
    """

    def __init__(self, name: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(name=name or "gunzip", **kwargs)
        self._decompressor = zlib.decompressobj(GZIP_WBITS)

    def _transform(self, chunk: bytes) -> bytes:
        output = [self._decompressor.decompress(chunk)]
        while self._decompressor.eof and self._decompressor.unused_data:
            rest = self._decompressor.unused_data
            self._decompressor = zlib.decompressobj(GZIP_WBITS)
            output.append(self._decompressor.decompress(rest))
        return b"".join(output)

    def _flush(self) -> bytes:
        if not self._decompressor.eof:
            raise CorruptedStreamError("unexpected end of gzip stream", stage=self.name)
        return self._decompressor.flush()
