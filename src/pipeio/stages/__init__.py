"""Ready-made stages for files, memory buffers, gzip, tar and asyncio streams."""

from .memory import BytesSource, BufferSink
from .files import FileSource, FileSink
from .compression import GzipCompress, GzipDecompress
from .archive import TarPackSource, TarExtractSink
from .network import StreamReaderSource, StreamWriterSink

__all__ = [
    "BytesSource",
    "BufferSink",
    "FileSource",
    "FileSink",
    "GzipCompress",
    "GzipDecompress",
    "TarPackSource",
    "TarExtractSink",
    "StreamReaderSource",
    "StreamWriterSink",
]
