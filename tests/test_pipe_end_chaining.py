"""Tests for end=False: several pipelines writing into one sink."""

import asyncio
import gzip

import pytest

from pipeio import PipeOptions, pipe_async
from pipeio.stages import (
    BufferSink,
    BytesSource,
    FileSink,
    FileSource,
    GzipCompress,
    StreamReaderSource,
    StreamWriterSink,
)


@pytest.fixture
def two_files(tmp_path):
    first = tmp_path / "first.txt"
    second = tmp_path / "second.txt"
    first.write_bytes(b"first file\n" * 300)
    second.write_bytes(b"second file\n" * 300)
    return first, second


@pytest.mark.asyncio
async def test_shared_sink_stays_open(run_pipe, leaked_listeners):
    """Test that end=False settles without ending the sink."""
    sink = BufferSink()
    first_source = BytesSource(b"first ")

    first = await run_pipe([first_source, sink], {"end": False})

    assert first.error is None
    assert not sink.writable_ended
    assert sink.getvalue() == b"first "
    assert leaked_listeners([first_source, sink]) == []

    second_source = BytesSource(b"second")
    second = await run_pipe([second_source, sink])

    assert second.error is None
    assert sink.writable_finished
    assert sink.getvalue() == b"first second"
    assert leaked_listeners([second_source, sink]) == []


@pytest.mark.asyncio
async def test_end_false_with_pipe_options(run_pipe, two_files, tmp_path):
    """Test that PipeOptions(end=False) leaves ending to the caller."""
    first, _ = two_files
    target = tmp_path / "out.txt"
    sink = FileSink(target)

    result = await run_pipe([FileSource(first), sink], PipeOptions(end=False))
    assert result.error is None
    assert not sink.writable_ended

    finished = asyncio.get_running_loop().create_future()
    sink.on("finish", lambda: finished.set_result(None))
    sink.end()
    await asyncio.wait_for(finished, timeout=5)

    assert target.read_bytes() == first.read_bytes()


@pytest.mark.asyncio
async def test_empty_options_end_the_sink(run_pipe):
    """Test that an empty mapping keeps the default end=True."""
    sink = BufferSink()

    result = await run_pipe([BytesSource(b"abc"), sink], {})

    assert result.error is None
    assert sink.writable_finished


@pytest.mark.asyncio
async def test_end_false_through_transform(run_pipe, two_files, tmp_path):
    """Test that interior links still end when the last one does not."""
    first, second = two_files
    sink = BufferSink()
    zip_first, zip_second = GzipCompress(), GzipCompress()

    await run_pipe([FileSource(first), zip_first, sink], {"end": False})
    await run_pipe([FileSource(second), zip_second, sink])

    assert zip_first.readable_ended and zip_second.readable_ended
    assert sink.writable_finished

    assert gzip.decompress(sink.getvalue()) == first.read_bytes() + second.read_bytes()


@pytest.mark.asyncio
async def test_two_files_into_one_socket(two_files):
    """Test that two files piped into one connection arrive in order."""
    first, second = two_files
    failures = []

    async def handle(reader, writer):
        sink = StreamWriterSink(writer)
        try:
            await pipe_async([FileSource(first), sink], {"end": False})
            await pipe_async([FileSource(second), sink])
        except Exception as e:
            failures.append(e)
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    async with server:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        try:
            received = await asyncio.wait_for(reader.read(), timeout=5)
        finally:
            writer.close()
            await writer.wait_closed()

    assert failures == []
    assert received == first.read_bytes() + second.read_bytes()


@pytest.mark.asyncio
async def test_socket_into_buffer(content):
    """Test that a connection can be the source of a pipeline."""
    received = asyncio.get_running_loop().create_future()

    async def handle(reader, writer):
        sink = BufferSink()
        try:
            await pipe_async([StreamReaderSource(reader), sink])
            received.set_result(sink.getvalue())
        except Exception as e:
            received.set_exception(e)
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    async with server:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(content)
        await writer.drain()
        writer.write_eof()
        try:
            data = await asyncio.wait_for(received, timeout=5)
        finally:
            writer.close()
            await writer.wait_closed()

    assert data == content
