"""Shared fixtures for pipeline tests."""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pytest

from pipeio import Pipeline, Stage, pipe

PIPE_EVENTS = ("data", "end", "drain", "finish", "error", "close")

SETTLE_TIMEOUT = 5.0


@dataclass
class PipeResult:
    """Outcome of one pipe() call as seen by its callback."""

    pipeline: Pipeline
    calls: List[Tuple[Any, ...]] = field(default_factory=list)

    @property
    def error(self) -> Optional[BaseException]:
        args = self.calls[0]
        return args[0] if args else None


@pytest.fixture
def run_pipe() -> Callable[..., Any]:
    """Run pipe() and wait for its callback.

    Returns a coroutine function ``run(stages, options=None)`` producing a
    PipeResult. Every callback invocation is recorded, so tests can check it
    fired exactly once.
    """

    async def _run(stages: Sequence[Any], options: Any = None) -> PipeResult:
        loop = asyncio.get_running_loop()
        settled = loop.create_future()
        calls: List[Tuple[Any, ...]] = []

        def callback(*args: Any) -> None:
            calls.append(args)
            if not settled.done():
                settled.set_result(None)

        pipeline = pipe(stages, options, callback)
        await asyncio.wait_for(settled, timeout=SETTLE_TIMEOUT)
        return PipeResult(pipeline=pipeline, calls=calls)

    return _run


@pytest.fixture
def leaked_listeners() -> Callable[[Sequence[Stage]], List[Tuple[str, str, int]]]:
    """Return (stage, event, count) for every listener still attached."""

    def _check(stages: Sequence[Stage]) -> List[Tuple[str, str, int]]:
        leaks = []
        for stage in stages:
            for event in PIPE_EVENTS:
                count = stage.listener_count(event)
                if count:
                    leaks.append((stage.name, event, count))
        return leaks

    return _check


@pytest.fixture
def content() -> bytes:
    """A payload spanning several default-sized chunks."""
    line = b"the quick brown fox jumps over the lazy dog\n"
    return line * 5000


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Keep user config files and PIPEIO_* variables out of the test."""
    for key in list(os.environ):
        if key.startswith("PIPEIO_"):
            monkeypatch.delenv(key)

    user_dir = tmp_path / "user-config"
    monkeypatch.setattr(
        "platformdirs.user_config_dir", lambda *args, **kwargs: str(user_dir)
    )
    return user_dir
