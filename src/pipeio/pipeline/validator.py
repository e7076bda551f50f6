"""Synchronous checks run before a pipeline touches any stage."""

from collections.abc import Mapping, Sequence
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .stage import Sink, Source, Stage, Through

STREAMS_EMPTY = "streams could not be empty"
CALLBACK_EMPTY = "callback could not be empty"


class PipeOptions(BaseModel):
    """Options accepted by :func:`pipeio.pipe`."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    end: StrictBool = Field(
        default=True,
        description="End the last stage when its upstream ends"
    )


def validate_invocation(
    streams: Any,
    options: Any = None,
    callback: Any = None,
) -> Tuple[List[Stage], PipeOptions, Callable[..., Any]]:
    """Normalize the arguments of a ``pipe`` call.

    ``options`` may be skipped positionally: ``(streams, callback)`` is
    treated as ``(streams, None, callback)``.

    Raises:
        ValidationError: If the call is malformed
    """
    if callback is None and callable(options):
        options, callback = None, options

    if streams is None or not isinstance(streams, Sequence) or isinstance(streams, (str, bytes)):
        raise ValidationError(STREAMS_EMPTY)

    if not callable(callback):
        raise ValidationError(CALLBACK_EMPTY)

    if len(streams) == 0:
        raise ValidationError(STREAMS_EMPTY)

    stages = list(streams)
    _check_roles(stages)

    return stages, _parse_options(options), callback


def _parse_options(options: Any) -> PipeOptions:
    if options is None:
        return PipeOptions()
    if isinstance(options, PipeOptions):
        return options
    if not isinstance(options, Mapping):
        raise ValidationError(f"options must be a mapping, got {type(options).__name__}")
    try:
        return PipeOptions(**options)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid options: {e}", options=dict(options)) from e


def _check_roles(stages: List[Stage]) -> None:
    last = len(stages) - 1
    for i, stage in enumerate(stages):
        if not isinstance(stage, Stage):
            raise ValidationError(
                f"stream {i} is not a Stage: {type(stage).__name__}", index=i
            )

        if i == 0:
            required, role = Source, "source"
        elif i == last:
            required, role = Sink, "sink"
        else:
            required, role = Through, "through"

        if not isinstance(stage, required):
            raise ValidationError(
                f"stream {i} ({stage.name}) cannot act as a {role}", index=i, role=role
            )

        # A lone stage has no upstream to end it
        if last == 0 and isinstance(stage, Sink):
            raise ValidationError(
                f"stream {i} ({stage.name}) accepts input and cannot run alone", index=i, role=role
            )
