"""Bookkeeping for the event subscriptions a pipeline installs."""

from dataclasses import dataclass
from typing import List

from .events import EventEmitter, Handler


@dataclass(frozen=True)
class Registration:
    """One subscription made on behalf of a pipeline."""

    stage: EventEmitter
    event: str
    handler: Handler


class ListenerRegistry:
    """Records subscriptions as they are made and removes exactly those."""

    def __init__(self) -> None:
        self._registrations: List[Registration] = []

    def add(self, stage: EventEmitter, event: str, handler: Handler) -> Registration:
        stage.on(event, handler)
        registration = Registration(stage, event, handler)
        self._registrations.append(registration)
        return registration

    def remove_all(self) -> int:
        """Unsubscribe every recorded handler. Returns how many were removed."""
        registrations, self._registrations = self._registrations, []
        for registration in registrations:
            registration.stage.off(registration.event, registration.handler)
        return len(registrations)

    @property
    def registrations(self) -> List[Registration]:
        return list(self._registrations)

    def __len__(self) -> int:
        return len(self._registrations)
