from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


@dataclass(frozen=True)
class PropertyChange:
    source: Any
    name: str


# Property name carried when several fields changed in one step.
ALL_PROPERTIES = "*"


class CollectionAction(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    RESET = "RESET"


@dataclass(frozen=True)
class CollectionChange:
    action: CollectionAction
    new_items: tuple[Any, ...] = ()
    old_items: tuple[Any, ...] = ()


Listener = Callable[[Any], None]


class Observable:
    """Synchronous observer registry.

    Listeners are called in subscription order on the thread that raised the
    event. A listener registered twice is only called once.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self, event: Any) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _notify_property(self, name: str) -> None:
        self._notify(PropertyChange(source=self, name=name))
