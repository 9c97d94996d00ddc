from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)

T_co = TypeVar("T_co", covariant=True)


class EventHook(Generic[T_co]):
    """Simple observer helper bridging services and controllers to the UI."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T_co], None]] = []

    def subscribe(self, callback: Callable[[T_co], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:  # pragma: no cover - best effort cleanup
                pass

        return unsubscribe

    def emit(self, payload: T_co) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:  # pragma: no cover - callbacks should not crash services
                logger.exception("Event callback failed")

    def __len__(self) -> int:
        return len(self._subscribers)


@dataclass(slots=True)
class RefreshEvent(Generic[T_co]):
    items: T_co


@dataclass(slots=True)
class ServiceErrorEvent:
    operation: str
    error: Exception


__all__ = [
    "EventHook",
    "RefreshEvent",
    "ServiceErrorEvent",
]
