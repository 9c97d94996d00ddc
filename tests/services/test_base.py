from __future__ import annotations

from cloudpc_manager.services import EventHook


def test_event_hook_delivers_to_subscribers_in_order() -> None:
    hook: EventHook[int] = EventHook()
    received: list[tuple[str, int]] = []
    hook.subscribe(lambda value: received.append(("a", value)))
    hook.subscribe(lambda value: received.append(("b", value)))

    hook.emit(1)

    assert received == [("a", 1), ("b", 1)]


def test_unsubscribe_stops_delivery() -> None:
    hook: EventHook[int] = EventHook()
    received: list[int] = []
    unsubscribe = hook.subscribe(received.append)

    unsubscribe()
    hook.emit(1)

    assert received == []
    assert len(hook) == 0


def test_failing_subscriber_does_not_block_others() -> None:
    hook: EventHook[int] = EventHook()
    received: list[int] = []

    def _broken(_: int) -> None:
        raise RuntimeError("subscriber failed")

    hook.subscribe(_broken)
    hook.subscribe(received.append)

    hook.emit(5)

    assert received == [5]
