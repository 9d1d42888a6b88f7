"""Subscriptions — explicit handles for identity-change listeners.

Invariants:
    - unsubscribe() is idempotent; a cancelled handle never fires again
    - Handlers fire in registration order

Design Decisions:
    - Handle object over global listener: callers own the lifetime of their listener
"""

from collections.abc import Callable


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop delivery."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class HandlerRegistry:
    """Ordered handler list; register() hands back a Subscription."""

    def __init__(self) -> None:
        self._handlers: list[Callable] = []

    def register(self, handler: Callable) -> Subscription:
        self._handlers.append(handler)
        return Subscription(lambda: self._discard(handler))

    def snapshot(self) -> tuple[Callable, ...]:
        """Copy for iteration; handlers may unsubscribe while being notified."""
        return tuple(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def _discard(self, handler: Callable) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)
