"""Event system module for the application."""

import asyncio
import inspect
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

from ..models import DeliveryOutcome
from ..utils.log import log


class Event:
    """Base class for all events."""

    def __init__(self, name: str, data: dict[str, Any] | None = None) -> None:
        self.name = name
        self.data = data or {}
        self.timestamp = time.monotonic()


class AppStartEvent(Event):
    """Event emitted when the application starts."""

    def __init__(self) -> None:
        super().__init__("APP_START")


class AppStopEvent(Event):
    """Event emitted when the application stops."""

    def __init__(self) -> None:
        super().__init__("APP_STOP")


class HealthCheckRequestEvent(Event):
    """Event emitted when a health check is requested."""

    def __init__(self) -> None:
        super().__init__("HEALTH_CHECK_REQUEST")


class UserInputReceivedEvent(Event):
    """Event emitted when user input is received."""

    def __init__(self, command: str) -> None:
        super().__init__("USER_INPUT_RECEIVED", {"command": command})


class DeliveryCompleteEvent(Event):
    """Event emitted when a post delivery attempt has finished."""

    def __init__(self, outcome: DeliveryOutcome, post_id: int | None = None) -> None:
        super().__init__("DELIVERY_COMPLETE", {"outcome": outcome, "post_id": post_id})


Handler = Callable[[Event], Any]


class EventManager:
    """Routes application events to their subscribers. Plain and async handlers may be mixed."""

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)
        self._running = True

    def subscribe(self, event_name: str, handler: Handler) -> None:
        """Subscribe to an event."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        """Unsubscribe from an event."""
        with suppress(ValueError):
            self._handlers.get(event_name, []).remove(handler)

    async def emit(self, event: Event) -> None:
        """Calls every subscriber; a failing handler is logged and does not affect the others."""
        if not self._running:
            return

        pending: list[Awaitable[Any]] = []
        for handler in list(self._handlers.get(event.name, [])):
            try:
                result = handler(event)
            except Exception as e:
                log(f"❌ Ошибка в обработчике события {event.name}: {e}")
                continue
            if inspect.isawaitable(result):
                pending.append(result)

        if not pending:
            return
        for outcome in await asyncio.gather(*pending, return_exceptions=True):
            if isinstance(outcome, Exception):
                log(f"❌ Ошибка в обработчике события {event.name}: {outcome}")

    def stop(self) -> None:
        """Stop the event manager."""
        self._running = False
