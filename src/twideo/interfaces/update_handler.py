from abc import ABC, abstractmethod
from asyncio import Event

from pyrogram.types import CallbackQuery, InlineQuery, Message

from ..config.settings import Settings


class BaseUpdateHandler(ABC):
    """
    Interface for the bot's business logic.
    Receives every inbound update routed by the Telegram manager.
    """

    @abstractmethod
    async def handle_message(self, message: Message) -> None:
        pass

    @abstractmethod
    async def handle_callback_query(self, query: CallbackQuery) -> None:
        pass

    @abstractmethod
    async def handle_inline_query(self, query: InlineQuery) -> None:
        pass

    @abstractmethod
    def configure(self, settings: Settings | None) -> None:
        """Applies the current settings, called on startup and on every config change."""
        pass

    @abstractmethod
    def set_shutdown_event(self, event: Event) -> None:
        """Sets the shutdown event."""
        pass
