from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..models import ControlButton, MediaDescriptor

ChatId = int | str


class Transport(ABC):
    """
    Outbound side of the messaging platform.
    Every send raises TransportError when the platform rejects it.
    """

    @abstractmethod
    async def send_text(
        self,
        destination: ChatId,
        text: str,
        reply_to: int | None = None,
        controls: Sequence[ControlButton] | None = None,
        disable_preview: bool = False,
    ) -> None:
        pass

    @abstractmethod
    async def send_media_group(
        self,
        destination: ChatId,
        items: Sequence[MediaDescriptor],
        reply_to: int | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def send_video(
        self,
        destination: ChatId,
        url: str,
        caption: str,
        reply_to: int | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def clear_controls(self, destination: ChatId, message_id: int) -> None:
        """Removes the inline keyboard of a message."""
        pass
