from abc import ABC, abstractmethod

from ..models import Post


class ContentApi(ABC):
    """
    Source of posts.
    fetch_post raises PostNotFoundError, ContentRateLimitedError or ContentUnauthorizedError.
    """

    @abstractmethod
    async def fetch_post(self, post_id: int) -> Post:
        pass

    @abstractmethod
    async def resolve_next_in_thread(self, conversation_id: int, author_id: int, position: int) -> int | None:
        """Returns the id of the post at a 1-based position of the thread, or None."""
        pass
