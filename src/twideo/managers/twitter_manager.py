from __future__ import annotations

import asyncio
from asyncio import Event
from types import TracebackType
from typing import Any, Final, final

import httpx
from tenacity import (
    RetryCallState,
    RetryError,
    retry,
    stop_after_attempt,
    wait_exponential,
)

from ..config.settings import Settings
from ..exceptions import (
    ContentApiError,
    ContentRateLimitedError,
    ContentUnauthorizedError,
    PostNotFoundError,
)
from ..interfaces.base_manager import BaseManager
from ..interfaces.content_api import ContentApi
from ..models import (
    MediaItem,
    Post,
    SearchResponse,
    TweetLookupResponse,
    TwitterAPIResponseDict,
    TwitterMedia,
    Variant,
)
from ..utils.log import debug, log
from ..utils.text_utils import build_caption

TWEET_LOOKUP_PARAMS: Final[dict[str, str]] = {
    "expansions": "attachments.media_keys,author_id",
    "media.fields": "type,url,preview_image_url,variants",
    "tweet.fields": "conversation_id,author_id",
    "user.fields": "name,username",
}
MAX_SEARCH_PAGES: Final[int] = 5


class TwitterManager(BaseManager, ContentApi):
    """Twitter API v2 client: post lookup and thread resolution."""

    def __init__(self) -> None:
        super().__init__()
        self._initialized: bool = False
        self._token: str = ""
        self._base_url: str = ""
        self._timeout: float = 10.0
        self._retry_count: int = 3
        self._retry_delay: int = 2
        self._search_limit: int = 100
        self._client: httpx.AsyncClient | None = None

    def set_shutdown_event(self, event: Event) -> None:
        """Sets the shutdown event from the AppManager."""
        super().set_shutdown_event(event)

    async def setup(self, settings: Settings) -> None:
        """Creates the HTTP client."""
        if self._initialized:
            log("🐦 [Twitter] Клиент уже запущен. Перезапуск...", indent=1)
            await self.shutdown()

        log("🐦 [Twitter] Запуск...", indent=1)
        self._token = settings.twitter_bearer_token
        self._base_url = settings.twitter.api_base_url
        self._timeout = settings.twitter.timeout_seconds
        self._retry_count = settings.twitter.retries.count
        self._retry_delay = settings.twitter.retries.delay_seconds
        self._search_limit = settings.twitter.thread_search_limit

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            http2=True,
            headers={
                "Authorization": f"Bearer {self._token}",
                "User-Agent": "Twideo/1.0",
            },
            follow_redirects=True,
        )
        self._initialized = True
        log("🐦 [Twitter] Готов к работе.", indent=1)

    async def update_config(self, settings: Settings) -> None:
        """Handles configuration updates."""
        if not self._initialized:
            await self.setup(settings)
            return

        if (
            self._token == settings.twitter_bearer_token
            and self._base_url == settings.twitter.api_base_url
            and self._timeout == settings.twitter.timeout_seconds
        ):
            self._retry_count = settings.twitter.retries.count
            self._retry_delay = settings.twitter.retries.delay_seconds
            self._search_limit = settings.twitter.thread_search_limit
            return

        log("🐦 [Twitter] Конфигурация изменилась, перезапуск...", indent=1)
        await self.shutdown()
        await self.setup(settings)

    async def shutdown(self) -> None:
        """Closes the client."""
        if not self._initialized:
            return
        log("🐦 [Twitter] Завершение работы...", indent=1)
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._initialized = False
        log("🐦 [Twitter] Остановлен.", indent=1)

    async def __aenter__(self) -> TwitterManager:
        """Enter the async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context manager and shutdown the client."""
        await self.shutdown()

    @final
    async def _should_retry(self, retry_state: RetryCallState) -> bool:
        """Retry network errors and 5xx only, never API verdicts."""
        if self._shutdown_event and self._shutdown_event.is_set():
            return False

        if not retry_state.outcome:
            return False
        exc = retry_state.outcome.exception()

        if isinstance(exc, (ContentApiError, asyncio.CancelledError)):
            return False
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code >= 500
        return isinstance(exc, (httpx.RequestError | RuntimeError))

    @final
    async def _before_sleep(self, retry_state: RetryCallState) -> None:
        """Log before sleeping."""
        if retry_state.outcome and retry_state.next_action:
            log(
                f"❌ [Twitter] Ошибка: {retry_state.outcome.exception()}. "
                f"Повтор через {retry_state.next_action.sleep:.2f} c...",
                indent=1,
            )

    async def _get(self, path: str, params: dict[str, Any]) -> TwitterAPIResponseDict:
        """GET with retries; maps API verdicts to ContentApiError subclasses."""

        @retry(
            wait=wait_exponential(multiplier=self._retry_delay, min=self._retry_delay, max=10),
            stop=stop_after_attempt(self._retry_count),
            retry=self._should_retry,
            before_sleep=self._before_sleep,
            reraise=True,
            retry_error_cls=RetryError,
        )
        async def _request() -> TwitterAPIResponseDict:
            if self._client is None:
                raise RuntimeError("Client not initialized. Call setup() first.")
            self._check_shutdown()

            debug(f"[Twitter] GET {path} {params}", indent=1)
            resp = await self._client.get(path, params=params)
            match resp.status_code:
                case 401 | 403:
                    raise ContentUnauthorizedError(f"Twitter API отказал в доступе ({resp.status_code})")
                case 404:
                    raise PostNotFoundError(f"Twitter API: {path} не найден")
                case 429:
                    raise ContentRateLimitedError("Twitter API: слишком много запросов")
            resp.raise_for_status()
            data: TwitterAPIResponseDict = resp.json()
            return data

        return await _request()

    async def health_check(self) -> dict[str, Any]:
        """Checks that the bearer token is accepted."""
        if not self._initialized or not self._client:
            return {"status": "error", "message": "TwitterManager not initialized"}

        log("🩺 [Twitter] Проверка состояния...", indent=1)
        try:
            # Tweet 20 is the first tweet ever posted, it always exists.
            await self._get("/tweets/20", {})
            log("🩺 [Twitter] OK", indent=1)
            return {"status": "ok"}
        except Exception as e:
            log(f"🩺 [Twitter] Ошибка: {e}", indent=1)
            return {"status": "error", "message": str(e)}

    async def fetch_post(self, post_id: int) -> Post:
        """Looks up a tweet with its media and author and normalizes it to a Post."""
        log(f"🔍 [Twitter] Загружаю пост {post_id}...", indent=1)
        data = await self._get(f"/tweets/{post_id}", TWEET_LOOKUP_PARAMS)

        if "data" not in data:
            errors = data.get("errors") or [{}]
            detail = errors[0].get("detail") or errors[0].get("title") or "пустой ответ"
            raise PostNotFoundError(f"Пост {post_id} не найден: {detail}")

        lookup = TweetLookupResponse.model_validate(data)
        tweet = lookup.data
        author = lookup.author()
        media = lookup.ordered_media()

        media_items = [item for item in (self._to_media_item(m) for m in media) if item is not None]
        extra_variants = self._extra_variants(media)

        conversation_id = int(tweet.conversation_id) if tweet.conversation_id else 0
        author_id = int(tweet.author_id) if tweet.author_id else 0
        thread_length, next_index = await self._thread_position(int(tweet.id), conversation_id, author_id)

        return Post(
            id=int(tweet.id),
            caption=build_caption(
                author.name if author else "",
                author.username if author else "",
                tweet.text,
                has_media=bool(media_items),
            ),
            author_name=author.name if author else "",
            media_items=tuple(media_items),
            extra_variants=extra_variants,
            conversation_id=conversation_id,
            author_id=author_id,
            thread_length=thread_length,
            next_index=next_index,
        )

    @staticmethod
    def _extra_variants(media: list[TwitterMedia]) -> tuple[Variant, ...]:
        """Renditions of the first video or GIF that has any mp4 variant."""
        primary = next((m for m in media if m.type in ("video", "animated_gif") and m.mp4_variants), None)
        if primary is None:
            return ()
        return tuple(Variant(bit_rate=v.bit_rate, content_type=v.content_type, url=v.url) for v in primary.mp4_variants)

    def _to_media_item(self, media: TwitterMedia) -> MediaItem | None:
        if media.type == "photo":
            if not media.url:
                return None
            return MediaItem(kind="photo", url=media.url, thumbnail_url=media.url)

        variants = media.mp4_variants
        if not variants:
            log(f"⚠️ [Twitter] У медиа {media.media_key} нет mp4-вариантов, пропускаю.", indent=2)
            return None
        return MediaItem(
            kind="video" if media.type == "video" else "animated",
            url=variants[0].url,
            thumbnail_url=media.preview_image_url or "",
        )

    async def _thread_position(self, post_id: int, conversation_id: int, author_id: int) -> tuple[int, int]:
        """Returns (thread_length, next_index) of a post, (0, 1) if it is not part of a thread."""
        if not conversation_id or not author_id:
            return 0, 1
        try:
            thread_ids = await self.resolve_thread_ids(conversation_id, author_id)
        except (ContentApiError, httpx.HTTPError) as e:
            log(f"⚠️ [Twitter] Не удалось найти тред ({e}), отправляю без продолжения.", indent=2)
            return 0, 1

        if len(thread_ids) < 2 or post_id not in thread_ids:
            return 0, 1
        return len(thread_ids), thread_ids.index(post_id) + 2

    async def resolve_thread_ids(self, conversation_id: int, author_id: int) -> list[int]:
        """Root post followed by the author's replies in the conversation, oldest first."""
        reply_ids: set[int] = set()
        params: dict[str, Any] = {
            "query": f"conversation_id:{conversation_id} from:{author_id}",
            "max_results": self._search_limit,
        }
        for _ in range(MAX_SEARCH_PAGES):
            self._check_shutdown()
            page = SearchResponse.model_validate(await self._get("/tweets/search/recent", params))
            reply_ids.update(int(t.id) for t in page.data)
            if not page.meta.next_token:
                break
            params = {**params, "next_token": page.meta.next_token}
        else:
            log(f"⚠️ [Twitter] Достигнут лимит страниц поиска для треда {conversation_id}.", indent=2)

        reply_ids.discard(conversation_id)
        return [conversation_id, *sorted(reply_ids)]

    async def resolve_next_in_thread(self, conversation_id: int, author_id: int, position: int) -> int | None:
        thread_ids = await self.resolve_thread_ids(conversation_id, author_id)
        if position < 1 or position > len(thread_ids):
            return None
        return thread_ids[position - 1]
