from __future__ import annotations

import asyncio
from asyncio import Event
from pathlib import Path

import httpx
from pyrogram.types import CallbackQuery, InlineQuery, Message

from ..config.settings import MessagesConfig, Settings
from ..core.delivery_engine import DeliveryCapabilities, DeliveryEngine
from ..core.event_system import DeliveryCompleteEvent, EventManager
from ..core.thread_controller import ThreadContinuationController
from ..core.token_codec import AdvanceThreadIntent, ShowBundleIntent, decode
from ..core.user_registry import register_user
from ..exceptions import (
    ContentRateLimitedError,
    ContentUnauthorizedError,
    PostNotFoundError,
    TokenDecodeError,
    TransportError,
)
from ..interfaces.transport import ChatId
from ..interfaces.update_handler import BaseUpdateHandler
from ..managers.telegram_manager import TelegramManager
from ..managers.twitter_manager import TwitterManager
from ..models import DeliveryOutcome, Post
from ..processing.classifier import InlineClassifier, MessageClassifier
from ..utils.log import log
from ..utils.text_utils import extract_post_ids

# Replays of an album go to the user's private chat as a fresh message.
REPLAY_CAPABILITIES = DeliveryCapabilities(continuation_controls=False, threaded_replies=False)


def is_start_command(text: str) -> bool:
    """Matches "/start" and "/start@botname" as the first word of a message."""
    words = text.split()
    return bool(words) and words[0].split("@", 1)[0] == "/start"


class RelayExecutor(BaseUpdateHandler):
    """
    Implementation of business logic: tweets → Telegram.
    One call per inbound update, no state shared between updates.
    """

    def __init__(
        self,
        twitter_manager: TwitterManager,
        telegram_manager: TelegramManager,
        event_manager: EventManager | None = None,
    ) -> None:
        self.twitter_manager = twitter_manager
        self.telegram_manager = telegram_manager
        self.event_manager = event_manager
        self._shutdown_event: Event | None = None
        self.configure(None)

    def set_shutdown_event(self, event: Event) -> None:
        """Sets the shutdown event."""
        self._shutdown_event = event

    def configure(self, settings: Settings | None) -> None:
        """Rebuilds the classifiers and delivery engines from the current settings."""
        messages = settings.messages if settings else MessagesConfig()
        capabilities = (
            DeliveryCapabilities(
                continuation_controls=settings.telegram.continuation_controls,
                threaded_replies=settings.telegram.threaded_replies,
            )
            if settings
            else DeliveryCapabilities()
        )
        self.messages = messages
        self.users_file = settings.app.users_file if settings else Path("users.yaml")
        self.message_classifier = MessageClassifier(messages)
        self.inline_classifier = InlineClassifier(messages)
        self.chat_engine = DeliveryEngine(self.telegram_manager, capabilities, messages)
        self.replay_engine = DeliveryEngine(self.telegram_manager, REPLAY_CAPABILITIES, messages)

    def _is_stopping(self) -> bool:
        return bool(self._shutdown_event and self._shutdown_event.is_set())

    async def _report(self, outcome: DeliveryOutcome, post_id: int | None) -> None:
        log(f"📬 Итог доставки поста {post_id}: {outcome.value}", indent=1)
        if self.event_manager:
            await self.event_manager.emit(DeliveryCompleteEvent(outcome, post_id))

    # --- messages ---

    async def handle_message(self, message: Message) -> None:
        text = message.text or ""
        chat_id = message.chat.id

        if is_start_command(text):
            user = message.from_user
            if user:
                await register_user(
                    user.id,
                    " ".join(part for part in (user.first_name, user.last_name) if part),
                    user.username,
                    self.users_file,
                )
            await self._send_notice(chat_id, self.messages.start)
            return

        post_ids = extract_post_ids(text)
        if not post_ids:
            log(f"💬 В сообщении из {chat_id} нет ссылок на посты, пропускаю.")
            return

        log(f"📥 {len(post_ids)} ссылок из чата {chat_id}: {post_ids}", padding_top=1)
        await self.relay_posts(post_ids, chat_id, reply_to=message.id)

    async def relay_posts(self, post_ids: list[int], destination: ChatId, reply_to: int | None = None) -> None:
        """Fetches all posts concurrently, then delivers them one by one in the original order."""
        results = await asyncio.gather(
            *(self.twitter_manager.fetch_post(post_id) for post_id in post_ids),
            return_exceptions=True,
        )

        for post_id, result in zip(post_ids, results, strict=True):
            if self._is_stopping():
                log("⏹️  Остановка, прерываю отправку.", indent=1)
                break
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                await self._handle_fetch_error(result, post_id, destination)
                continue
            await self._deliver_post(result, destination, reply_to)

    async def _deliver_post(self, post: Post, destination: ChatId, reply_to: int | None) -> None:
        plan = self.message_classifier.classify(post)
        try:
            outcome = await self.chat_engine.deliver(plan, destination, reply_to=reply_to)
        except TransportError as e:
            log(f"❌ Не удалось доставить пост {post.id}: {e}", indent=1)
            return
        await self._report(outcome, post.id)

    async def _handle_fetch_error(self, error: BaseException, post_id: int | None, destination: ChatId) -> None:
        match error:
            case PostNotFoundError():
                log(f"🤷 Пост {post_id} не найден: {error}", indent=1)
                await self._send_notice(destination, self.messages.not_found)
            case ContentRateLimitedError():
                log(f"⏳ Лимит запросов Twitter при загрузке поста {post_id}.", indent=1)
                await self._send_notice(destination, self.messages.rate_limited)
            case ContentUnauthorizedError():
                log(f"🔒 Twitter отказал в доступе к посту {post_id}: {error}", indent=1)
            case _:
                log(f"❌ Ошибка при загрузке поста {post_id}: {type(error).__name__}: {error}", indent=1)

    async def _send_notice(self, destination: ChatId, text: str) -> None:
        try:
            await self.telegram_manager.send_text(destination, text)
        except TransportError as e:
            log(f"⚠️ Не удалось отправить сообщение в {destination}: {e}", indent=1)

    # --- callback queries ---

    async def handle_callback_query(self, query: CallbackQuery) -> None:
        token = query.data if isinstance(query.data, str) else (query.data or b"").decode(errors="replace")
        log(f"🔘 Нажата кнопка {token!r} пользователем {query.from_user.id}", padding_top=1)

        try:
            intent = decode(token)
        except TokenDecodeError as e:
            log(f"⚠️ Некорректный токен кнопки: {e}", indent=1)
            intent = None

        try:
            match intent:
                case ShowBundleIntent(post_id=post_id):
                    await self._replay_bundle(post_id, query.from_user.id)
                case AdvanceThreadIntent():
                    await self._advance_thread(token, query)
                case None:
                    pass
        finally:
            await self._acknowledge(query)

    async def _replay_bundle(self, post_id: int, destination: ChatId) -> None:
        try:
            post = await self.twitter_manager.fetch_post(post_id)
        except Exception as e:
            await self._handle_fetch_error(e, post_id, destination)
            return

        plan = self.message_classifier.classify(post)
        try:
            outcome = await self.replay_engine.deliver(plan, destination)
        except TransportError as e:
            log(f"❌ Не удалось отправить альбом {post_id}: {e}", indent=1)
            return
        await self._report(outcome, post_id)

    async def _advance_thread(self, token: str, query: CallbackQuery) -> None:
        message = query.message
        destination: ChatId = message.chat.id if message else query.from_user.id
        controller = ThreadContinuationController(
            self.twitter_manager,
            self.telegram_manager,
            self.chat_engine,
            self.message_classifier,
            self.messages,
        )
        try:
            outcome = await controller.run(token, destination, message.id if message else None)
        except (PostNotFoundError, ContentRateLimitedError, ContentUnauthorizedError, httpx.HTTPError) as e:
            await self._handle_fetch_error(e, None, destination)
            return
        except TransportError as e:
            log(f"❌ Не удалось отправить продолжение треда: {e}", indent=1)
            return
        await self._report(outcome, None)

    async def _acknowledge(self, query: CallbackQuery) -> None:
        try:
            await self.telegram_manager.answer_callback(query.id)
        except TransportError as e:
            log(f"⚠️ Не удалось ответить на нажатие кнопки: {e}", indent=1)

    # --- inline queries ---

    async def handle_inline_query(self, query: InlineQuery) -> None:
        post_ids = extract_post_ids(query.query)
        if not post_ids:
            return

        post_id = post_ids[0]
        log(f"🔎 Inline-запрос поста {post_id} от {query.from_user.id}", padding_top=1)
        try:
            post = await self.twitter_manager.fetch_post(post_id)
        except (PostNotFoundError, ContentRateLimitedError, ContentUnauthorizedError, httpx.HTTPError) as e:
            log(f"⚠️ Inline-запрос без результата: {type(e).__name__}: {e}", indent=1)
            return

        results = self.inline_classifier.classify(post)
        if not results:
            log("⚠️ Для поста нет подходящих inline-результатов.", indent=1)
            return
        try:
            await self.telegram_manager.answer_inline_query(query.id, results)
        except TransportError as e:
            log(f"❌ Не удалось ответить на inline-запрос: {e}", indent=1)
