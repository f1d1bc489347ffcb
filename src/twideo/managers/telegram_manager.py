from __future__ import annotations

import asyncio
from asyncio import Event
from collections.abc import Awaitable, Callable, Sequence
from types import TracebackType
from typing import Any, TypeVar

from pyrogram import filters
from pyrogram.client import Client
from pyrogram.enums import ParseMode
from pyrogram.errors import FloodWait, RPCError
from pyrogram.handlers.callback_query_handler import CallbackQueryHandler
from pyrogram.handlers.inline_query_handler import InlineQueryHandler
from pyrogram.handlers.message_handler import MessageHandler
from pyrogram.types import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQuery,
    InlineQueryResult,
    InlineQueryResultAnimation,
    InlineQueryResultArticle,
    InlineQueryResultPhoto,
    InlineQueryResultVideo,
    InputMediaPhoto,
    InputMediaVideo,
    InputTextMessageContent,
    LinkPreviewOptions,
    Message,
)

from ..config.settings import Settings
from ..exceptions import TransportError
from ..interfaces.base_manager import BaseManager
from ..interfaces.transport import ChatId, Transport
from ..interfaces.update_handler import BaseUpdateHandler
from ..models import ControlButton, InlineResultDescriptor, MediaDescriptor
from ..utils.log import debug, log

T = TypeVar("T")


class TelegramManager(BaseManager, Transport):
    """Manages the Kurigram bot client: routes inbound updates and sends messages."""

    def __init__(self) -> None:
        """Initialize the manager."""
        super().__init__()
        self._initialized = False
        self._client: Client | None = None
        self._update_handler: BaseUpdateHandler | None = None
        self._session_name: str = "twideo_bot"
        self._api_id: int = 0
        self._api_hash: str = ""
        self._bot_token: str = ""
        self._workers: int = 8
        self._send_timeout: float = 60.0
        self._flood_wait_retries: int = 1

    def set_shutdown_event(self, event: Event) -> None:
        """Sets the shutdown event from the AppManager."""
        super().set_shutdown_event(event)

    def set_update_handler(self, handler: BaseUpdateHandler) -> None:
        """Sets the business logic that receives inbound updates."""
        self._update_handler = handler

    async def setup(self, settings: Settings) -> None:
        """Start the Telegram bot session."""
        log("✈️ [Telegram] Инициализация Telegram клиента...")
        self._session_name = settings.app.session_name
        self._api_id = settings.telegram_api_id
        self._api_hash = settings.telegram_api_hash
        self._bot_token = settings.telegram_bot_token
        self._workers = settings.telegram.workers
        self._apply_send_settings(settings)

        try:
            self._client = Client(
                self._session_name,
                api_id=self._api_id,
                api_hash=self._api_hash,
                bot_token=self._bot_token,
                workers=self._workers,
            )
            self._register_handlers(self._client)
            await self._client.start()
            self._initialized = True
            log("✈️ [Telegram] Клиент запущен.")
        except asyncio.CancelledError:
            log("⏹️ Запуск Telegram клиента прерван пользователем.", indent=1)
            self._initialized = False
            raise
        except Exception:
            self._initialized = False
            log("❌ Не удалось запустить Telegram клиент.", indent=1)
            raise

    def _apply_send_settings(self, settings: Settings) -> None:
        self._send_timeout = settings.telegram.send_timeout_seconds
        self._flood_wait_retries = settings.telegram.flood_wait_retries

    async def update_config(self, settings: Settings) -> None:
        """Called when the configuration changes."""
        if not self._initialized:
            await self.setup(settings)
            return

        if (
            self._api_id != settings.telegram_api_id
            or self._api_hash != settings.telegram_api_hash
            or self._bot_token != settings.telegram_bot_token
            or self._session_name != settings.app.session_name
            or self._workers != settings.telegram.workers
        ):
            log("✈️ [Telegram] Конфигурация изменилась, перезапускаю клиент...")
            await self.shutdown()
            await self.setup(settings)
            return

        self._apply_send_settings(settings)

    async def shutdown(self) -> None:
        """Stop the Telegram client session."""
        if self._client and self._client.is_connected:
            await self._client.stop()
            log("✈️ [Telegram] Клиент остановлен.")
        self._initialized = False

    async def __aenter__(self) -> TelegramManager:
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

    async def health_check(self) -> dict[str, Any]:
        """Checks that the bot session is alive."""
        if not self._initialized or not self._client:
            return {"status": "error", "message": "TelegramManager not initialized"}
        try:
            me = await self._client.get_me()
            return {"status": "ok", "message": f"@{me.username}"}
        except Exception as e:
            return {"status": "error", "message": str(e)}

    # --- inbound ---

    def _register_handlers(self, client: Client) -> None:
        client.add_handler(MessageHandler(self._on_message, filters.text))
        client.add_handler(CallbackQueryHandler(self._on_callback_query))
        client.add_handler(InlineQueryHandler(self._on_inline_query))

    async def _on_message(self, client: Client, message: Message) -> None:
        if self._update_handler:
            await self._update_handler.handle_message(message)

    async def _on_callback_query(self, client: Client, query: CallbackQuery) -> None:
        if self._update_handler:
            await self._update_handler.handle_callback_query(query)

    async def _on_inline_query(self, client: Client, query: InlineQuery) -> None:
        if self._update_handler:
            await self._update_handler.handle_inline_query(query)

    # --- outbound ---

    def _require_client(self) -> Client:
        if self._client is None:
            raise TransportError("Telegram клиент не инициализирован")
        return self._client

    async def _call(self, action: str, request: Callable[[], Awaitable[T]]) -> T:
        """Runs one API request, waiting out FloodWait and mapping failures to TransportError."""
        attempt = 0
        while True:
            self._check_shutdown()
            try:
                async with asyncio.timeout(self._send_timeout):
                    return await request()
            except FloodWait as e:
                if attempt >= self._flood_wait_retries:
                    raise TransportError(f"{action}: FloodWait {e.value} c") from e
                attempt += 1
                await self._handle_floodwait(e)
            except RPCError as e:
                raise TransportError(f"{action}: {type(e).__name__}: {e}") from e
            except TimeoutError as e:
                raise TransportError(f"{action}: нет ответа за {self._send_timeout} c") from e

    @staticmethod
    def _keyboard(controls: Sequence[ControlButton] | None) -> InlineKeyboardMarkup | None:
        if not controls:
            return None
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton(control.label, callback_data=control.token)] for control in controls]
        )

    async def send_text(
        self,
        destination: ChatId,
        text: str,
        reply_to: int | None = None,
        controls: Sequence[ControlButton] | None = None,
        disable_preview: bool = False,
    ) -> None:
        client = self._require_client()
        debug(f"[Telegram] send_message → {destination}", indent=2)
        await self._call(
            "send_message",
            lambda: client.send_message(
                chat_id=destination,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_to_message_id=reply_to,  # type: ignore[reportArgumentType]
                reply_markup=self._keyboard(controls),  # type: ignore[reportArgumentType]
                link_preview_options=LinkPreviewOptions(is_disabled=disable_preview),
            ),
        )

    async def send_media_group(
        self,
        destination: ChatId,
        items: Sequence[MediaDescriptor],
        reply_to: int | None = None,
    ) -> None:
        client = self._require_client()
        if not items:
            raise TransportError("send_media_group: пустая группа")

        # Telegram requires 2-10 items in a media group.
        if len(items) == 1:
            item = items[0]
            if item.kind == "photo":
                await self._call(
                    "send_photo",
                    lambda: client.send_photo(  # type: ignore[reportUnknownMemberType]
                        chat_id=destination,
                        photo=item.url,
                        caption=item.caption or "",
                        parse_mode=ParseMode.HTML,
                        disable_notification=True,
                        reply_to_message_id=reply_to,  # type: ignore[reportArgumentType]
                    ),
                )
            else:
                await self.send_video(destination, item.url, item.caption or "", reply_to=reply_to)
            return

        media: list[InputMediaPhoto | InputMediaVideo] = []
        for item in items:
            if item.kind == "photo":
                media.append(InputMediaPhoto(media=item.url, caption=item.caption or "", parse_mode=ParseMode.HTML))
            else:
                media.append(InputMediaVideo(media=item.url, caption=item.caption or "", parse_mode=ParseMode.HTML))

        debug(f"[Telegram] send_media_group ({len(media)}) → {destination}", indent=2)
        await self._call(
            "send_media_group",
            lambda: client.send_media_group(  # type: ignore[reportUnknownMemberType]
                chat_id=destination,
                media=media,  # type: ignore[reportArgumentType]
                disable_notification=True,
                reply_to_message_id=reply_to,  # type: ignore[reportArgumentType]
            ),
        )

    async def send_video(
        self,
        destination: ChatId,
        url: str,
        caption: str,
        reply_to: int | None = None,
    ) -> None:
        client = self._require_client()
        debug(f"[Telegram] send_video {url} → {destination}", indent=2)
        await self._call(
            "send_video",
            lambda: client.send_video(  # type: ignore[reportUnknownMemberType]
                chat_id=destination,
                video=url,
                caption=caption,
                parse_mode=ParseMode.HTML,
                disable_notification=True,
                reply_to_message_id=reply_to,  # type: ignore[reportArgumentType]
            ),
        )

    async def clear_controls(self, destination: ChatId, message_id: int) -> None:
        client = self._require_client()
        await self._call(
            "edit_message_reply_markup",
            lambda: client.edit_message_reply_markup(chat_id=destination, message_id=message_id, reply_markup=None),
        )

    async def answer_callback(self, query_id: str, text: str | None = None) -> None:
        client = self._require_client()
        await self._call(
            "answer_callback_query",
            lambda: client.answer_callback_query(query_id, text=text),  # type: ignore[reportArgumentType]
        )

    async def answer_inline_query(self, query_id: str, results: Sequence[InlineResultDescriptor]) -> None:
        client = self._require_client()
        inline_results = [self._to_inline_result(result) for result in results]
        await self._call(
            "answer_inline_query",
            lambda: client.answer_inline_query(query_id, inline_results, cache_time=300),
        )

    def _to_inline_result(self, result: InlineResultDescriptor) -> InlineQueryResult:
        reply_markup = self._keyboard([result.control] if result.control else None)
        match result.kind:
            case "article":
                return InlineQueryResultArticle(
                    title=result.title,
                    input_message_content=InputTextMessageContent(result.caption, parse_mode=ParseMode.HTML),
                    description=result.description,
                )
            case "photo":
                return InlineQueryResultPhoto(
                    result.url,
                    result.thumbnail_url or result.url,
                    title=result.title,
                    caption=result.caption,
                    parse_mode=ParseMode.HTML,
                    reply_markup=reply_markup,
                )
            case "video":
                return InlineQueryResultVideo(
                    result.url,
                    result.thumbnail_url,
                    result.title,
                    mime_type=result.mime_type,
                    caption=result.caption,
                    parse_mode=ParseMode.HTML,
                )
            case "animation":
                return InlineQueryResultAnimation(
                    result.url,
                    title=result.title,
                    caption=result.caption,
                    parse_mode=ParseMode.HTML,
                )

    async def _handle_floodwait(self, e: FloodWait) -> None:
        wait_time = e.value if isinstance(e.value, int) else 60
        log(f"⏳ FloodWait: жду {wait_time + 1} секунд...", indent=3)
        await self._sleep_cancelable(wait_time + 1)

    async def _sleep_cancelable(self, seconds: int) -> None:
        remaining = float(seconds)
        step = 0.25
        while remaining > 0:
            if self._shutdown_event and self._shutdown_event.is_set():
                raise asyncio.CancelledError()
            await asyncio.sleep(step)
            remaining -= step
