from __future__ import annotations

from enum import StrEnum

from ..config.settings import MessagesConfig
from ..core.delivery_engine import DeliveryEngine
from ..core.token_codec import AdvanceThreadIntent, decode
from ..exceptions import TokenDecodeError, TransportError
from ..interfaces.content_api import ContentApi
from ..interfaces.transport import ChatId, Transport
from ..models import DeliveryOutcome
from ..processing.classifier import MessageClassifier
from ..utils.log import log


class ControllerState(StrEnum):
    IDLE = "idle"
    RESOLVING = "resolving"
    COMPLETED = "completed"


class ThreadContinuationController:
    """
    Handles one "show next" press. A new instance is created for every
    interaction and cannot be reused once completed.
    """

    def __init__(
        self,
        content_api: ContentApi,
        transport: Transport,
        engine: DeliveryEngine,
        classifier: MessageClassifier,
        messages: MessagesConfig | None = None,
    ) -> None:
        self.content_api = content_api
        self.transport = transport
        self.engine = engine
        self.classifier = classifier
        self.messages = messages or MessagesConfig()
        self.state = ControllerState.IDLE

    async def run(self, token: str, destination: ChatId, control_message_id: int | None = None) -> DeliveryOutcome:
        if self.state is not ControllerState.IDLE:
            raise RuntimeError(f"Controller already used (state: {self.state})")
        self.state = ControllerState.RESOLVING
        try:
            return await self._resolve(token, destination, control_message_id)
        finally:
            self.state = ControllerState.COMPLETED

    async def _resolve(self, token: str, destination: ChatId, control_message_id: int | None) -> DeliveryOutcome:
        try:
            intent = decode(token)
        except TokenDecodeError as e:
            log(f"⚠️ Некорректный токен кнопки: {e}", indent=1)
            return DeliveryOutcome.SKIPPED

        if not isinstance(intent, AdvanceThreadIntent):
            log(f"⚠️ Токен {token!r} не относится к треду, пропускаю.", indent=1)
            return DeliveryOutcome.SKIPPED

        if control_message_id is not None:
            try:
                await self.transport.clear_controls(destination, control_message_id)
            except TransportError as e:
                log(f"⚠️ Не удалось убрать кнопку: {e}", indent=1)

        log(
            f"🧵 Ищу пост №{intent.position} треда {intent.conversation_id} автора {intent.author_id}...",
            indent=1,
        )
        next_id = await self.content_api.resolve_next_in_thread(
            intent.conversation_id, intent.author_id, intent.position
        )
        if next_id is None:
            log("🤷 Следующий пост треда не найден.", indent=1)
            await self.transport.send_text(destination, self.messages.thread_not_found)
            return DeliveryOutcome.SKIPPED

        post = await self.content_api.fetch_post(next_id)
        post.next_index = intent.position + 1
        plan = self.classifier.classify(post)
        return await self.engine.deliver(plan, destination)
