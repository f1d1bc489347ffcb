from __future__ import annotations

from dataclasses import dataclass

from ..config.settings import MessagesConfig
from ..exceptions import TransportError
from ..interfaces.transport import ChatId, Transport
from ..models import ControlButton, DeliveryOutcome, DeliveryPlan, MediaBundle, TextOnly
from ..utils.log import log


@dataclass(frozen=True)
class DeliveryCapabilities:
    """What the current entry point allows the engine to do."""

    continuation_controls: bool = True
    threaded_replies: bool = True


class DeliveryEngine:
    """
    Sends a delivery plan, falling back through lower-fidelity tiers when
    Telegram rejects a media group:

        1. the whole bundle as one media group
        2. a notice, then each extra variant not already in the bundle as a separate video
        3. a plain-text message with a link to the first variant

    Only bundles with video items enter tiers 2 and 3.
    """

    def __init__(
        self,
        transport: Transport,
        capabilities: DeliveryCapabilities | None = None,
        messages: MessagesConfig | None = None,
    ) -> None:
        self.transport = transport
        self.capabilities = capabilities or DeliveryCapabilities()
        self.messages = messages or MessagesConfig()

    async def deliver(
        self,
        plan: DeliveryPlan | None,
        destination: ChatId,
        reply_to: int | None = None,
    ) -> DeliveryOutcome:
        if plan is None:
            log("⚠️ Нечего отправлять, пропускаю.", indent=2)
            return DeliveryOutcome.SKIPPED

        if not self.capabilities.threaded_replies:
            reply_to = None
        control = plan.continuation_control if self.capabilities.continuation_controls else None

        if isinstance(plan, TextOnly):
            return await self._deliver_text(plan, destination, reply_to, control)
        return await self._deliver_bundle(plan, destination, reply_to, control)

    async def _deliver_text(
        self,
        plan: TextOnly,
        destination: ChatId,
        reply_to: int | None,
        control: ControlButton | None,
    ) -> DeliveryOutcome:
        log(f"📄 Отправляю текст в {destination}...", indent=2)
        await self.transport.send_text(
            destination,
            plan.text,
            reply_to=reply_to,
            controls=[control] if control else None,
            disable_preview=True,
        )
        if control:
            return DeliveryOutcome.DELIVERED_WITH_CONTINUATION_PROMPT
        return DeliveryOutcome.DELIVERED

    async def _deliver_bundle(
        self,
        plan: MediaBundle,
        destination: ChatId,
        reply_to: int | None,
        control: ControlButton | None,
    ) -> DeliveryOutcome:
        log(f"📦 Отправляю {len(plan.items)} медиа в {destination}...", indent=2)
        try:
            await self.transport.send_media_group(destination, plan.items, reply_to=reply_to)
        except TransportError as e:
            if not plan.retry_allowed:
                log(f"❌ Telegram не принял медиа: {e}", indent=3)
                raise
            log(f"⚠️ Telegram не принял медиа-группу: {e}. Перехожу к другим качествам.", indent=3)
            return await self._deliver_degraded(plan, destination, reply_to)

        if control is None:
            return DeliveryOutcome.DELIVERED

        # Media groups cannot carry inline keyboards, the control goes in a separate message.
        try:
            await self.transport.send_text(destination, self.messages.continuation_prompt, controls=[control])
        except TransportError as e:
            log(f"⚠️ Не удалось отправить кнопку продолжения треда: {e}", indent=3)
            return DeliveryOutcome.DELIVERED
        return DeliveryOutcome.DELIVERED_WITH_CONTINUATION_PROMPT

    async def _deliver_degraded(
        self,
        plan: MediaBundle,
        destination: ChatId,
        reply_to: int | None,
    ) -> DeliveryOutcome:
        bundled = {item.url for item in plan.items}
        # The bundled rendition already failed, it is only retried when nothing else exists.
        variants = [v for v in plan.extra_variants if v.url not in bundled] or list(plan.extra_variants)

        if variants:
            try:
                await self.transport.send_text(destination, self.messages.degraded_notice, reply_to=reply_to)
            except TransportError as e:
                log(f"⚠️ Не удалось предупредить о других качествах: {e}", indent=3)

        delivered_any = False
        for index, variant in enumerate(variants, start=1):
            log(f"🎞️ Вариант {index}/{len(variants)} (битрейт {variant.bit_rate or 0})...", indent=3)
            try:
                await self.transport.send_video(destination, variant.url, plan.caption, reply_to=reply_to)
                delivered_any = True
            except TransportError as e:
                log(f"❌ Вариант {index} отклонён: {e}", indent=4)

        if delivered_any:
            return DeliveryOutcome.DEGRADED_DELIVERED

        if not plan.extra_variants:
            log("❌ Нет запасных вариантов видео, ссылку отправить нельзя.", indent=3)
            return DeliveryOutcome.DEGRADED_FAILED

        fallback_text = f"{self.messages.link_fallback_prefix}{plan.extra_variants[0].url}\n\n{plan.caption}"
        log("🔗 Ни один вариант не прошёл, отправляю ссылку текстом...", indent=3)
        try:
            await self.transport.send_text(destination, fallback_text, reply_to=reply_to)
        except TransportError as e:
            log(f"❌ Не удалось отправить даже ссылку: {e}", indent=3)
            return DeliveryOutcome.DEGRADED_FAILED
        return DeliveryOutcome.DEGRADED_LINK_SENT
