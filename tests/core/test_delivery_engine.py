from unittest.mock import AsyncMock, call

import pytest

from src.twideo.config.settings import MessagesConfig
from src.twideo.core.delivery_engine import DeliveryCapabilities, DeliveryEngine
from src.twideo.exceptions import TransportError
from src.twideo.interfaces.transport import Transport
from src.twideo.models import ControlButton, DeliveryOutcome, MediaBundle, MediaDescriptor, TextOnly, Variant

CHAT_ID = 42
CAPTION = "<b>Author</b> (@author)\n\nvideo"
CONTROL = ControlButton(label="Show next", token="2_90_5_2")

V1 = Variant(bit_rate=2176000, content_type="video/mp4", url="https://video.twimg.com/v/1280.mp4")
V2 = Variant(bit_rate=832000, content_type="video/mp4", url="https://video.twimg.com/v/640.mp4")
V3 = Variant(bit_rate=256000, content_type="video/mp4", url="https://video.twimg.com/v/320.mp4")
NOTICE = MessagesConfig().degraded_notice


def video_bundle(
    variants: tuple[Variant, ...] = (V1, V2, V3),
    control: ControlButton | None = None,
) -> MediaBundle:
    return MediaBundle(
        items=(MediaDescriptor(kind="video", url=V1.url, caption=CAPTION),),
        caption=CAPTION,
        extra_variants=variants,
        retry_allowed=True,
        continuation_control=control,
    )


def photo_bundle(control: ControlButton | None = None) -> MediaBundle:
    return MediaBundle(
        items=(
            MediaDescriptor(kind="photo", url="https://pbs.twimg.com/media/a.jpg", caption=CAPTION),
            MediaDescriptor(kind="photo", url="https://pbs.twimg.com/media/b.jpg"),
        ),
        caption=CAPTION,
        continuation_control=control,
    )


@pytest.fixture
def transport() -> AsyncMock:
    return AsyncMock(spec=Transport)


@pytest.fixture
def engine(transport: AsyncMock) -> DeliveryEngine:
    return DeliveryEngine(transport)


@pytest.mark.asyncio
async def test_nothing_to_send_is_skipped(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Act
    outcome = await engine.deliver(None, CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.SKIPPED
    transport.send_text.assert_not_awaited()
    transport.send_media_group.assert_not_awaited()


@pytest.mark.asyncio
async def test_text_only_delivered(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Act
    outcome = await engine.deliver(TextOnly(text="hello"), CHAT_ID, reply_to=7)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED
    transport.send_text.assert_awaited_once_with(CHAT_ID, "hello", reply_to=7, controls=None, disable_preview=True)


@pytest.mark.asyncio
async def test_text_only_carries_control(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Act
    outcome = await engine.deliver(TextOnly(text="hello", continuation_control=CONTROL), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED_WITH_CONTINUATION_PROMPT
    transport.send_text.assert_awaited_once_with(
        CHAT_ID, "hello", reply_to=None, controls=[CONTROL], disable_preview=True
    )


@pytest.mark.asyncio
async def test_text_only_failure_propagates(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_text.side_effect = TransportError("blocked")

    # Act & Assert
    with pytest.raises(TransportError):
        await engine.deliver(TextOnly(text="hello"), CHAT_ID)


@pytest.mark.asyncio
async def test_bundle_delivered(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    plan = photo_bundle()

    # Act
    outcome = await engine.deliver(plan, CHAT_ID, reply_to=7)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED
    transport.send_media_group.assert_awaited_once_with(CHAT_ID, plan.items, reply_to=7)
    transport.send_video.assert_not_awaited()
    transport.send_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_bundle_with_control_sends_prompt(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Act
    outcome = await engine.deliver(photo_bundle(control=CONTROL), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED_WITH_CONTINUATION_PROMPT
    transport.send_text.assert_awaited_once_with(CHAT_ID, MessagesConfig().continuation_prompt, controls=[CONTROL])


@pytest.mark.asyncio
async def test_failed_prompt_still_counts_as_delivered(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_text.side_effect = TransportError("prompt rejected")

    # Act
    outcome = await engine.deliver(photo_bundle(control=CONTROL), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED


@pytest.mark.asyncio
async def test_photo_bundle_failure_is_not_retried(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("WEBPAGE_CURL_FAILED")

    # Act & Assert
    with pytest.raises(TransportError):
        await engine.deliver(photo_bundle(), CHAT_ID)
    transport.send_video.assert_not_awaited()
    transport.send_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_lower_variant_delivers_without_link(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    transport.send_video.side_effect = [TransportError("v2 too big"), None]

    # Act
    outcome = await engine.deliver(video_bundle(), CHAT_ID, reply_to=7)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_DELIVERED
    assert transport.send_video.await_args_list == [
        call(CHAT_ID, V2.url, CAPTION, reply_to=7),
        call(CHAT_ID, V3.url, CAPTION, reply_to=7),
    ]
    transport.send_text.assert_awaited_once_with(CHAT_ID, NOTICE, reply_to=7)


@pytest.mark.asyncio
async def test_bundled_variant_is_not_resent(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    plan = video_bundle(variants=(V1, V2))

    # Act
    await engine.deliver(plan, CHAT_ID)

    # Assert
    urls = [c.args[1] for c in transport.send_video.await_args_list]
    assert urls == [V2.url]
    assert urls[0] != plan.items[0].url


@pytest.mark.asyncio
async def test_single_variant_is_retried_alone(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    outcome = await engine.deliver(video_bundle(variants=(V1,)), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_DELIVERED
    transport.send_video.assert_awaited_once_with(CHAT_ID, V1.url, CAPTION, reply_to=None)


@pytest.mark.asyncio
async def test_every_other_variant_is_attempted(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    outcome = await engine.deliver(video_bundle(), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_DELIVERED
    assert transport.send_video.await_count == 2


@pytest.mark.asyncio
async def test_notice_precedes_variants(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    plan = video_bundle(variants=(V1, V2))
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    await engine.deliver(plan, CHAT_ID, reply_to=7)

    # Assert
    assert transport.mock_calls == [
        call.send_media_group(CHAT_ID, plan.items, reply_to=7),
        call.send_text(CHAT_ID, NOTICE, reply_to=7),
        call.send_video(CHAT_ID, V2.url, CAPTION, reply_to=7),
    ]


@pytest.mark.asyncio
async def test_failed_notice_does_not_stop_variants(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    transport.send_text.side_effect = TransportError("notice rejected")

    # Act
    outcome = await engine.deliver(video_bundle(), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_DELIVERED
    assert transport.send_video.await_count == 2


@pytest.mark.asyncio
async def test_custom_degraded_notice(transport: AsyncMock) -> None:
    # Arrange
    engine = DeliveryEngine(transport, messages=MessagesConfig(degraded_notice="Пробую другие качества"))
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    await engine.deliver(video_bundle(), CHAT_ID)

    # Assert
    transport.send_text.assert_awaited_once_with(CHAT_ID, "Пробую другие качества", reply_to=None)


@pytest.mark.asyncio
async def test_link_sent_when_all_variants_fail(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    transport.send_video.side_effect = TransportError("still too big")

    # Act
    outcome = await engine.deliver(video_bundle(variants=(V1,)), CHAT_ID, reply_to=7)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_LINK_SENT
    assert transport.send_text.await_count == 2
    text = transport.send_text.await_args.args[1]
    assert text.startswith(MessagesConfig().link_fallback_prefix)
    assert V1.url in text
    assert text.endswith(CAPTION)
    assert transport.send_text.await_args.kwargs == {"reply_to": 7}


@pytest.mark.asyncio
async def test_link_points_to_first_variant(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    transport.send_video.side_effect = TransportError("still too big")

    # Act
    await engine.deliver(video_bundle(variants=(V1, V2)), CHAT_ID)

    # Assert
    text = transport.send_text.await_args.args[1]
    assert V1.url in text
    assert V2.url not in text


@pytest.mark.asyncio
async def test_failed_link_gives_degraded_failed(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")
    transport.send_video.side_effect = TransportError("still too big")
    transport.send_text.side_effect = TransportError("chat gone")

    # Act
    outcome = await engine.deliver(video_bundle(), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_FAILED


@pytest.mark.asyncio
async def test_no_variants_gives_degraded_failed(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    outcome = await engine.deliver(video_bundle(variants=()), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_FAILED
    transport.send_video.assert_not_awaited()
    transport.send_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_degraded_path_drops_control(engine: DeliveryEngine, transport: AsyncMock) -> None:
    # Arrange
    transport.send_media_group.side_effect = TransportError("too big")

    # Act
    outcome = await engine.deliver(video_bundle(control=CONTROL), CHAT_ID)

    # Assert
    assert outcome is DeliveryOutcome.DEGRADED_DELIVERED
    transport.send_text.assert_awaited_once_with(CHAT_ID, NOTICE, reply_to=None)


@pytest.mark.asyncio
async def test_capabilities_strip_control_and_reply(transport: AsyncMock) -> None:
    # Arrange
    engine = DeliveryEngine(transport, DeliveryCapabilities(continuation_controls=False, threaded_replies=False))

    # Act
    outcome = await engine.deliver(TextOnly(text="hello", continuation_control=CONTROL), CHAT_ID, reply_to=7)

    # Assert
    assert outcome is DeliveryOutcome.DELIVERED
    transport.send_text.assert_awaited_once_with(CHAT_ID, "hello", reply_to=None, controls=None, disable_preview=True)


@pytest.mark.asyncio
async def test_custom_prompt_text(transport: AsyncMock) -> None:
    # Arrange
    engine = DeliveryEngine(transport, messages=MessagesConfig(continuation_prompt="Дальше?"))

    # Act
    await engine.deliver(photo_bundle(control=CONTROL), CHAT_ID)

    # Assert
    transport.send_text.assert_awaited_once_with(CHAT_ID, "Дальше?", controls=[CONTROL])
