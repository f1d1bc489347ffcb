from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from ..config.settings import MessagesConfig
from ..core.token_codec import AdvanceThreadIntent, ShowBundleIntent, encode
from ..models import (
    ControlButton,
    DeliveryPlan,
    InlineResultDescriptor,
    MediaBundle,
    MediaDescriptor,
    Post,
    TextOnly,
)

ResultT = TypeVar("ResultT")


class ResponseClassifier(ABC, Generic[ResultT]):
    """Turns a fetched post into what should be sent. Pure, no I/O."""

    def __init__(self, messages: MessagesConfig | None = None) -> None:
        self.messages = messages or MessagesConfig()

    @abstractmethod
    def classify(self, post: Post) -> ResultT:
        pass

    def continuation_control(self, post: Post) -> ControlButton | None:
        if not post.has_continuation:
            return None
        token = encode(
            AdvanceThreadIntent(
                conversation_id=post.conversation_id,
                author_id=post.author_id,
                position=post.next_index,
            )
        )
        return ControlButton(label=self.messages.continuation_button, token=token)


class MessageClassifier(ResponseClassifier[DeliveryPlan]):
    """Builds a delivery plan for chats: one media group, or plain text."""

    def classify(self, post: Post) -> DeliveryPlan:
        items: list[MediaDescriptor] = []
        caption_attached = False
        retry_allowed = False

        for media in post.media_items:
            caption = None if caption_attached else post.caption
            caption_attached = True
            if media.kind == "photo":
                items.append(MediaDescriptor(kind="photo", url=media.url, caption=caption))
            else:
                retry_allowed = True
                items.append(MediaDescriptor(kind="video", url=media.url, caption=caption))

        control = self.continuation_control(post)

        if not caption_attached:
            return TextOnly(text=post.caption, continuation_control=control)

        return MediaBundle(
            items=tuple(items),
            caption=post.caption,
            extra_variants=post.extra_variants if retry_allowed else (),
            retry_allowed=retry_allowed,
            continuation_control=control,
        )


class InlineClassifier(ResponseClassifier[list[InlineResultDescriptor]]):
    """Builds inline query answers, one result per photo or per video variant."""

    def classify(self, post: Post) -> list[InlineResultDescriptor]:
        results: list[InlineResultDescriptor] = []

        if not post.media_items:
            results.append(
                InlineResultDescriptor(
                    kind="article",
                    title=post.author_name,
                    caption=post.caption,
                    description=post.caption,
                )
            )

        album_control = None
        if len(post.media_items) > 1:
            album_control = ControlButton(
                label=self.messages.album_button,
                token=encode(ShowBundleIntent(post_id=post.id)),
            )

        for media in post.media_items:
            match media.kind:
                case "photo":
                    results.append(
                        InlineResultDescriptor(
                            kind="photo",
                            title=post.author_name,
                            caption=post.caption,
                            url=media.url,
                            thumbnail_url=media.thumbnail_url,
                            control=album_control,
                        )
                    )
                case "video" | "animated":
                    kind = "video" if media.kind == "video" else "animation"
                    for variant in post.extra_variants:
                        results.append(
                            InlineResultDescriptor(
                                kind=kind,
                                title=f"{post.author_name} (Bitrate {variant.bit_rate or 0})",
                                caption=post.caption,
                                url=variant.url,
                                thumbnail_url=media.thumbnail_url,
                                mime_type=variant.content_type,
                            )
                        )

        return results
