from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from .post import Variant


class ControlButton(BaseModel):
    """Inline button carrying an interaction token."""

    model_config = ConfigDict(frozen=True)

    label: str
    token: str


class MediaDescriptor(BaseModel):
    """Platform-neutral description of one item in a media group."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["photo", "video"]
    url: str
    caption: str | None = None


class TextOnly(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    continuation_control: ControlButton | None = None


class MediaBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[MediaDescriptor, ...]
    caption: str
    extra_variants: tuple[Variant, ...] = ()
    retry_allowed: bool = False
    continuation_control: ControlButton | None = None

    @model_validator(mode="after")
    def check_invariants(self) -> MediaBundle:
        if not self.items:
            raise ValueError("MediaBundle needs at least one item")
        if sum(1 for item in self.items if item.caption is not None) > 1:
            raise ValueError("Caption can be attached to one item only")
        if any(item.caption is not None for item in self.items[1:]):
            raise ValueError("Caption must be attached to the first item")
        if self.retry_allowed != any(item.kind == "video" for item in self.items):
            raise ValueError("retry_allowed must match the presence of video items")
        if self.extra_variants and not self.retry_allowed:
            raise ValueError("extra_variants require retry_allowed")
        return self


DeliveryPlan = TextOnly | MediaBundle


class InlineResultDescriptor(BaseModel):
    """One entry of an inline query answer."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["article", "photo", "video", "animation"]
    title: str
    caption: str
    url: str = ""
    thumbnail_url: str = ""
    mime_type: str = "video/mp4"
    description: str = ""
    control: ControlButton | None = None
