from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MediaKind = Literal["photo", "video", "animated"]


class Variant(BaseModel):
    """Alternate-quality rendition of the primary video or animated item."""

    model_config = ConfigDict(frozen=True)

    bit_rate: int | None = None
    content_type: str
    url: str


class MediaItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: MediaKind
    url: str
    thumbnail_url: str = ""


class Post(BaseModel):
    """
    Snapshot of a fetched post.
    Only `next_index` may change after construction, and only when a thread is advanced.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: int
    caption: str
    author_name: str
    media_items: tuple[MediaItem, ...] = ()
    extra_variants: tuple[Variant, ...] = ()
    conversation_id: int = 0
    author_id: int = 0
    thread_length: int = Field(default=0, ge=0)
    next_index: int = Field(default=1, ge=1)

    @property
    def has_continuation(self) -> bool:
        return self.thread_length > 0 and self.next_index <= self.thread_length

    def __setattr__(self, name: str, value: object) -> None:
        if name != "next_index" and name in type(self).model_fields:
            raise AttributeError(f"Post.{name} is read-only")
        super().__setattr__(name, value)
