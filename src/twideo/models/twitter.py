from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class TwitterVariant(BaseModel):
    bit_rate: int | None = None
    content_type: str
    url: str


class TwitterMedia(BaseModel):
    media_key: str
    type: Literal["photo", "video", "animated_gif"]
    url: str | None = None
    preview_image_url: str | None = None
    variants: list[TwitterVariant] | None = None

    @property
    def mp4_variants(self) -> list[TwitterVariant]:
        """MP4 renditions, best bit rate first."""
        mp4 = [v for v in self.variants or [] if v.content_type == "video/mp4"]
        return sorted(mp4, key=lambda v: v.bit_rate or 0, reverse=True)


class TwitterUser(BaseModel):
    id: str
    name: str
    username: str


class TweetAttachments(BaseModel):
    media_keys: list[str] = Field(default_factory=list)


class Tweet(BaseModel):
    id: str
    text: str = ""
    author_id: str | None = None
    conversation_id: str | None = None
    attachments: TweetAttachments | None = None


class TweetIncludes(BaseModel):
    media: list[TwitterMedia] = Field(default_factory=list)
    users: list[TwitterUser] = Field(default_factory=list)


class TweetLookupResponse(BaseModel):
    data: Tweet
    includes: TweetIncludes = Field(default_factory=TweetIncludes)

    def ordered_media(self) -> list[TwitterMedia]:
        """Media in the order the tweet attaches them."""
        by_key = {m.media_key: m for m in self.includes.media}
        keys = self.data.attachments.media_keys if self.data.attachments else []
        return [by_key[key] for key in keys if key in by_key]

    def author(self) -> TwitterUser | None:
        return next((u for u in self.includes.users if u.id == self.data.author_id), None)


class SearchTweet(BaseModel):
    id: str


class SearchMeta(BaseModel):
    result_count: int = 0
    next_token: str | None = None


class SearchResponse(BaseModel):
    data: list[SearchTweet] = Field(default_factory=list)
    meta: SearchMeta = Field(default_factory=SearchMeta)
