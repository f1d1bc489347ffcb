from .outcome import DeliveryOutcome
from .plan import (
    ControlButton,
    DeliveryPlan,
    InlineResultDescriptor,
    MediaBundle,
    MediaDescriptor,
    TextOnly,
)
from .post import MediaItem, MediaKind, Post, Variant
from .twitter import (
    SearchResponse,
    Tweet,
    TweetLookupResponse,
    TwitterMedia,
    TwitterUser,
    TwitterVariant,
)
from .twitter_api_response import TwitterAPIResponseDict, TwitterErrorDict
from .user import ChatUser, UserRegistryState

__all__ = [
    "DeliveryOutcome",
    "ControlButton",
    "DeliveryPlan",
    "InlineResultDescriptor",
    "MediaBundle",
    "MediaDescriptor",
    "TextOnly",
    "MediaItem",
    "MediaKind",
    "Post",
    "Variant",
    "SearchResponse",
    "Tweet",
    "TweetLookupResponse",
    "TwitterMedia",
    "TwitterUser",
    "TwitterVariant",
    "TwitterAPIResponseDict",
    "TwitterErrorDict",
    "ChatUser",
    "UserRegistryState",
]
