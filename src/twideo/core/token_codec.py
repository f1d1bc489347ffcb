"""
Interaction tokens carried in Telegram callback_data.

Grammar (decimal integer fields, "_" delimiter):

    <tag> "_" <tweet-id>                                        show the full bundle
    <tag> "_" <conversation-id> "_" <author-id> "_" <position>   advance a thread

Tokens are decoded without any server-side lookup, so the format is a wire
contract with every message already sent. Do not change tags or field order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final

from ..exceptions import TokenDecodeError

DELIMITER: Final[str] = "_"
# Telegram rejects callback_data longer than 64 bytes.
MAX_TOKEN_BYTES: Final[int] = 64


class IntentTag(IntEnum):
    ADVANCE_THREAD = 2
    SHOW_BUNDLE = 9


ARITY: Final[dict[IntentTag, int]] = {
    IntentTag.SHOW_BUNDLE: 1,
    IntentTag.ADVANCE_THREAD: 3,
}


@dataclass(frozen=True)
class ShowBundleIntent:
    post_id: int


@dataclass(frozen=True)
class AdvanceThreadIntent:
    conversation_id: int
    author_id: int
    position: int


Intent = ShowBundleIntent | AdvanceThreadIntent


def encode(intent: Intent) -> str:
    match intent:
        case ShowBundleIntent(post_id=post_id):
            fields = [IntentTag.SHOW_BUNDLE, post_id]
        case AdvanceThreadIntent(conversation_id=conversation_id, author_id=author_id, position=position):
            fields = [IntentTag.ADVANCE_THREAD, conversation_id, author_id, position]
        case _:
            raise TypeError(f"Unsupported intent: {intent!r}")

    if any(int(field) < 0 for field in fields):
        raise ValueError(f"Token fields must be non-negative: {intent}")

    token = DELIMITER.join(str(int(field)) for field in fields)
    if len(token.encode("ascii")) > MAX_TOKEN_BYTES:
        raise ValueError(f"Token exceeds {MAX_TOKEN_BYTES} bytes: {token}")
    return token


def _parse_int(raw: str, token: str) -> int:
    # int() also accepts "+1", " 1" and "1_0", none of which the grammar allows.
    if not raw.isascii() or not raw.isdigit():
        raise TokenDecodeError(f"Non-numeric field {raw!r} in token {token!r}")
    return int(raw)


def decode(token: str) -> Intent:
    """Parses a token, raising TokenDecodeError if it does not match the grammar."""
    if not token:
        raise TokenDecodeError("Empty token")

    raw_tag, *raw_fields = token.split(DELIMITER)
    try:
        tag = IntentTag(_parse_int(raw_tag, token))
    except ValueError as e:
        raise TokenDecodeError(f"Unknown intent tag in token {token!r}") from e

    if len(raw_fields) != ARITY[tag]:
        raise TokenDecodeError(f"Token {token!r} has {len(raw_fields)} fields, expected {ARITY[tag]}")

    fields = [_parse_int(raw, token) for raw in raw_fields]
    if tag is IntentTag.SHOW_BUNDLE:
        return ShowBundleIntent(post_id=fields[0])
    return AdvanceThreadIntent(conversation_id=fields[0], author_id=fields[1], position=fields[2])
