from __future__ import annotations

from pydantic import BaseModel, Field, RootModel


class ChatUser(BaseModel):
    chat_id: int
    name: str
    username: str | None = None


class UserRegistryState(RootModel[dict[int, ChatUser]]):
    root: dict[int, ChatUser] = Field(default_factory=dict)
