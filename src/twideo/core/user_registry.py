import asyncio
import os
from pathlib import Path

import aiofiles
import yaml

from ..models import ChatUser, UserRegistryState
from ..utils.log import log

_registry_lock = asyncio.Lock()


async def _load_users(users_file: Path) -> UserRegistryState:
    """Loads the registered users from the YAML file."""
    if not await asyncio.to_thread(os.path.exists, users_file):
        return UserRegistryState.model_validate({})
    try:
        async with aiofiles.open(users_file, encoding="utf-8") as f:
            content = await f.read()
            users_data = await asyncio.to_thread(yaml.safe_load, content)
            return UserRegistryState.model_validate(users_data) if users_data else UserRegistryState.model_validate({})
    except (yaml.YAMLError, FileNotFoundError):
        return UserRegistryState.model_validate({})


async def _save_users(state: UserRegistryState, users_file: Path) -> None:
    """Saves the registered users to the YAML file."""
    async with aiofiles.open(users_file, "w", encoding="utf-8") as f:
        content = await asyncio.to_thread(
            yaml.safe_dump, state.model_dump(mode="json"), indent=2, allow_unicode=True
        )
        await f.write(content)


async def register_user(chat_id: int, name: str, username: str | None, users_file: Path) -> bool:
    """Creates the user record if it is absent. Returns True when a new record was written."""
    async with _registry_lock:
        state = await _load_users(users_file)
        if chat_id in state.root:
            return False

        state.root[chat_id] = ChatUser(chat_id=chat_id, name=name, username=username)
        await _save_users(state, users_file)
    log(f"👤 Зарегистрирован пользователь {name} ({chat_id}).", indent=1)
    return True
