# type: ignore[reportPrivateUsage]
import asyncio
from pathlib import Path

import pytest
import yaml

from src.twideo.core.user_registry import _load_users, register_user


@pytest.fixture
def users_file(tmp_path: Path) -> Path:
    return tmp_path / "users.yaml"


@pytest.mark.asyncio
async def test_register_new_user(users_file: Path):
    # Act
    created = await register_user(42, "Ann Lee", "ann", users_file)

    # Assert
    assert created is True
    saved = yaml.safe_load(users_file.read_text(encoding="utf-8"))
    assert saved == {"42": {"chat_id": 42, "name": "Ann Lee", "username": "ann"}}


@pytest.mark.asyncio
async def test_register_existing_user_is_noop(users_file: Path):
    # Arrange
    await register_user(42, "Ann Lee", "ann", users_file)
    before = users_file.read_text(encoding="utf-8")

    # Act
    created = await register_user(42, "Someone Else", None, users_file)

    # Assert
    assert created is False
    assert users_file.read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_concurrent_registrations_are_all_kept(users_file: Path):
    # Act
    results = await asyncio.gather(*(register_user(i, f"user {i}", None, users_file) for i in range(1, 6)))

    # Assert
    assert all(results)
    state = await _load_users(users_file)
    assert sorted(state.root) == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_load_missing_file(users_file: Path):
    state = await _load_users(users_file)

    assert state.root == {}


@pytest.mark.asyncio
async def test_load_broken_file(users_file: Path):
    # Arrange
    users_file.write_text("{not: [valid", encoding="utf-8")

    # Act
    state = await _load_users(users_file)

    # Assert
    assert state.root == {}
