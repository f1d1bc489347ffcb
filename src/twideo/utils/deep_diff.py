from typing import Any

from pydantic import BaseModel

Comparable = BaseModel | dict[str, Any] | list[Any] | str | int | float | bool | None

SECRET_MARKERS = ("token", "hash")


def _shown(path: str, value: Any) -> str:
    """Masks credentials so they never reach the console."""
    leaf = path.rsplit(".", 1)[-1].lower()
    if value is not None and any(marker in leaf for marker in SECRET_MARKERS):
        return "'***'"
    return repr(value)


def deep_diff(old: Comparable, new: Comparable, path: str = "") -> list[str]:
    """
    Recursively compares two objects (supports dicts, lists, Pydantic models, primitives).
    Returns a list of strings describing the changes.
    """
    changes: list[str] = []

    if isinstance(old, BaseModel) and isinstance(new, BaseModel):
        changes.extend(deep_diff(old.model_dump(), new.model_dump(), path))
    elif isinstance(old, dict) and isinstance(new, dict):
        for key in sorted(set(old) | set(new), key=str):
            new_path = f"{path}.{key}" if path else str(key)
            if key not in old:
                changes.append(f"➕ Добавлено: {new_path} = {_shown(new_path, new[key])}")
            elif key not in new:
                changes.append(f"➖ Удалено: {new_path} (было: {_shown(new_path, old[key])})")
            else:
                changes.extend(deep_diff(old[key], new[key], new_path))
    elif isinstance(old, list) and isinstance(new, list):
        for i in range(max(len(old), len(new))):
            new_path = f"{path}[{i}]"
            if i >= len(old):
                changes.append(f"➕ Добавлено: {new_path} = {_shown(path, new[i])}")
            elif i >= len(new):
                changes.append(f"➖ Удалено: {new_path} (было: {_shown(path, old[i])})")
            else:
                changes.extend(deep_diff(old[i], new[i], new_path))
    elif old != new:
        changes.append(f"🔄 Изменено: {path} с {_shown(path, old)} на {_shown(path, new)}")

    return changes
