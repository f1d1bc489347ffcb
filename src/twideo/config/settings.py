from __future__ import annotations

from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class AppConfig(BaseModel):
    session_name: str = Field(default="twideo_bot")
    users_file: Path = Field(default=Path("users.yaml"))


class TelegramConfig(BaseModel):
    workers: int = Field(default=8, ge=1)
    send_timeout_seconds: float = Field(default=60.0, gt=0)
    flood_wait_retries: int = Field(default=1, ge=0)
    threaded_replies: bool = True
    continuation_controls: bool = True


class RetryConfig(BaseModel):
    count: int = Field(default=3, ge=1)
    delay_seconds: int = Field(default=2, ge=0)


class TwitterConfig(BaseModel):
    api_base_url: str = Field(default="https://api.twitter.com/2")
    timeout_seconds: float = Field(default=10.0, gt=0)
    retries: RetryConfig = Field(default_factory=RetryConfig)
    thread_search_limit: int = Field(default=100, ge=10, le=100)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Некорректный api_base_url: {v}")
        return v.rstrip("/")


class MessagesConfig(BaseModel):
    start: str = "👉  Send me a valid twitter url"
    not_found: str = "🤷 This post could not be found."
    rate_limited: str = "⏳ Twitter is rate limiting me right now, please try again later."
    thread_not_found: str = "🧵 The next post of this thread could not be found."
    continuation_prompt: str = "🧵 This post is part of a thread."
    continuation_button: str = "Show next"
    album_button: str = "See Album"
    degraded_notice: str = "Telegram is unable to download high quality video.\nI will send you other qualities."
    link_fallback_prefix: str = "Telegram could not download this video, here is a direct link:\n"


class Settings(BaseSettings):
    telegram_api_id: int = Field(..., alias="TELEGRAM_API_ID")
    telegram_api_hash: str = Field(..., alias="TELEGRAM_API_HASH")
    telegram_bot_token: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    twitter_bearer_token: str = Field(..., alias="TWITTER_BEARER_TOKEN")

    app: AppConfig = Field(default_factory=AppConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    class YamlConfigSource(PydanticBaseSettingsSource):
        yaml_path: Path
        _data: dict[str, Any]
        _last_mtime: float
        _file_read: bool = False

        def __init__(self, settings_cls: type[BaseSettings], yaml_path: Path) -> None:
            super().__init__(settings_cls)
            self.yaml_path = yaml_path
            self._data = {}
            self._last_mtime = 0.0

        def _file_changed(self) -> bool:
            """Checks if the file has been modified since the last load."""
            try:
                current_mtime = self.yaml_path.stat().st_mtime
                return current_mtime > self._last_mtime
            except OSError:
                return False

        def _read_yaml(self) -> dict[str, Any]:
            """Reads YAML only if the file has changed."""
            if self._file_read and not self._file_changed():
                return self._data

            if self.yaml_path.exists():
                try:
                    with open(self.yaml_path, encoding="utf-8") as f:
                        loaded = yaml.safe_load(f)
                        if isinstance(loaded, dict):
                            self._data = cast(dict[str, Any], loaded)
                            self._last_mtime = self.yaml_path.stat().st_mtime
                            self._file_read = True
                        else:
                            self._data = {}
                except (OSError, yaml.YAMLError) as e:
                    print(f"⚠️ Ошибка при чтении {self.yaml_path}: {e}")
            return self._data

        def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
            data = self._read_yaml()
            if field_name in data:
                return data[field_name], field_name, True
            return None, field_name, False

        def prepare_field_value(self, field_name: str, field: Any, value: Any, value_is_complex: bool) -> Any:
            return value

        def __call__(self) -> dict[str, Any]:
            return self._read_yaml()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.YamlConfigSource(settings_cls, Path("config.yaml")),
            file_secret_settings,
        )

    @classmethod
    def load(cls) -> Settings:
        """Factory method for correct instantiation without arguments."""
        factory: type[Any] = cast(type[Any], cls)
        instance = factory()
        return cast(Settings, instance)
