from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Push Registry API"
    app_env: str = "dev"
    app_version: str = "0.1.0"
    api_v1_prefix: str = ""

    jwt_secret: str = "change_me"
    jwt_algorithm: str = "HS256"

    firebase_service_account_json: str = "./secrets/firebase-service-account.json"
    firebase_project_id: str | None = None

    devices_collection: str = "devices"
    user_devices_path_template: str = "users/{userId}/devices"

    default_notification_language: str | None = None

    @property
    def firebase_credentials_path(self) -> Path:
        return Path(self.firebase_service_account_json)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
