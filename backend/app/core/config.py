"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # 忽略 .env 中的额外变量
    )

    # Project info
    PROJECT_NAME: str = "Notepad Sync API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # 存储后端: postgres 生产使用，memory 用于本地开发和测试（进程重启即丢失）
    STORAGE_BACKEND: Literal["postgres", "memory"] = "postgres"

    # 受保护笔记的密码通过该请求头传递
    PASSWORD_HEADER: str = "X-Note-Password"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
