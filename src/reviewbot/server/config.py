"""Configuration for the webhook server."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # GitHub App settings
    github_app_id: int = 0
    github_app_private_key: str = ""
    github_app_private_key_path: str = ""
    github_webhook_secret: str = ""
    github_api_url: str = "https://api.github.com"

    # LLM settings
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_free_model: str = "meta-llama/llama-3.3-70b-instruct:free"
    llm_max_tokens: int = 4000
    llm_temperature: float = 0.3

    # Review pipeline settings
    review_max_attempts: int = 2
    review_retry_delay: float = 1.0
    max_diff_chars: int = 60000

    # Storage
    store_backend: str = "sqlite"
    store_path: str = "reviewbot.db"

    # Logging
    log_level: str = "INFO"

    def get_private_key(self) -> str:
        """Get the GitHub App private key."""
        if self.github_app_private_key:
            # Keys passed through env vars often carry escaped newlines
            return self.github_app_private_key.replace("\\n", "\n")

        if self.github_app_private_key_path:
            key_path = Path(self.github_app_private_key_path)
            if key_path.exists():
                return key_path.read_text()

        raise ValueError(
            "GitHub App private key not configured. "
            "Set GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
