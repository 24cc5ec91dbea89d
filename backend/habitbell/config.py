from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "HabitBell"
    environment: str = "dev"
    log_level: str = "INFO"

    # Base URL for backend API (used by integrations)
    api_base_url: str = "http://localhost:8000"

    # Telegram bot token from .env
    telegram_bot_token: str | None = None

    database_url: str = "sqlite:///./habitbell.db"

    # IANA zone name used for day keys and wall-clock triggers; host zone when unset
    local_timezone: str | None = None

    # When false the notification scheduler reports itself unavailable
    notifications_enabled: bool = True
    dispatch_interval_seconds: int = 30

    snooze_durations_minutes: list[int] = [5, 10, 15, 30]
    uncategorized_label: str = "Uncategorized"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
