from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Album fetching
    fetch_timeout: float = 15.0  # seconds per attempt
    fetch_max_attempts: int = 5  # first try + 4 retries
    fetch_retry_backoff: float = 1.0  # exponential backoff multiplier (seconds)
    fetch_user_agent: str = "Mozilla/5.0 (compatible; PhotoFrame/0.1)"

    # Cache
    database_url: str = "sqlite+aiosqlite:///./photoframe.db"
    cache_ttl_seconds: int = 3600
    alias_ttl_seconds: int = 7 * 24 * 3600

    # Health monitoring / alerting
    alert_webhook_url: str = ""  # empty = monitor inert
    health_window_size: int = 100
    health_min_samples: int = 20
    health_failure_threshold: float = 0.10
    health_cooldown_seconds: int = 3600
    health_state_ttl_seconds: int = 24 * 3600
    alert_cooldown_on_failed_dispatch: bool = False

    # Display
    eink_width: int = 800
    eink_height: int = 480
    thumbnail_width: int = 400
    thumbnail_height: int = 300
    default_album_name: str = "Google Photos Shared Album"

    # Brightness analysis (optional)
    brightness_api_url: str = ""  # e.g. "https://image-insights.gohk.uk"
    brightness_timeout: float = 1.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
