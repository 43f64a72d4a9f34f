from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str
    telegram_webhook_secret: str = ""  # Optional: for webhook verification
    trigger_prefix: str = "!runcrew"

    # Task runner API (receives query_post + webhook)
    api_endpoint: str

    # Webhook capture service (webhook.site token)
    webhook_id: str
    capture_base_url: str = "https://webhook.site"

    # Environment
    environment: str = "development"

    # Scheduling
    poll_interval_seconds: int = 60
    stale_notice_seconds: int = 60
    pending_ttl_minutes: int = 60
    expiry_sweep_seconds: int = 300

    # Delivery bookkeeping
    processed_ids_max: int = 1000
    processed_ids_keep: int = 500

    # Reply chunk size (Telegram hard limit is 4096)
    max_message_chars: int = 1900

    http_timeout_seconds: float = 60.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def webhook_url(self) -> str:
        """URL the task runner posts its results to."""
        return f"{self.capture_base_url.rstrip('/')}/{self.webhook_id}"

    @property
    def webhook_fetch_url(self) -> str:
        """Inspection URL listing captured deliveries, newest first."""
        return f"{self.capture_base_url.rstrip('/')}/token/{self.webhook_id}/requests?sorting=newest"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
