from functools import lru_cache
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

ECB_DAILY_FEED_URL = "https://www.ecb.europa.eu/stats/eurofxref/eurofxref-daily.xml"


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, PORT,
    ECB_FEED_URL, RATES_FRESH_WINDOW_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "FX Gateway"
    debug: bool = False
    version: str = "0.1.0"
    port: int = 3000

    # Upstream feed
    # Allowed: 'ecb' (live daily feed), 'static' (bundled sample feed, offline dev)
    exchange_rate_provider: str = "ecb"
    ecb_feed_url: AnyHttpUrl = ECB_DAILY_FEED_URL  # type: ignore[assignment]
    http_timeout_seconds: float = 10.0

    # Exchange rates / caching
    rates_fresh_window_seconds: int = 8 * 60 * 60
    rates_stale_window_seconds: int = 48 * 60 * 60
    rates_max_attempts: int = 3
    rates_retry_backoff_seconds: float = 1.0
    coalesce_refreshes: bool = True

    def init_post_load(self) -> None:
        """Validate cross-field constraints."""
        allowed = {"ecb", "static"}
        if self.exchange_rate_provider not in allowed:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. Allowed: {allowed}"
            )
        if self.rates_max_attempts < 1:
            raise ValueError("rates_max_attempts must be at least 1")
        if self.rates_stale_window_seconds < self.rates_fresh_window_seconds:
            raise ValueError(
                "rates_stale_window_seconds must not be shorter than rates_fresh_window_seconds"
            )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
