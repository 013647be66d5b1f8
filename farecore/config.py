from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Amadeus (primary provider)
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"

    # Skyscanner (secondary provider)
    skyscanner_api_key: str = ""
    skyscanner_base_url: str = "https://partners.api.skyscanner.net/apiservices"

    # Upstream requests
    api_timeout_seconds: float = 30.0
    token_refresh_margin_seconds: int = 60

    # Response cache
    cache_ttl_seconds: int = 300  # 5 minutes
    cache_max_size: int = 1000

    # Rate limiting (per provider)
    rate_limit_rpm: int = 100
    rate_limit_rph: int = 5000

    # Flight store (Redis)
    redis_url: str = "redis://localhost:6379/0"
    flight_store_enabled: bool = True
    flight_store_ttl_seconds: int = 15 * 60
    redis_timeout_seconds: float = 2.0
    redis_reconnect_interval_seconds: float = 30.0

    # Price monitoring
    price_monitor_interval_minutes: int = 30
    price_history_size: int = 48  # ~24h at 30 minute cadence
    alert_drop_threshold: float = 50.0
    alert_rise_threshold: float = 100.0
    alert_ttl_days: int = 7

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    return Settings()
