"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (durable dismissal state)
    database_url: str = "sqlite:///./checkout_messaging.db"

    # External Services
    merchant_config_base: str = "http://localhost:8001"

    # Service
    service_name: str = "checkout-messaging"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Messaging defaults
    default_currency: str = "USD"  # Threshold table used for unconfigured currencies
    default_locale: str = "en"
    dismissal_storage_key: str = "checkout_messaging_dismissed_banners"
    subscription_attribute_key: str = "subscription_type"
    session_store_capacity: int = 10000  # Least recently used sessions are evicted beyond this


settings = Settings()
