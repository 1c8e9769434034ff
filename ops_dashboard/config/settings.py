"""
Operations Dashboard
Centralized Configuration Management

Pydantic settings for every upstream the dashboard reads from, plus the
serving, cache and logging knobs. Each section reads its own environment
prefix so deployments can configure sources independently.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommerceSettings(BaseSettings):
    """E-commerce platform (orders, customers) Configuration"""

    model_config = SettingsConfigDict(env_prefix="COMMERCE_")

    base_url: str = Field(default="http://localhost:9000", description="Commerce backend URL")
    api_token: Optional[SecretStr] = Field(default=None, description="Admin API token")
    page_size: int = Field(default=100, description="Page size for paginated listings")
    timeout_seconds: float = Field(default=30.0, description="Request timeout")

    @property
    def auth_headers(self) -> dict:
        if self.api_token is None:
            return {}
        return {"Authorization": f"Bearer {self.api_token.get_secret_value()}"}


class EventsSettings(BaseSettings):
    """Behavioral event store Configuration"""

    model_config = SettingsConfigDict(env_prefix="EVENTS_")

    api_url: str = Field(default="http://localhost:4000", description="Events backend URL")
    api_key: SecretStr = Field(default=SecretStr(""), description="Events API key")
    timeout_seconds: float = Field(default=20.0, description="Request timeout")


class GA4Settings(BaseSettings):
    """Google Analytics 4 Data API Configuration"""

    model_config = SettingsConfigDict(env_prefix="GA4_")

    property_id: Optional[str] = Field(default=None, description="GA4 property id")
    access_token: Optional[SecretStr] = Field(default=None, description="OAuth access token")
    api_url: str = Field(default="https://analyticsdata.googleapis.com/v1beta", description="Data API base URL")
    timeout_seconds: float = Field(default=20.0, description="Request timeout")

    @property
    def is_configured(self) -> bool:
        return bool(self.property_id and self.access_token)


class MetaSettings(BaseSettings):
    """Meta Ads (Graph API) Configuration"""

    model_config = SettingsConfigDict(env_prefix="META_")

    ad_account_id: Optional[str] = Field(default=None, description="Ad account id, e.g. act_123")
    access_token: Optional[SecretStr] = Field(default=None, description="Graph API access token")
    graph_api_version: str = Field(default="v22.0", description="Graph API version")
    api_url: str = Field(default="https://graph.facebook.com", description="Graph API base URL")
    timeout_seconds: float = Field(default=20.0, description="Request timeout")

    @property
    def is_configured(self) -> bool:
        return bool(self.ad_account_id and self.access_token)

    @property
    def base_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/{self.graph_api_version}"


class ProxySettings(BaseSettings):
    """Back-office service proxies (picking, resellers, campaigns, email)"""

    model_config = SettingsConfigDict(env_prefix="PROXY_")

    picking_url: str = Field(default="http://localhost:5000", description="Picking backend URL")
    picking_api_key: SecretStr = Field(default=SecretStr(""), description="Picking API key")
    resellers_url: str = Field(default="http://localhost:7000", description="Reseller backend URL")
    resellers_api_key: SecretStr = Field(default=SecretStr(""), description="Reseller API key")
    campaigns_url: str = Field(default="http://localhost:6000", description="Campaign backend URL")
    campaigns_api_key: SecretStr = Field(default=SecretStr(""), description="Campaign API key")
    email_url: str = Field(default="http://localhost:6100", description="Email marketing backend URL")
    email_api_key: SecretStr = Field(default=SecretStr(""), description="Email marketing API key")
    timeout_seconds: float = Field(default=30.0, description="Request timeout")

    @property
    def services(self) -> List[str]:
        """Names of the proxied services"""
        return ["picking", "resellers", "campaigns", "email"]

    def target(self, service: str) -> tuple:
        """Base URL and API key for a proxied service"""
        if service not in self.services:
            raise KeyError(service)
        url = getattr(self, f"{service}_url")
        key = getattr(self, f"{service}_api_key")
        return url.rstrip("/"), key.get_secret_value()


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    enabled: bool = Field(default=False, description="Enable response caching")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class DashboardSettings(BaseSettings):
    """Aggregation and presentation defaults"""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    timezone: str = Field(default="America/Argentina/Buenos_Aires", description="Display timezone for day bucketing")
    default_range_days: int = Field(default=30, description="Default date range in days")
    default_customer_group: str = Field(default="Minorista", description="Group for customers without one")
    currency: str = Field(default="ARS", description="Display currency")
    abandoned_sample_size: int = Field(default=5, description="Recent abandoned checkouts on the overview")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="ops-dashboard", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Subsystem configurations
    commerce: CommerceSettings = Field(default_factory=CommerceSettings)
    events: EventsSettings = Field(default_factory=EventsSettings)
    ga4: GA4Settings = Field(default_factory=GA4Settings)
    meta: MetaSettings = Field(default_factory=MetaSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
