"""Application configuration, read from the environment and an optional .env file."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Every option maps to the upper-case environment variable named in its alias."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Service
    app_name: str = Field(default="Osteocenter API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    # Web client
    webapp_url: str = Field(
        default="http://localhost:3000",
        alias="WEBAPP_URL",
        description="Base URL of the web app; post sign-in redirects must stay on its origin",
    )
    main_app_path: str = Field(default="/event-types", alias="MAIN_APP_PATH")
    auth_error_path: str = Field(default="/auth/error", alias="AUTH_ERROR_PATH")
    cors_origins_str: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    # Sign in
    self_hosted: bool = Field(
        default=False,
        alias="SELF_HOSTED",
        description="Allow a new provider to join an existing user with the same verified email",
    )
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    facebook_client_id: str = Field(default="", alias="FACEBOOK_CLIENT_ID")
    firebase_credentials_path: str | None = Field(default=None, alias="FIREBASE_CREDENTIALS_PATH")
    firebase_config_json: str | None = Field(default=None, alias="FIREBASE_CONFIG_JSON")

    # Session tokens
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(default=30, alias="REFRESH_TOKEN_EXPIRE_DAYS")

    # Storage
    database_url: str = Field(..., alias="DATABASE_URL")
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Public availability endpoints, requests per client per minute
    rate_limit_per_minute: int = Field(default=60, alias="RATE_LIMIT_PER_MINUTE")

    # Licensing and billing
    license_key: str = Field(default="", alias="LICENSE_KEY")
    license_api_url: str = Field(default="https://console.cal.com/api/license", alias="LICENSE_API_URL")
    license_cache_ttl: int = Field(default=3600, alias="LICENSE_CACHE_TTL")
    premium_usernames_str: str = Field(default="", alias="PREMIUM_USERNAMES")

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.cors_origins_str)

    @property
    def premium_usernames(self) -> set[str]:
        """Usernames reserved for the premium tier, lower-cased."""
        return {name.lower() for name in _split_csv(self.premium_usernames_str)}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
