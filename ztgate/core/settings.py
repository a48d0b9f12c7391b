"""Gateway settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_TOKEN_TTL_DEFAULT = 3600
PORT_DEFAULT = 8000
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432

CONFIG_URL_DEFAULT = (
    "https://raw.githubusercontent.com/co-cddo/zerotrust-cloud-identity"
    "/refs/heads/main/shared_config/hosts.yaml"
)
ACCESS_CERTS_URL_DEFAULT = (
    "https://access-testing.cloudflareaccess.com/cdn-cgi/access/certs"
)


class DatabaseSettings(BaseSettings):
    """Key-value store connection settings."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "ztgate"
    password: str = "ztgate"
    database: str = "ztgate"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Return the explicit URL, or build an async PostgreSQL one."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class GatewaySettings(BaseSettings):
    """Routing, identity and signing settings."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    config_url: str = CONFIG_URL_DEFAULT
    access_certs_url: str = ACCESS_CERTS_URL_DEFAULT
    key_prefix: str = "zerotrust"
    signing_key_encryption_key: str = ""
    identity_cookie_name: str = "CF_Authorization"
    identity_header_name: str = "cf-access-jwt-assertion"
    app_token_ttl: int = APP_TOKEN_TTL_DEFAULT
    log_level: str = "INFO"
    log_json: bool = True
    cors_origins: str = ""
    host: str = "127.0.0.1"
    port: int = PORT_DEFAULT

    @property
    def key_set_storage_key(self) -> str:
        """Store key under which the signing key set is persisted."""
        return f"{self.key_prefix}_keys"

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
