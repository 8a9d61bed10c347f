from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "postgresql+asyncpg://yigyaps:yigyaps_secret@db:5432/yigyaps"
    database_pool_size: int = 10
    database_max_overflow: int = 5

    # JWT
    secret_key: str = "change_me_in_production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    token_issuer: str = "yigyaps-api"
    token_audience: str = "yigyaps-clients"

    # App
    app_name: str = "YigYaps Registry"
    debug: bool = False
    log_level: str = "INFO"

    # Advertised in /.well-known/mcp.json
    public_url: str = "https://api.yigyaps.com"

    # CORS: comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173"

    # GitHub OAuth (login exchange)
    github_client_id: str = ""
    github_client_secret: str = ""
    github_callback_url: str = "http://localhost:5173/auth/callback"

    @property
    def github_configured(self) -> bool:
        return bool(self.github_client_id and self.github_client_secret)


settings = Settings()
