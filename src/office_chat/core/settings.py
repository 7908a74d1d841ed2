"""Application settings and configuration.

This module defines all configuration options for the Office Chat service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Office Chat", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration (users and notifications)
    database_url: str = Field(default="sqlite:///./office_chat.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration for chat history, presence and pub/sub
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    redis_health_check_interval: int = Field(default=30, alias="REDIS_HEALTH_CHECK_INTERVAL")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Chat history and broadcast
    chat_history_key: str = Field(default="group_chat", alias="CHAT_HISTORY_KEY")
    chat_max_history: int = Field(default=500, alias="CHAT_MAX_HISTORY")
    chat_channel: str = Field(default="chat_messages", alias="CHAT_CHANNEL")
    chat_heartbeat_seconds: float = Field(default=30.0, alias="CHAT_HEARTBEAT_SECONDS")
    chat_rewrite_max_retries: int = Field(default=5, alias="CHAT_REWRITE_MAX_RETRIES")

    # Presence tracking
    online_users_key: str = Field(default="online_users", alias="ONLINE_USERS_KEY")
    presence_window_seconds: int = Field(default=120, alias="PRESENCE_WINDOW_SECONDS")

    # In-app notifications for new chat messages
    chat_notifications_enabled: bool = Field(default=True, alias="CHAT_NOTIFICATIONS_ENABLED")
    max_notifications_per_user: int = Field(default=20, alias="MAX_NOTIFICATIONS_PER_USER")

    # Media host (Cloudinary) for chat attachments
    cloudinary_cloud_name: str | None = Field(default=None, alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str | None = Field(default=None, alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str | None = Field(default=None, alias="CLOUDINARY_API_SECRET")
    cloudinary_folder: str = Field(default="office_management/chat", alias="CLOUDINARY_FOLDER")
    media_http_timeout_seconds: float = Field(default=30.0, alias="MEDIA_HTTP_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def media_host_configured(self) -> bool:
        """Return True when all Cloudinary credentials are present."""
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )


settings = Settings()  # type: ignore[call-arg]
