from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "StaffHub"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str

    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # WebSocket session cleanup settings
    WS_CLEANUP_INTERVAL: int = 60  # Run cleanup every 60 seconds
    WS_SESSION_TIMEOUT: int = 1800  # 30 minutes without any frame from the client
    WS_ENABLE_HEARTBEAT: bool = True

    # Chat limits
    MESSAGE_PREVIEW_LENGTH: int = 100
    MAX_MESSAGE_LENGTH: int = 5000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
