from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URL")
    mongodb_db_name: str = Field(default="groupforge", alias="MONGODB_DB_NAME")
    mongodb_server_selection_timeout_ms: int = Field(
        default=5000, alias="MONGODB_SERVER_SELECTION_TIMEOUT_MS"
    )

    # Application Settings
    app_name: str = Field(default="GroupForge", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")

    # CORS Configuration
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000", alias="ALLOWED_ORIGINS"
    )

    # Firebase Configuration
    firebase_credentials_path: Optional[str] = Field(
        default="./firebase-credentials.json", alias="FIREBASE_CREDENTIALS_PATH"
    )
    firebase_credentials_base64: Optional[str] = Field(
        default=None, alias="FIREBASE_CREDENTIALS_BASE64"
    )

    # Redis Configuration (roster cache)
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    redis_db: int = Field(default=0, alias="REDIS_DB")
    roster_cache_ttl_seconds: int = Field(default=300, alias="ROSTER_CACHE_TTL_SECONDS")

    # Group Formation
    default_group_size: int = Field(default=4, alias="DEFAULT_GROUP_SIZE")
    max_group_size: int = Field(default=6, alias="MAX_GROUP_SIZE")
    default_algorithm: str = Field(default="balanced_skills", alias="DEFAULT_ALGORITHM")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
