#config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
    # Application Settings
    APP_NAME: str = "Image Compression API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # CORS Settings (accept comma-separated strings to avoid JSON parsing in env)
    ALLOWED_ORIGINS: str = "*"

    # File Upload Settings
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    DEFAULT_EXTENSION: str = "jpg"

    # Storage Settings
    STORAGE_ROOT: str = "public"
    UPLOAD_SUBDIR: str = "uploads"
    COMPRESSED_SUBDIR: str = "compressed"
    DB_FILE: str = "db.json"

    # Compression gateway (TinyPNG / Tinify)
    TINYPNG_API_KEY: str = ""
    TINIFY_API_URL: str = "https://api.tinify.com"
    GATEWAY_TIMEOUT_SECONDS: Optional[float] = None  # unset: no timeout

    # Middleware settings
    GZIP_MIN_SIZE: int = 500  # bytes

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def upload_dir(self) -> str:
        return os.path.join(self.STORAGE_ROOT, self.UPLOAD_SUBDIR)

    @property
    def compressed_dir(self) -> str:
        return os.path.join(self.STORAGE_ROOT, self.COMPRESSED_SUBDIR)

    @property
    def gateway_configured(self) -> bool:
        return bool(self.TINYPNG_API_KEY.strip())


@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings: Settings = get_settings()
