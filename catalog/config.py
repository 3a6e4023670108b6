from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "Vehicle Catalog"
    APP_ENV:  str = "development"
    APP_DEBUG: bool = True
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 3000

    # ─── Store ─────────────────────────────────────────────────────────────────
    STORE_BACKEND: str = "database"     # database | json

    DATABASE_URL:          str  = "sqlite:///./catalog.db"
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False
    DATABASE_AUTO_CREATE:  bool = True

    JSON_STORE_PATH: str = "data/vehicles.json"

    ID_ALLOCATION_RETRIES: int = 5
    LIST_DEGRADE_ON_STORE_ERROR: bool = False

    # ─── Images ────────────────────────────────────────────────────────────────
    UPLOAD_DIR:            str  = "uploads"
    UPLOAD_URL_PREFIX:     str  = "/uploads"
    PERSIST_INLINE_IMAGES: bool = True
    MAX_IMAGES_PER_VEHICLE: int = 5

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "*"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
