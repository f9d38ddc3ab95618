# checkin/core/config.py
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _default_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url and url.strip():
        return url
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return f"sqlite:///{os.path.join(data_dir, 'checkin.db')}"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))

    # códigos curtos exibidos pelo organizador
    CODE_LENGTH: int = Field(default_factory=lambda: int(os.getenv("CODE_LENGTH", "6")))
    CODE_GENERATION_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("CODE_GENERATION_ATTEMPTS", "10")))
    MAX_SESSION_HOURS: int = Field(default_factory=lambda: int(os.getenv("MAX_SESSION_HOURS", "24")))

    RECONCILE_BATCH_SIZE: int = Field(default_factory=lambda: int(os.getenv("RECONCILE_BATCH_SIZE", "100")))

    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))


settings = Settings()
