import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_DIR / "data"


class Settings(BaseSettings):
    data_path: Path = Field(DATA_DIR / "userData.json", alias="FACTORY_HEALTH_DATA_PATH")
    history_limit: int = Field(10, ge=0, alias="FACTORY_HEALTH_HISTORY_LIMIT")
    host: str = Field("127.0.0.1", alias="FACTORY_HEALTH_HOST")
    port: int = Field(3001, alias="FACTORY_HEALTH_PORT")
    api_url: str = Field("http://localhost:3001", alias="FACTORY_HEALTH_API_URL")
    client_timeout: float = Field(10.0, gt=0, alias="FACTORY_HEALTH_CLIENT_TIMEOUT")
    cache_dir: Path = Field(Path.home() / ".factory_health" / "cache", alias="FACTORY_HEALTH_CACHE_DIR")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
