from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 3002

    # Directory the bundled front-end is served from
    STATIC_DIR: str = "."

    MAX_BODY_SIZE: int = 50 * 1024 * 1024
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    BIGQUERY_LOCATION: Optional[str] = None
    QUERY_TIMEOUT: Optional[float] = None
    DEFAULT_PAGE_SIZE: int = 100

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
