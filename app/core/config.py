from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "practice-records-api"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    JWT_SECRET: str = "change_me"

    CORS_ORIGINS: str = "http://localhost:3000"

    DEFAULT_PAGE_SIZE: int = 10
    # Collation applied to text columns in filters and sorting, e.g. "C" on PostgreSQL
    # for ordinal comparison. Empty keeps the column collation.
    QUERY_TEXT_COLLATION: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def query_text_collation(self) -> str | None:
        return self.QUERY_TEXT_COLLATION.strip() or None

settings = Settings()
