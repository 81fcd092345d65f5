from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="counselbook", alias="POSTGRES_DB")
    postgres_user: str = Field(default="counselbook", alias="POSTGRES_USER")
    postgres_password: str = Field(default="counselbook", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    service_api_token: str = Field(default="", alias="SERVICE_API_TOKEN")

    notifier_url: str = Field(default="", alias="NOTIFIER_URL")
    notifier_timeout: float = Field(default=10.0, alias="NOTIFIER_TIMEOUT")

    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")
    reminder_poll_minutes: int = Field(default=5, alias="REMINDER_POLL_MINUTES")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
