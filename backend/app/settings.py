from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings
from pydantic import Field

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+aiosqlite:///./ulti.db", alias="DATABASE_URL")
    origin: str = Field(default="", alias="ORIGIN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    persist_sessions: bool = Field(default=True, alias="PERSIST_SESSIONS")

    class Config:
        env_file = ".env"
        extra = "ignore"

    def allowed_origins(self) -> List[str]:
        """
        Splits ORIGIN by commas, dropping blanks.
        Example: "https://ulti.example, https://www.ulti.example"
        """
        return ["http://localhost:5173"] + [x.strip() for x in self.origin.split(",") if x.strip()]

    def masked_database_url(self) -> str:
        return re.sub(r"://([^:/@]+):[^@]*@", r"://\1:***@", self.database_url)

    def log_status(self) -> None:
        logger.info(
            "Settings: database=%s, persist_sessions=%s, log_level=%s",
            self.masked_database_url(),
            self.persist_sessions,
            self.log_level,
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.log_status()
    return settings


settings = get_settings()
