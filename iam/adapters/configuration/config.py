# iam/adapters/configuration/config.py

import json
from typing import Annotated, Optional, List, Union
from logging import getLevelName
from pydantic import field_validator, model_validator, ConfigDict
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Environment
    ENVIRONMENT: str = "development"  # "development", "production", "testing"
    DEBUG: bool = False

    # Database
    DB_DRIVER: str = "asyncpg"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "iam"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None

    # Auth
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:8000", "http://127.0.0.1:8000"]

    # API Documentation
    SCHEMA_VISIBILITY: bool = True

    # Audit
    AUDIT_LOG_LIMIT: int = 1000

    # Initial administrator created by the seed
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@iam-backend.dev"
    ADMIN_PASSWORD: str = "admin123"

    @model_validator(mode="after")
    def assemble_db_url(self):
        if self.DATABASE_URL:
            return self

        self.DATABASE_URL = (
            f"postgresql+{self.DB_DRIVER}://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )
        return self

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """
        A CSV string (e.g. 'a,b,c') becomes a list.
        Lists and JSON arrays are returned as they are.
        """
        if isinstance(v, str) and not v.startswith("["):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, str):
            return json.loads(v)
        if isinstance(v, list):
            return v
        raise ValueError(f"Invalid CORS_ORIGINS: {v!r}")

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Make sure the value is a valid logging level"""
        lvl = v.upper()
        if not isinstance(getLevelName(lvl), int):
            raise ValueError(f"Invalid LOG_LEVEL: {v!r}")
        return lvl

    @property
    def is_sqlite(self) -> bool:
        return str(self.DATABASE_URL).startswith("sqlite")

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
