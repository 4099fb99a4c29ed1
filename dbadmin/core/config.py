from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./dbadmin.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # Create the declared tables on startup (no migrations are run)
    CREATE_TABLES: bool = True

    # "declared" browses the models in dbadmin.core.models,
    # "reflected" browses whatever the live database contains
    SCHEMA_SOURCE: Literal["declared", "reflected"] = "declared"

    # Column names the database browser fills in automatically
    IDENTITY_COLUMN: str = "id"
    CREATED_AT_COLUMN: str = "created_at"
    UPDATED_AT_COLUMN: str = "updated_at"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
