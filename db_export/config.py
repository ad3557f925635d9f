"""Configuration management for db-export."""

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.db-export/.env
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".db-export" / ".env"
    if user_env.exists():
        return str(user_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (PostgREST RPC) connection
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL"
    )
    supabase_service_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key"
    )

    # Direct connection
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string for direct introspection"
    )

    # Export defaults
    db_export_output_dir: str = Field(
        default="./exported_database",
        description="Default output directory for exported files"
    )
    db_export_schema: str = Field(
        default="public",
        description="Database schema to export"
    )
    db_export_page_size: int = Field(
        default=1000,
        description="Rows fetched per request when exporting table data"
    )
    db_export_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for catalog requests"
    )

    class Config:
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Settings read from an explicit .env file, or the global settings."""
    if env_file is None:
        return settings
    return Settings(_env_file=env_file)
