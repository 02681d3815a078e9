from pydantic_settings import BaseSettings
from typing import List
from pydantic import field_validator
import json


class Settings(BaseSettings):
    app_name: str = "Habitflow"
    host: str = "127.0.0.1"
    port: int = 8000

    # Storage
    database_url: str = "sqlite:///./habitflow.db"
    store_backend: str = "database"  # database, json
    json_store_path: str = "./habitflow.json"

    # Recurrence horizon
    horizon_days: int = 30

    # Scheduling: the refresh job fires in this zone and "today" is taken from it
    timezone: str = "America/New_York"
    horizon_refresh_hour: int = 0
    horizon_refresh_minute: int = 5
    scheduler_enabled: bool = True

    # Logging
    log_level: str = "INFO"

    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_prefix = "HABITFLOW_"

    @field_validator("store_backend")
    @classmethod
    def _check_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("database", "json"):
            raise ValueError("store_backend must be 'database' or 'json'")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """Allow CORS_ORIGINS to be provided as JSON array or comma-separated string."""
        if isinstance(v, str):
            sv = v.strip()
            if not sv:
                return []
            if sv.startswith("["):
                try:
                    parsed = json.loads(sv)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            # Fallback: comma-separated
            return [s.strip() for s in sv.split(",") if s.strip()]
        return v


settings = Settings()
