"""
Runtime configuration for the shop API and storefront client.

Values come from environment variables; defaults suit a local MongoDB and
the Vite dev server.
"""
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)-7s] - %(message)s"


class Settings(BaseModel):
    database_url: str = Field("mongodb://localhost:27017", description="MongoDB connection string")
    database_name: str = Field("shop", description="Database holding the shop collections")
    host: str = Field("0.0.0.0", description="Bind address for the API server")
    port: int = Field(3001, ge=1, le=65535, description="Port for the API server")
    frontend_url: Optional[str] = Field(None, description="Extra origin allowed by CORS")
    log_level: str = Field("INFO", description="Root logging level")
    api_base_url: str = Field("http://localhost:3001/api", description="Base URL used by the storefront client")

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "database_name": os.getenv("DATABASE_NAME"),
            "host": os.getenv("HOST"),
            "port": os.getenv("PORT"),
            "frontend_url": os.getenv("FRONTEND_URL") or None,
            "log_level": os.getenv("LOG_LEVEL"),
            "api_base_url": os.getenv("API_BASE_URL"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(DEFAULT_ORIGINS)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins


def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
