import logging

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process settings for the store backend, read from ``KV_ENTITY_*`` environment variables."""

    store_url: str = Field(default="memory://", description="memory:// or any SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log SQL statements emitted by the SQLAlchemy store")
    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "KV_ENTITY_"}


def configure_logging(settings: Settings) -> None:
    logging.getLogger("kv_entity_framework").setLevel(settings.log_level.upper())
