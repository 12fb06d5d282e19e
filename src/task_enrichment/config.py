"""Configuration for the task enrichment service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration, overridable via TASK_ENRICHMENT_* variables."""

    model_config = SettingsConfigDict(env_prefix="TASK_ENRICHMENT_")

    tasks_dir: str = Field(default="tasks")
    subtasks_dir: str = Field(default="subtasks")
    claude_cli: str = Field(default="claude")
    reasoning_enabled: bool = Field(default=True)
    reasoning_model: str = Field(default="sonnet")
    cache_ttl_seconds: float | None = Field(default=4 * 60 * 60)
    challenge_seconds: int = Field(default=30, ge=1)
    challenge_title: str = Field(default="Open and write just the first line")
    max_resources: int = Field(default=3, ge=1)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
