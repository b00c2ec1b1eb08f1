"""
Configuration models for taskweave.

Supports configuration via YAML file, environment variables, or programmatic setup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskweave.models.tasks import MAX_PARALLEL_TASKS


class RunnerConfig(BaseModel):
    """Subprocess execution configuration."""

    command: list[str] = Field(
        default_factory=lambda: ["pi"],
        description="Agent executable and any fixed leading arguments",
    )
    max_parallel_tasks: int = Field(
        default=MAX_PARALLEL_TASKS,
        ge=1,
        le=32,
        description="Maximum tasks accepted by chain and parallel requests",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum subprocesses running at once in parallel mode",
    )
    kill_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Seconds between SIGTERM and SIGKILL on abort",
    )
    temp_prefix: str = Field(
        default="taskweave-fork-",
        description="Prefix for forked session temp directories",
    )

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: list[str]) -> list[str]:
        if not value or not value[0].strip():
            raise ValueError("command must name an executable")
        return value


class DisplayConfig(BaseModel):
    """Limits applied to user-visible text."""

    skill_list_limit: int = Field(
        default=30,
        ge=1,
        description="Skill names listed in unknown-skill errors",
    )
    preview_length: int = Field(
        default=100,
        ge=10,
        description="Characters of output shown per task in parallel summaries",
    )
    collapsed_item_count: int = Field(
        default=10,
        ge=1,
        description="Recent tool calls shown per task in the live view",
    )


class SkillsConfig(BaseModel):
    """Skill lookup configuration for the CLI."""

    paths: list[str] = Field(
        default_factory=lambda: ["./.pi/skills", "~/.pi/agent/skills"],
        description="Directories scanned for <name>/SKILL.md",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level"
    )
    file: str | None = Field(
        default=None,
        description="Log file path (None = console only)"
    )
    json_format: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )


class TaskweaveConfig(BaseSettings):
    """
    Main taskweave configuration.

    Configuration can be loaded from:
    1. YAML file (taskweave.yaml or config.yaml)
    2. Environment variables (TASKWEAVE_* prefix)
    3. Programmatic setup
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKWEAVE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "TaskweaveConfig":
        """
        Load configuration from file and environment.

        Priority (highest to lowest):
        1. Specified config file, or the first default file found
           (taskweave.yaml, config.yaml)
        2. Environment variables
        3. Default values
        """
        config_data: dict = {}

        if config_path:
            config_file = Path(config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"Config file not found: {config_file}")
            config_data = cls._load_yaml(config_file)
        else:
            for filename in ["taskweave.yaml", "config.yaml", "taskweave.yml", "config.yml"]:
                config_file = Path(filename)
                if config_file.exists():
                    config_data = cls._load_yaml(config_file)
                    break

        return cls(**config_data)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        """Load YAML configuration file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if data else {}

    def save(self, path: str | Path) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def skill_dirs(self) -> list[Path]:
        """Configured skill directories with ``~`` expanded."""
        return [Path(p).expanduser() for p in self.skills.paths]
