"""Pydantic configuration models for the web test agent."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from exceptions import ConfigFileNotFoundError, ConfigurationError


# Load .env file if present
load_dotenv()


class AgentConfig(BaseModel):
    """LLM agent configuration."""

    model: str = Field(
        default="gpt-oss-120b",
        description="Model name to use for the LLM",
    )
    base_url: str = Field(
        default="https://api.cerebras.ai/v1",
        description="Base URL of the OpenAI-compatible API endpoint",
    )
    api_key: str = Field(
        default="",
        description="API key for the LLM service",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperature for model generation",
    )
    max_steps: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum number of tool-calling rounds per run",
    )
    max_tokens: int = Field(
        default=4096,
        ge=256,
        le=32768,
        description="Maximum tokens per model round",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url doesn't have trailing slash."""
        return v.rstrip("/")

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: Any) -> Any:
        """Load values from environment variables if not explicitly set."""
        if not isinstance(data, dict):
            return data
        env_mapping = {
            "base_url": "WEBTEST_BASE_URL",
            "api_key": "WEBTEST_API_KEY",
            "model": "WEBTEST_MODEL",
        }
        for field_name, env_var in env_mapping.items():
            if field_name not in data or data[field_name] is None:
                env_value = os.getenv(env_var)
                if env_value:
                    data[field_name] = env_value
        return data


class BrowserConfig(BaseModel):
    """Browser session configuration."""

    browser: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use",
    )
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    viewport_width: int = Field(
        default=1280,
        ge=320,
        le=3840,
        description="Browser viewport width",
    )
    viewport_height: int = Field(
        default=720,
        ge=240,
        le=2160,
        description="Browser viewport height",
    )
    slow_mo: int = Field(
        default=0,
        ge=0,
        le=5000,
        description="Slow down browser operations by this many ms",
    )


class ReportingConfig(BaseModel):
    """Screenshot and run trace output configuration."""

    screenshots_folder: Path = Field(
        default=Path("./screenshots"),
        description="Directory for screenshots captured by the agent",
    )
    reports_folder: Path = Field(
        default=Path("./reports"),
        description="Directory for run traces",
    )
    save_trace: bool = Field(
        default=True,
        description="Write a JSON trace of every run",
    )

    @field_validator("screenshots_folder", "reports_folder", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v


class WebTestConfig(BaseModel):
    """Root configuration model combining all config sections."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    verbose: bool = Field(
        default=False,
        description="Enable verbose logging",
    )


def load_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> WebTestConfig:
    """
    Load configuration from file with CLI overrides.

    Priority (highest to lowest):
    1. CLI arguments
    2. Config file
    3. Environment variables
    4. Defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = Path("config.json")
        if not config_path.exists():
            config_path = None
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigFileNotFoundError(str(config_path))

    if config_path is not None:
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                if config_path.suffix in {".yaml", ".yml"}:
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)
            except (ValueError, yaml.YAMLError) as exc:
                raise ConfigurationError(
                    f"Could not parse config file: {exc}", {"file_path": str(config_path)}
                ) from exc

    config = WebTestConfig.model_validate(config_data)

    if cli_overrides:
        config_dict = config.model_dump()
        _apply_overrides(config_dict, cli_overrides)
        config = WebTestConfig.model_validate(config_dict)

    return config


def _apply_overrides(config_dict: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Apply CLI overrides to config dictionary."""
    override_mapping = {
        "browser": ("browser", "browser"),
        "headless": ("browser", "headless"),
        "max_steps": ("agent", "max_steps"),
        "model": ("agent", "model"),
        "base_url": ("agent", "base_url"),
        "save_trace": ("reporting", "save_trace"),
        "verbose": ("verbose", None),
    }

    for key, value in overrides.items():
        if value is None:
            continue

        if key == "headful":
            if value:
                config_dict["browser"]["headless"] = False
            continue

        mapping = override_mapping.get(key)
        if mapping:
            section, field = mapping
            if field is None:
                config_dict[section] = value
            else:
                config_dict[section][field] = value
