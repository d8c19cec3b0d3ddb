"""Configuration module for the web test agent."""
from config.models import (
    AgentConfig,
    BrowserConfig,
    ReportingConfig,
    WebTestConfig,
    load_config,
)

__all__ = [
    "AgentConfig",
    "BrowserConfig",
    "ReportingConfig",
    "WebTestConfig",
    "load_config",
]
