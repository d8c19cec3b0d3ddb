"""Custom exception hierarchy for the web test agent."""
from __future__ import annotations

from typing import Any, Optional


class WebTestError(Exception):
    """Base exception for all agent-related errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Browser-related exceptions
class BrowserError(WebTestError):
    """Base exception for browser session errors."""

    pass


class SessionLaunchError(BrowserError):
    """Raised when the browser process, context or page cannot be created."""

    def __init__(self, message: str, browser_type: Optional[str] = None):
        details = {"browser_type": browser_type} if browser_type else {}
        super().__init__(message, details)
        self.browser_type = browser_type


class ScreenshotError(BrowserError):
    """Raised when a screenshot cannot be written to disk."""

    def __init__(self, message: str, path: Optional[str] = None):
        details = {"path": path} if path else {}
        super().__init__(message, details)
        self.path = path


# Tool-related exceptions
class ToolArgumentError(WebTestError):
    """Raised when a tool call names an unknown tool or carries invalid arguments."""

    def __init__(self, message: str, tool_name: Optional[str] = None):
        details = {"tool": tool_name} if tool_name else {}
        super().__init__(message, details)
        self.tool_name = tool_name


# LLM-related exceptions
class LLMError(WebTestError):
    """Base exception for LLM/model-related errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to reach the LLM service."""

    def __init__(self, message: str, base_url: Optional[str] = None):
        details = {"base_url": base_url} if base_url else {}
        super().__init__(message, details)
        self.base_url = base_url


# Configuration exceptions
class ConfigurationError(WebTestError):
    """Raised when configuration is invalid."""

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when a required config file is not found."""

    def __init__(self, file_path: str):
        super().__init__(f"Configuration file not found: {file_path}", {"file_path": file_path})
        self.file_path = file_path
