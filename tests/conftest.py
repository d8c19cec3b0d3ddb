"""Pytest fixtures for web test agent tests."""
from __future__ import annotations

import copy
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from llm import ChatModel
from tools import ToolRegistry


class FakePage:
    """Stands in for playwright's async Page with the handful of calls the tests use."""

    def __init__(self, url: str = "about:blank", title: str = "Example Domain"):
        self.url = url
        self._title = title
        self.visited: List[str] = []
        self.filled: List[tuple] = []
        self.screenshot_calls: List[Dict[str, Any]] = []
        self.screenshot_error: Optional[Exception] = None

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.url = url
        self.visited.append(url)

    async def fill(self, selector: str, value: str, **kwargs: Any) -> None:
        self.filled.append((selector, value))

    async def title(self) -> str:
        return self._title

    async def text_content(self, selector: str) -> str:
        return self._title

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False, **kwargs: Any) -> bytes:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshot_calls.append({"path": path, "full_page": full_page})
        data = b"\x89PNG\r\n\x1a\nfake"
        if path:
            Path(path).write_bytes(data)
        return data


class FakeSession:
    """Session manager double: hands out one FakePage and counts calls."""

    def __init__(self, page: Optional[FakePage] = None, launch_error: Optional[Exception] = None):
        self.page = page or FakePage()
        self.launch_error = launch_error
        self.acquire_count = 0
        self.release_count = 0

    async def acquire(self) -> FakePage:
        if self.launch_error is not None:
            raise self.launch_error
        self.acquire_count += 1
        return self.page

    async def release(self) -> None:
        self.release_count += 1


class ScriptedModel(ChatModel):
    """Replays a fixed list of rounds; each round is a list of events."""

    def __init__(self, rounds: List[List[Any]]):
        self.rounds = list(rounds)
        self.calls: List[List[Dict[str, Any]]] = []
        self.tools: List[Dict[str, Any]] = []

    async def stream_round(self, messages, tools):
        self.calls.append(copy.deepcopy(messages))
        self.tools = tools
        events = self.rounds.pop(0) if self.rounds else []
        for event in events:
            yield event


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage(url="https://example.com/")


@pytest.fixture
def fake_session(fake_page: FakePage) -> FakeSession:
    return FakeSession(fake_page)


@pytest.fixture
def make_session():
    """Factory for sessions with custom pages or launch failures."""
    return FakeSession


@pytest.fixture
def make_model():
    """Factory for scripted chat models."""
    return ScriptedModel


@pytest.fixture
def registry(fake_session: FakeSession, temp_dir: Path) -> ToolRegistry:
    return ToolRegistry(fake_session, screenshots_folder=temp_dir / "screenshots")
