"""Live browser checks against example.com.

Needs Playwright browsers installed and network access. Enable with WEBTEST_LIVE=1.
"""
from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

import pytest

from agent_types import ToolCallRequest
from browser import BrowserSession
from sandbox import execute_action_code
from tools import ToolRegistry

pytestmark = pytest.mark.skipif(
    os.getenv("WEBTEST_LIVE") != "1",
    reason="set WEBTEST_LIVE=1 to run live browser tests",
)


def test_same_session_across_acquires():
    session = BrowserSession()

    async def scenario():
        try:
            first = await session.acquire()
            second = await session.acquire()
            return first is second
        finally:
            await session.release()

    assert asyncio.run(scenario()) is True
    assert session.is_live is False


def test_sandbox_navigates_and_reads_title():
    session = BrowserSession()

    async def scenario():
        try:
            page = await session.acquire()
            navigated = await execute_action_code(page, "await page.goto('https://example.com')")
            titled = await execute_action_code(page, "return await page.title()")
            broken = await execute_action_code(page, "await page.invalidMethod()")
            return navigated, titled, broken, page.url
        finally:
            await session.release()

    navigated, titled, broken, url = asyncio.run(scenario())

    assert navigated.success is True
    assert url == "https://example.com/"
    assert titled.success is True
    assert "Example Domain" in titled.value
    assert broken.success is False
    assert broken.error


def test_tools_against_example_com(temp_dir: Path):
    session = BrowserSession()
    registry = ToolRegistry(session, screenshots_folder=temp_dir / "screenshots")

    async def scenario():
        try:
            passed = await registry.dispatch(
                ToolCallRequest(
                    "c1",
                    "run-action",
                    {
                        "code": "await page.goto('https://example.com')\nreturn await page.title()",
                        "action": "Open example.com",
                    },
                )
            )
            failed = await registry.dispatch(
                ToolCallRequest(
                    "c2",
                    "run-action",
                    {"code": "await page.invalidMethod()", "action": "Call missing method"},
                )
            )
            shot = await registry.dispatch(
                ToolCallRequest("c3", "capture-screenshot", {"name": "homepage", "fullPage": False})
            )
            return passed, failed, shot
        finally:
            await session.release()

    passed, failed, shot = asyncio.run(scenario())

    assert passed.startswith("[PASS]")
    assert "Example Domain" in passed.split("Result:", 1)[1]
    assert failed.startswith("[FAIL]")
    assert failed.split("Error:", 1)[1].strip()

    match = re.search(r"(\S*homepage-\d+\.png)", shot)
    assert match
    assert Path(match.group(1)).exists()
