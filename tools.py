"""Tools exposed to the model: run a Playwright snippet, capture a screenshot.

Every call resolves to a single report string. Failures inside a tool become
``[FAIL]``, ``[SCREENSHOT FAILED]`` or ``[REJECTED]`` reports; only a browser
launch failure escapes, since the run cannot continue without a page.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agent_types import ToolCallRequest
from browser import BrowserSession
from exceptions import ScreenshotError, ToolArgumentError
from prompts import (
    CAPTURE_SCREENSHOT_DESCRIPTION,
    CAPTURE_SCREENSHOT_FULL_PAGE_DESCRIPTION,
    CAPTURE_SCREENSHOT_NAME_DESCRIPTION,
    RUN_ACTION_ACTION_DESCRIPTION,
    RUN_ACTION_CODE_DESCRIPTION,
    RUN_ACTION_DESCRIPTION,
)
from sandbox import execute_action_code

RUN_ACTION = "run-action"
CAPTURE_SCREENSHOT = "capture-screenshot"

DEFAULT_SCREENSHOTS_FOLDER = Path("./screenshots")


class RunActionArgs(BaseModel):
    """Arguments for ``run-action``."""

    code: str = Field(..., description=RUN_ACTION_CODE_DESCRIPTION)
    action: str = Field(..., description=RUN_ACTION_ACTION_DESCRIPTION)


class CaptureScreenshotArgs(BaseModel):
    """Arguments for ``capture-screenshot``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description=CAPTURE_SCREENSHOT_NAME_DESCRIPTION)
    full_page: bool = Field(
        default=False,
        alias="fullPage",
        description=CAPTURE_SCREENSHOT_FULL_PAGE_DESCRIPTION,
    )

    @field_validator("full_page", mode="before")
    @classmethod
    def null_means_viewport(cls, v: Any) -> Any:
        return False if v is None else v


@dataclass
class ToolSpec:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[Any], Awaitable[str]]

    def to_openai_format(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(by_alias=True),
            },
        }


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ToolRegistry:
    """Validates tool calls and runs them against the shared browser session."""

    def __init__(
        self,
        session: BrowserSession,
        screenshots_folder: str | Path = DEFAULT_SCREENSHOTS_FOLDER,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.screenshots_folder = Path(screenshots_folder)
        self.logger = logger or logging.getLogger("tools")
        self._last_timestamp = 0
        self._tools: Dict[str, ToolSpec] = {
            RUN_ACTION: ToolSpec(RUN_ACTION, RUN_ACTION_DESCRIPTION, RunActionArgs, self.run_action),
            CAPTURE_SCREENSHOT: ToolSpec(
                CAPTURE_SCREENSHOT,
                CAPTURE_SCREENSHOT_DESCRIPTION,
                CaptureScreenshotArgs,
                self.capture_screenshot,
            ),
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        """Tool declarations in Chat Completions ``tools`` format."""
        return [spec.to_openai_format() for spec in self._tools.values()]

    def validate(self, request: ToolCallRequest) -> tuple[ToolSpec, BaseModel]:
        """Resolve the tool and check its arguments. Raises ToolArgumentError."""
        spec = self._tools.get(request.tool_name)
        if spec is None:
            raise ToolArgumentError(
                f"Unknown tool '{request.tool_name}'. Available tools: {', '.join(self._tools)}",
                tool_name=request.tool_name,
            )
        if request.arguments is None:
            raise ToolArgumentError("Arguments must be a JSON object", tool_name=spec.name)
        try:
            return spec, spec.args_model.model_validate(request.arguments)
        except ValidationError as exc:
            raise ToolArgumentError(
                f"Invalid arguments: {_format_validation_error(exc)}", tool_name=spec.name
            ) from exc

    async def dispatch(self, request: ToolCallRequest) -> str:
        """Run one tool call and return its report string."""
        try:
            spec, args = self.validate(request)
        except ToolArgumentError as exc:
            self.logger.warning(f"Rejected tool call {request.tool_name!r}: {exc.message}")
            return f"[REJECTED] {request.tool_name or '<unnamed>'}: {exc.message}"
        return await spec.handler(args)

    # ─────────────────────────────────────────────────────────────────────────
    # run-action
    # ─────────────────────────────────────────────────────────────────────────

    async def run_action(self, args: RunActionArgs) -> str:
        page = await self.session.acquire()
        started = time.perf_counter()
        result = await execute_action_code(page, args.code)
        duration_ms = int((time.perf_counter() - started) * 1000)

        if result.screenshots:
            self.logger.info(f"Action captured screenshots: {', '.join(result.screenshots)}")
        if result.success:
            self.logger.info(f"[PASS] {args.action} ({duration_ms}ms)")
            return f"[PASS] {args.action} ({duration_ms}ms)\nResult: {result.value}"
        self.logger.info(f"[FAIL] {args.action} ({duration_ms}ms): {result.error}")
        return f"[FAIL] {args.action} ({duration_ms}ms)\nError: {result.error}"

    # ─────────────────────────────────────────────────────────────────────────
    # capture-screenshot
    # ─────────────────────────────────────────────────────────────────────────

    def _next_timestamp(self) -> int:
        """Epoch milliseconds, strictly increasing across calls."""
        now = int(time.time() * 1000)
        if now <= self._last_timestamp:
            now = self._last_timestamp + 1
        self._last_timestamp = now
        return now

    def screenshot_path(self, name: str) -> Path:
        safe_name = re.sub(r"[\\/]+", "-", name).strip() or "screenshot"
        return self.screenshots_folder / f"{safe_name}-{self._next_timestamp()}.png"

    async def _write_screenshot(self, page: Any, path: Path, full_page: bool) -> tuple[str, str]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            url = page.url
            title = await page.title()
            await page.screenshot(path=str(path), full_page=full_page)
        except Exception as e:
            raise ScreenshotError(str(e) or type(e).__name__, path=str(path)) from e
        return title, url

    async def capture_screenshot(self, args: CaptureScreenshotArgs) -> str:
        page = await self.session.acquire()
        path = self.screenshot_path(args.name)
        try:
            title, url = await self._write_screenshot(page, path, args.full_page)
        except ScreenshotError as exc:
            self.logger.warning(f"Screenshot failed: {exc}")
            return f"[SCREENSHOT FAILED] {exc.message}"
        self.logger.info(f"Screenshot saved to {path}")
        return f"[SCREENSHOT] {path}\nPage: {title}\nURL: {url}"
