"""Run model-supplied Playwright snippets against the live page.

The snippet is compiled as the body of an ``async def`` whose only parameter
is ``page``. Whatever happens inside, the caller gets an
``ActionExecutionResult`` back; exceptions never leave ``execute_action_code``.
"""
from __future__ import annotations

import ast
import asyncio
import dataclasses
import json
import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Any, List, Optional

NO_RETURN_VALUE = "Code executed successfully"

_ENTRYPOINT = "__webtest_action__"
_ACTION_FILENAME = "<action>"

logger = logging.getLogger("sandbox")


@dataclass
class ActionExecutionResult:
    """Outcome of one sandboxed snippet."""

    success: bool
    value: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    screenshots: List[str] = field(default_factory=list)


class RecordingPage:
    """Page wrapper that remembers every screenshot written to a path.

    All other attributes are forwarded to the wrapped page untouched.
    """

    def __init__(self, page: Any):
        self._page = page
        self.screenshots: List[str] = []

    async def screenshot(self, *args: Any, **kwargs: Any) -> bytes:
        data = await self._page.screenshot(*args, **kwargs)
        path = kwargs.get("path")
        if path:
            self.screenshots.append(str(path))
        return data

    def __getattr__(self, name: str) -> Any:
        return getattr(self._page, name)

    def __repr__(self) -> str:
        return f"RecordingPage({self._page!r})"


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return str(value)


def serialize_result(value: Any) -> str:
    """Render a snippet's return value for the tool report.

    Containers are pretty-printed as JSON. Anything the encoder chokes on
    (circular or very deep structures, leaves whose ``str`` raises) falls
    back to ``repr``, so rendering never fails.
    """
    if value is None:
        return NO_RETURN_VALUE
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (dict, list, tuple, set, frozenset)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        try:
            return json.dumps(value, indent=2, default=_json_default, ensure_ascii=False)
        except Exception as exc:
            logger.debug(f"Falling back to repr for unserializable result: {exc}")
            return _safe_text(value, repr)
    return _safe_text(value, str)


def _safe_text(value: Any, render: Any) -> str:
    try:
        return render(value)
    except Exception:
        return object.__repr__(value)


def _describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {message}" if message else name


def _compile_action(code: str) -> Any:
    # Parsed statements go straight into the function node; the source text
    # is never re-indented, so string literals keep their exact contents.
    body = textwrap.dedent(code).strip("\n")
    statements = ast.parse(body, filename=_ACTION_FILENAME, mode="exec").body
    tree = ast.parse(f"async def {_ENTRYPOINT}(page):\n    pass\n", filename=_ACTION_FILENAME)
    if statements:
        tree.body[0].body = statements
    ast.fix_missing_locations(tree)
    namespace: dict[str, Any] = {"asyncio": asyncio, "json": json, "re": re}
    exec(compile(tree, _ACTION_FILENAME, "exec"), namespace)
    return namespace[_ENTRYPOINT]


async def execute_action_code(page: Any, code: str) -> ActionExecutionResult:
    """Run ``code`` with ``page`` in scope and capture its return value."""
    recorder = RecordingPage(page)
    try:
        action = _compile_action(code)
        value = serialize_result(await action(recorder))
    except Exception as exc:
        logger.debug(f"Action failed: {_describe_error(exc)}")
        return ActionExecutionResult(
            success=False,
            error=_describe_error(exc),
            error_type=type(exc).__name__,
            screenshots=list(recorder.screenshots),
        )
    return ActionExecutionResult(
        success=True,
        value=value,
        screenshots=list(recorder.screenshots),
    )
