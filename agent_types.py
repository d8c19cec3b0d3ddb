"""Typed values exchanged between the model, the tool registry and the agent loop."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

StopReason = Literal["final_answer", "step_limit"]


@dataclass
class TextDelta:
    """A fragment of model text, delivered in emission order."""

    text: str


@dataclass
class ToolCallRequest:
    """One tool call emitted by the model during a round."""

    call_id: str
    tool_name: str
    arguments: Optional[Dict[str, Any]]
    raw_arguments: str = ""

    @classmethod
    def from_raw(cls, call_id: str, tool_name: str, raw_arguments: str) -> "ToolCallRequest":
        """Parse the JSON argument text; anything but an object leaves ``arguments`` unset."""
        try:
            parsed = json.loads(raw_arguments or "{}")
        except ValueError:
            parsed = None
        return cls(
            call_id=call_id,
            tool_name=tool_name,
            arguments=parsed if isinstance(parsed, dict) else None,
            raw_arguments=raw_arguments,
        )

    def to_openai_format(self) -> Dict[str, Any]:
        raw = self.raw_arguments
        if not raw and self.arguments is not None:
            raw = json.dumps(self.arguments)
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.tool_name, "arguments": raw},
        }


@dataclass
class ToolCallRecord:
    """A dispatched tool call and the observation it produced."""

    step_index: int
    request: ToolCallRequest
    report: str
    duration_ms: float
    timestamp: Optional[datetime] = None

    @property
    def passed(self) -> bool:
        return self.report.startswith(("[PASS]", "[SCREENSHOT]"))


@dataclass
class AgentRunState:
    """Mutable progress of a single agent run."""

    step_index: int = 0
    accumulated_text: str = ""
    done: bool = False
    stop_reason: Optional[StopReason] = None
    tool_calls: List[ToolCallRecord] = field(default_factory=list)

    @property
    def truncated(self) -> bool:
        return self.stop_reason == "step_limit"


@dataclass
class RunTrace:
    """A finished run, as written to the trace report."""

    task: str
    state: AgentRunState
    started_at: datetime
    finished_at: datetime
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
