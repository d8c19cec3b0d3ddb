"""JSON trace report for agent runs."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from agent_types import RunTrace, ToolCallRecord


class JSONReporter:
    """Generate machine-readable JSON traces."""

    def _tool_call_to_dict(self, record: ToolCallRecord) -> Dict[str, Any]:
        """Convert ToolCallRecord to JSON-serializable dict."""
        return {
            "step": record.step_index,
            "call_id": record.request.call_id,
            "tool": record.request.tool_name,
            "arguments": (
                record.request.arguments
                if record.request.arguments is not None
                else record.request.raw_arguments
            ),
            "report": record.report,
            "passed": record.passed,
            "duration_ms": round(record.duration_ms, 1),
            "timestamp": record.timestamp.isoformat() if record.timestamp else None,
        }

    def _trace_to_dict(self, trace: RunTrace) -> Dict[str, Any]:
        state = trace.state
        return {
            "task": trace.task,
            "model": trace.model,
            "result": {
                "stop_reason": state.stop_reason,
                "truncated": state.truncated,
                "steps": state.step_index,
                "error": trace.error,
                "started_at": trace.started_at.isoformat(),
                "finished_at": trace.finished_at.isoformat(),
                "duration_seconds": round(trace.duration_seconds, 2),
                "total_tool_calls": len(state.tool_calls),
                "failed_tool_calls": sum(1 for r in state.tool_calls if not r.passed),
            },
            "final_text": state.accumulated_text,
            "tool_calls": [self._tool_call_to_dict(r) for r in state.tool_calls],
        }

    def generate(self, trace: RunTrace, output_dir: Path) -> Path:
        """Write the trace for one run and return its path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = trace.started_at.strftime("%Y%m%d-%H%M%S-%f")
        target = output_dir / f"run-{timestamp}.json"

        report_data = {
            "generated_at": datetime.now().isoformat(),
            "report_version": "1.0",
            "run": self._trace_to_dict(trace),
        }

        target.write_text(json.dumps(report_data, indent=2, ensure_ascii=False), encoding="utf-8")
        return target
