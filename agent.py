"""Step-bounded tool-calling loop that drives a web test through the model."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from agent_types import AgentRunState, TextDelta, ToolCallRecord, ToolCallRequest
from llm import ChatModel
from prompts import SYSTEM_PROMPT
from tools import ToolRegistry

DEFAULT_MAX_STEPS = 20

AgentEvent = Union[TextDelta, ToolCallRequest, ToolCallRecord]


class WebTestAgent:
    """Alternates model rounds with tool dispatch until a final answer or the step bound.

    ``stream`` is the ordered channel to the caller: text fragments as the
    model emits them, each tool request right before it runs and its record
    right after. Tool calls from one round run one at a time, in the order
    the model asked for them, and the next round starts only after all of
    them have produced an observation.
    """

    def __init__(
        self,
        model: ChatModel,
        tools: ToolRegistry,
        instructions: str = SYSTEM_PROMPT,
        max_steps: int = DEFAULT_MAX_STEPS,
        logger: Optional[logging.Logger] = None,
    ):
        if max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {max_steps}")
        self.model = model
        self.tools = tools
        self.instructions = instructions
        self.max_steps = max_steps
        self.logger = logger or logging.getLogger("webtest_agent")
        self.state = AgentRunState()

    def _initial_messages(self, task: str) -> List[Dict[str, Any]]:
        return [
            {"role": "system", "content": self.instructions},
            {"role": "user", "content": task},
        ]

    async def stream(self, task: str) -> AsyncIterator[AgentEvent]:
        """Run the task, yielding events as they happen."""
        state = AgentRunState()
        self.state = state
        messages = self._initial_messages(task)
        tool_schemas = self.tools.schemas()

        while not state.done:
            self.logger.info(f"Step {state.step_index + 1}/{self.max_steps}")
            round_text: List[str] = []
            requests: List[ToolCallRequest] = []

            async for event in self.model.stream_round(list(messages), tool_schemas):
                if isinstance(event, TextDelta):
                    if not event.text:
                        continue
                    state.accumulated_text += event.text
                    round_text.append(event.text)
                    yield event
                else:
                    requests.append(event)

            if not requests:
                state.done = True
                state.stop_reason = "final_answer"
                break

            messages.append(
                {
                    "role": "assistant",
                    "content": "".join(round_text) or None,
                    "tool_calls": [r.to_openai_format() for r in requests],
                }
            )

            for request in requests:
                yield request
                started = time.perf_counter()
                report = await self.tools.dispatch(request)
                record = ToolCallRecord(
                    step_index=state.step_index,
                    request=request,
                    report=report,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    timestamp=datetime.now(),
                )
                state.tool_calls.append(record)
                messages.append(
                    {"role": "tool", "tool_call_id": request.call_id, "content": report}
                )
                yield record

            state.step_index += 1
            if state.step_index >= self.max_steps:
                state.done = True
                state.stop_reason = "step_limit"
                self.logger.warning(
                    f"Reached the step limit ({self.max_steps}) without a final answer"
                )

        self.logger.info(
            f"Run finished after {state.step_index} step(s): {state.stop_reason}, "
            f"{len(state.tool_calls)} tool call(s)"
        )

    async def run(self, task: str) -> str:
        """Run the task to completion and return all text the model produced."""
        async for _ in self.stream(task):
            pass
        return self.state.accumulated_text
