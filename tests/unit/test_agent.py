"""Unit tests for the agent loop."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List

import pytest

from agent import DEFAULT_MAX_STEPS, WebTestAgent
from agent_types import TextDelta, ToolCallRecord, ToolCallRequest
from exceptions import LLMError, SessionLaunchError
from llm import ChatModel
from tools import ToolRegistry


def tool_call(call_id: str, action: str, code: str = "return 1") -> ToolCallRequest:
    return ToolCallRequest(
        call_id=call_id,
        tool_name="run-action",
        arguments={"code": code, "action": action},
    )


class RecordingRegistry:
    """Tool registry double that records dispatch order and overlap."""

    def __init__(self):
        self.dispatched: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def schemas(self) -> List[Dict[str, Any]]:
        return [{"type": "function", "function": {"name": "run-action", "parameters": {}}}]

    async def dispatch(self, request: ToolCallRequest) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.dispatched.append(request.call_id)
        self.in_flight -= 1
        return f"[PASS] {request.arguments['action']} (1ms)\nResult: ok"


class EndlessToolModel(ChatModel):
    """Asks for another tool call every round, forever."""

    def __init__(self):
        self.rounds = 0

    async def stream_round(self, messages, tools):
        index = self.rounds
        self.rounds += 1
        yield TextDelta(f"step {index} ")
        yield tool_call(f"call_{index}", f"action {index}")


class FailingModel(ChatModel):
    async def stream_round(self, messages, tools):
        yield TextDelta("partial ")
        raise LLMError("Model stream failed: connection reset")


async def collect(agent: WebTestAgent, task: str) -> list:
    return [event async for event in agent.stream(task)]


class TestFinalAnswer:
    """Runs that end with an answer from the model."""

    def test_no_tool_calls_finishes_immediately(self, make_model):
        model = make_model([[TextDelta("All "), TextDelta("good.")]])
        registry = RecordingRegistry()
        agent = WebTestAgent(model, registry)

        result = asyncio.run(agent.run("check the homepage"))

        assert result == "All good."
        assert agent.state.done is True
        assert agent.state.stop_reason == "final_answer"
        assert agent.state.truncated is False
        assert agent.state.step_index == 0
        assert registry.dispatched == []

    def test_initial_conversation(self, make_model):
        model = make_model([[TextDelta("done")]])
        agent = WebTestAgent(model, RecordingRegistry(), instructions="You test websites.")
        asyncio.run(agent.run("open example.com"))

        assert model.calls[0] == [
            {"role": "system", "content": "You test websites."},
            {"role": "user", "content": "open example.com"},
        ]
        assert model.tools[0]["function"]["name"] == "run-action"

    def test_tool_round_then_answer(self, make_model):
        model = make_model(
            [
                [TextDelta("Opening. "), tool_call("call_a", "Open page")],
                [TextDelta("PASSED")],
            ]
        )
        registry = RecordingRegistry()
        agent = WebTestAgent(model, registry)

        result = asyncio.run(agent.run("task"))

        assert result == "Opening. PASSED"
        assert registry.dispatched == ["call_a"]
        assert agent.state.step_index == 1
        assert len(model.calls) == 2

        second_round = model.calls[1]
        assert second_round[2]["role"] == "assistant"
        assert second_round[2]["content"] == "Opening. "
        assert second_round[2]["tool_calls"][0]["id"] == "call_a"
        assert second_round[3] == {
            "role": "tool",
            "tool_call_id": "call_a",
            "content": "[PASS] Open page (1ms)\nResult: ok",
        }

    def test_tool_only_round_has_no_assistant_text(self, make_model):
        model = make_model([[tool_call("call_a", "Open page")], [TextDelta("ok")]])
        asyncio.run(WebTestAgent(model, RecordingRegistry()).run("task"))

        assert model.calls[1][2]["content"] is None


class TestToolDispatch:
    """Ordering guarantees for tool calls within a round."""

    def test_calls_run_in_request_order_one_at_a_time(self, make_model):
        model = make_model(
            [
                [tool_call("call_1", "first"), tool_call("call_2", "second"), tool_call("call_3", "third")],
                [TextDelta("done")],
            ]
        )
        registry = RecordingRegistry()
        agent = WebTestAgent(model, registry)
        asyncio.run(agent.run("task"))

        assert registry.dispatched == ["call_1", "call_2", "call_3"]
        assert registry.max_in_flight == 1
        observations = [m["tool_call_id"] for m in model.calls[1] if m["role"] == "tool"]
        assert observations == ["call_1", "call_2", "call_3"]
        assert agent.state.step_index == 1

    def test_records_kept_in_state(self, make_model):
        model = make_model([[tool_call("call_1", "first")], [tool_call("call_2", "second")], []])
        agent = WebTestAgent(model, RecordingRegistry())
        asyncio.run(agent.run("task"))

        records = agent.state.tool_calls
        assert [r.request.call_id for r in records] == ["call_1", "call_2"]
        assert [r.step_index for r in records] == [0, 1]
        assert all(r.passed for r in records)
        assert all(r.timestamp is not None for r in records)

    def test_event_order(self, make_model):
        request = tool_call("call_1", "first")
        model = make_model([[TextDelta("a"), request], [TextDelta("b")]])
        events = asyncio.run(collect(WebTestAgent(model, RecordingRegistry()), "task"))

        assert isinstance(events[0], TextDelta)
        assert events[1] is request
        assert isinstance(events[2], ToolCallRecord)
        assert events[2].request is request
        assert isinstance(events[3], TextDelta)


class TestStepBound:
    """Termination when the model never stops calling tools."""

    def test_default_bound(self):
        model = EndlessToolModel()
        registry = RecordingRegistry()
        agent = WebTestAgent(model, registry)

        result = asyncio.run(agent.run("loop forever"))

        assert DEFAULT_MAX_STEPS == 20
        assert model.rounds == 20
        assert len(registry.dispatched) == 20
        assert result == "".join(f"step {i} " for i in range(20))
        assert agent.state.stop_reason == "step_limit"
        assert agent.state.truncated is True
        assert agent.state.done is True

    def test_custom_bound(self):
        model = EndlessToolModel()
        agent = WebTestAgent(model, RecordingRegistry(), max_steps=3)
        asyncio.run(agent.run("loop"))

        assert model.rounds == 3
        assert agent.state.step_index == 3

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            WebTestAgent(EndlessToolModel(), RecordingRegistry(), max_steps=0)


class TestStreaming:
    """The text channel and the returned text agree."""

    def test_streamed_text_equals_result(self, make_model):
        rounds = [
            [TextDelta("Step one. "), tool_call("c1", "one")],
            [TextDelta(""), TextDelta("Step two. "), tool_call("c2", "two")],
            [TextDelta("Verdict: "), TextDelta("PASSED")],
        ]
        agent = WebTestAgent(make_model(rounds), RecordingRegistry())
        events = asyncio.run(collect(agent, "task"))
        streamed = "".join(e.text for e in events if isinstance(e, TextDelta))

        assert streamed == "Step one. Step two. Verdict: PASSED"
        assert streamed == agent.state.accumulated_text
        assert all(e.text for e in events if isinstance(e, TextDelta))

        result = asyncio.run(WebTestAgent(make_model(rounds), RecordingRegistry()).run("task"))
        assert result == streamed

    def test_state_resets_between_runs(self, make_model):
        model = make_model([[TextDelta("first")], [TextDelta("second")]])
        agent = WebTestAgent(model, RecordingRegistry())

        assert asyncio.run(agent.run("a")) == "first"
        assert asyncio.run(agent.run("b")) == "second"
        assert agent.state.accumulated_text == "second"


class TestFailures:
    """Fatal errors abort the run."""

    def test_model_error_propagates(self):
        agent = WebTestAgent(FailingModel(), RecordingRegistry())

        with pytest.raises(LLMError):
            asyncio.run(agent.run("task"))
        assert agent.state.accumulated_text == "partial "
        assert agent.state.done is False

    def test_session_launch_error_propagates(self, make_model, make_session, temp_dir: Path):
        session = make_session(launch_error=SessionLaunchError("chromium missing"))
        registry = ToolRegistry(session, screenshots_folder=temp_dir)
        model = make_model([[tool_call("c1", "open")], [TextDelta("never")]])

        with pytest.raises(SessionLaunchError):
            asyncio.run(WebTestAgent(model, registry).run("task"))
        assert len(model.calls) == 1

    def test_failing_action_is_an_observation(self, make_model, registry: ToolRegistry):
        model = make_model(
            [
                [tool_call("c1", "Call missing method", code="await page.invalid_method()")],
                [TextDelta("FAILED")],
            ]
        )
        agent = WebTestAgent(model, registry)
        result = asyncio.run(agent.run("task"))

        assert result == "FAILED"
        report = agent.state.tool_calls[0].report
        assert report.startswith("[FAIL] Call missing method")
        assert agent.state.tool_calls[0].passed is False


class TestWithToolRegistry:
    """End to end through the real registry and sandbox against a fake page."""

    def test_title_scenario(self, make_model, registry: ToolRegistry, fake_page):
        code = "await page.goto('https://example.com')\nreturn await page.title()"
        model = make_model(
            [
                [tool_call("c1", "Open example.com and read title", code=code)],
                [ToolCallRequest("c2", "capture-screenshot", {"name": "homepage"})],
                [TextDelta("PASSED")],
            ]
        )
        agent = WebTestAgent(model, registry)
        asyncio.run(agent.run("Check example.com title"))

        first, second = agent.state.tool_calls
        assert first.report.startswith("[PASS]")
        assert "Result: Example Domain" in first.report
        assert second.report.startswith("[SCREENSHOT] ")
        assert fake_page.visited == ["https://example.com"]
