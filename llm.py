"""Streaming chat model adapter for OpenAI-compatible endpoints."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from agent_types import TextDelta, ToolCallRequest
from exceptions import LLMConnectionError, LLMError

ModelEvent = Union[TextDelta, ToolCallRequest]


class ChatModel(ABC):
    """One streamed model round per call."""

    @abstractmethod
    def stream_round(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> AsyncIterator[ModelEvent]:
        """Yield text deltas as they arrive, then the round's tool calls in order."""
        pass


class OpenAIChatModel(ChatModel):
    """Chat Completions client with streaming and function calling."""

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        client: Optional[AsyncOpenAI] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.logger = logger or logging.getLogger("llm")
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2.0, min=2.0, max=10),
        retry=retry_if_exception_type(LLMConnectionError),
        reraise=True,
    )
    async def _open_stream(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> Any:
        """Start a streamed completion, retrying transient connection failures."""
        create_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        if tools:
            create_kwargs["tools"] = tools
        try:
            return await self.client.chat.completions.create(**create_kwargs)
        except (openai.APIConnectionError, openai.RateLimitError) as e:
            self.logger.warning(f"Model endpoint unavailable, will retry: {e}")
            raise LLMConnectionError(f"Model call failed: {e}", base_url=self.base_url) from e
        except Exception as e:
            raise LLMError(f"Model call failed: {e}") from e

    async def stream_round(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> AsyncIterator[ModelEvent]:
        stream = await self._open_stream(messages, tools)
        pending: Dict[int, Dict[str, str]] = {}

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue
                if delta.content:
                    yield TextDelta(delta.content)
                for fragment in delta.tool_calls or []:
                    slot = pending.setdefault(
                        fragment.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if fragment.id:
                        slot["id"] = fragment.id
                    if fragment.function is not None:
                        if fragment.function.name:
                            slot["name"] += fragment.function.name
                        if fragment.function.arguments:
                            slot["arguments"] += fragment.function.arguments
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Model stream failed: {e}") from e

        for index in sorted(pending):
            slot = pending[index]
            yield ToolCallRequest.from_raw(
                call_id=slot["id"] or f"call_{index}",
                tool_name=slot["name"],
                raw_arguments=slot["arguments"],
            )
