"""Generative model clients.

Both models are reached through the OpenAI SDK against OpenAI-compatible
endpoints:

- ToolCallingModel: structured function/tool calls for the control loop
  (xAI Grok by default, GROK_API_KEY).
- LongFormModel: one-shot long-form generation for the brief synthesizer
  (Gemini through Google's OpenAI-compatible endpoint by default,
  GOOGLE_GEMINI_API_KEY).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from openai import OpenAI

from .config import Settings

logger = logging.getLogger(__name__)

ToolChoice = Union[str, Dict[str, Any]]


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str  # raw JSON text as produced by the model


@dataclass(frozen=True)
class ModelTurn:
    """One assistant turn: free text, tool calls, or both."""

    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        """Assistant message in chat-completions format for the transcript."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


def forced_tool_choice(tool_name: str) -> Dict[str, Any]:
    return {"type": "function", "function": {"name": tool_name}}


class ToolCallingModel:
    """Chat-completions model offered the tool registry each turn."""

    def __init__(
        self,
        model: str,
        client: Optional[Any] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.model = model
        self.client = client or OpenAI(
            api_key=api_key or os.getenv("GROK_API_KEY"),
            base_url=base_url,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ToolCallingModel":
        return cls(model=settings.tool_model, base_url=settings.tool_base_url)

    def complete(
        self,
        messages: Sequence[Dict[str, Any]],
        tools: Sequence[Dict[str, Any]],
        tool_choice: ToolChoice = "auto",
    ) -> ModelTurn:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=list(messages),
            tools=list(tools),
            tool_choice=tool_choice,
        )
        choice = response.choices[0]
        message = choice.message

        calls: List[ToolCall] = []
        for tc in message.tool_calls or []:
            if getattr(tc, "type", "function") != "function":
                continue
            calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}"))

        logger.debug(
            "Model turn: finish_reason=%s tool_calls=%s",
            choice.finish_reason,
            [c.name for c in calls],
        )
        return ModelTurn(content=message.content, tool_calls=calls, finish_reason=choice.finish_reason)


class LongFormModel:
    """Single-prompt text generation used to draft content briefs."""

    def __init__(
        self,
        model: str,
        client: Optional[Any] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.model = model
        self.client = client or OpenAI(
            api_key=api_key or os.getenv("GOOGLE_GEMINI_API_KEY"),
            base_url=base_url,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "LongFormModel":
        return cls(model=settings.longform_model, base_url=settings.longform_base_url)

    def generate(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""
