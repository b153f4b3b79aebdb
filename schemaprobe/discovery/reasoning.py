"""Reasoning engine adapter.

Sends the discovery conversation to an OpenAI-compatible chat completion
service (DeepSeek by default) and parses the proposed action out of the reply.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from openai import APIError, AsyncOpenAI

from .errors import ActionParseError, ReasoningError, ReasoningSetupError
from .models import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER, ActionType, Message, ProposedAction
from .prompts import CONTINUE_PROMPT

logger = logging.getLogger(__name__)

REASONER_MODELS = ("deepseek-reasoner",)


class ReasoningEngine(Protocol):
    """Anything that turns a conversation into the next assistant reply."""

    async def complete(self, messages: list[Message]) -> str: ...


def parse_action(content: str) -> ProposedAction:
    """Extract the proposed action from a reasoning reply.

    The JSON object is taken from the first ``{`` to the last ``}``.

    Raises:
        ActionParseError: No JSON object, invalid JSON, or a missing or
            malformed ``action``/``body``.
    """
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ActionParseError(f"no valid JSON found in content: {content}")

    try:
        data = json.loads(content[start : end + 1])
    except json.JSONDecodeError as e:
        raise ActionParseError(f"failed to parse action: {e}") from e

    if not isinstance(data, dict):
        raise ActionParseError("action payload is not a JSON object")
    if data.get("action") is None:
        raise ActionParseError("missing 'action' field in response")
    if data.get("body") is None:
        raise ActionParseError("missing 'body' field in response")

    try:
        action = ActionType(data["action"])
    except ValueError as e:
        raise ActionParseError(f"unknown action: {data['action']!r}") from e

    body = data["body"]
    if not isinstance(body, dict):
        raise ActionParseError("'body' must be a JSON object")

    explanation = data.get("explanation")
    return ProposedAction(
        action=action,
        body=body,
        explanation=explanation if isinstance(explanation, str) else "",
    )


def reshape_for_alternation(messages: list[Message]) -> list[Message]:
    """Reorder a conversation for models that need strict turn alternation.

    System messages come first, followed by user/assistant turns that
    alternate, start with user and end with user. Consecutive user turns are
    merged and a filler user turn is injected wherever an assistant turn would
    otherwise follow an assistant turn or end the sequence.
    """
    system = [m for m in messages if m.role == ROLE_SYSTEM]
    turns: list[Message] = []

    for message in messages:
        if message.role == ROLE_SYSTEM:
            continue
        if message.role == ROLE_USER:
            if turns and turns[-1].role == ROLE_USER:
                turns[-1] = Message(ROLE_USER, f"{turns[-1].content}\n\n{message.content}")
            else:
                turns.append(Message(ROLE_USER, message.content))
        elif message.role == ROLE_ASSISTANT:
            if not turns or turns[-1].role == ROLE_ASSISTANT:
                turns.append(Message(ROLE_USER, CONTINUE_PROMPT))
            turns.append(Message(ROLE_ASSISTANT, message.content))

    if not turns or turns[-1].role == ROLE_ASSISTANT:
        turns.append(Message(ROLE_USER, CONTINUE_PROMPT))

    return [*system, *turns]


class DeepSeekReasoningEngine:
    """Chat completion client for the discovery conversation.

    Provides:
    - OpenAI-compatible chat completions (DeepSeek base URL by default)
    - Turn reshaping for reasoner models
    - Setup and call errors mapped onto the discovery taxonomy
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "deepseek-reasoner",
        base_url: str = "https://api.deepseek.com",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 120.0,
        strict_alternation: bool | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize reasoning engine.

        Args:
            api_key: Service API key
            model: Chat model identifier
            base_url: OpenAI-compatible API base URL
            temperature: Sampling temperature
            max_tokens: Completion token limit
            timeout: Request timeout in seconds
            strict_alternation: Force turn reshaping; None decides by model
            client: Preconfigured client (tests)

        Raises:
            ReasoningSetupError: No API key and no client supplied
        """
        if client is None and not api_key:
            raise ReasoningSetupError("DEEPSEEK_API_KEY environment variable is not set")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.strict_alternation = (
            model in REASONER_MODELS if strict_alternation is None else strict_alternation
        )
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> DeepSeekReasoningEngine:
        """Build an engine from the ``reasoning`` config section."""
        return cls(
            api_key=config.get("api_key"),
            model=config.get("model", "deepseek-reasoner"),
            base_url=config.get("base_url", "https://api.deepseek.com"),
            temperature=config.get("temperature", 0.7),
            max_tokens=config.get("max_tokens", 1000),
            timeout=config.get("timeout_seconds", 120),
            strict_alternation=config.get("strict_alternation"),
        )

    def prepare_messages(self, messages: list[Message]) -> list[dict[str, str]]:
        if self.strict_alternation:
            messages = reshape_for_alternation(messages)
        return [m.to_dict() for m in messages]

    async def complete(self, messages: list[Message]) -> str:
        """Request the next assistant reply.

        Raises:
            ReasoningError: API failure or empty completion
        """
        payload = self.prepare_messages(messages)
        logger.info("Sending completion request with %d messages to %s", len(payload), self.model)

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=False,
            )
        except APIError as e:
            logger.exception("Reasoning API error")
            raise ReasoningError(f"reasoning API error: {e}") from e

        if not response.choices:
            raise ReasoningError("no completion choices returned")

        content = response.choices[0].message.content or ""
        logger.debug("Reasoning reply:\n%s", content)
        return content
