"""Model gateway: the only module that talks to the LLM backends.

Two backends are wrapped:

  1. **chat model**       — tool-capable model (``MODEL_NAME``).  Receives
                            the system prompt, the history window, the new
                            message, and the tool schemas.  May answer with
                            text or with a single tool request.
  2. **completion model** — plain model (``FAST_MODEL_NAME``).  Receives the
                            raw message only; no tools, no history.

Protocol for a tool turn::

    response = gateway.converse(history, message, tools)   # -> tool_call
    result   = registry.execute(...)
    answer   = gateway.resume(response.context, result)     # -> text

Every backend failure, timeout, or malformed reply is raised as
``ModelUnavailable``.  The gateway never hands back an empty string.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from typing import Any, NamedTuple

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.runnables import Runnable

from saathi.config import (
    ANTHROPIC_API_KEY,
    FAST_MODEL_NAME,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    MODEL_TIMEOUT_SECONDS,
)
from saathi.errors import ModelRateLimited, ModelUnavailable
from saathi.prompts import get_system_prompt
from saathi.services.metrics import metrics
from saathi.store import Message, Role
from saathi.tools.base import ToolCallRequest, ToolResult

logger = logging.getLogger(__name__)


class ToolCallContext(NamedTuple):
    """Everything ``resume`` needs to pair a tool result with its request."""

    messages: list[BaseMessage]
    tool_call: ToolCallRequest
    llm: Runnable


class ModelResponse(NamedTuple):
    """Either ``text`` or ``tool_call`` (with its ``context``) is set."""

    text: str | None = None
    tool_call: ToolCallRequest | None = None
    context: ToolCallContext | None = None


# ── LLM builders ────────────────────────────────────────────────────


def _build_llm() -> ChatAnthropic:
    """Build the tool-capable chat model (tools are bound per call)."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=MODEL_MAX_TOKENS,
        timeout=MODEL_TIMEOUT_SECONDS,
        max_retries=2,
    )


def _build_fast_llm() -> ChatAnthropic:
    """Build the plain completion model (no tools)."""
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.3,
        max_tokens=MODEL_MAX_TOKENS,
        timeout=MODEL_TIMEOUT_SECONDS,
        max_retries=2,
    )


# ── Message conversion ──────────────────────────────────────────────


def extract_text(content: Any) -> str:
    """Flatten a message ``content`` (string or list of blocks) to text."""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts).strip()
    return ""


def to_langchain_history(history: Sequence[Message]) -> list[BaseMessage]:
    """Convert stored messages to chat messages for the model.

    Tool-role messages are left out: the assistant reply that followed
    them already states their outcome.  Leading assistant turns are
    dropped because the window must open on a user turn.
    """
    converted: list[BaseMessage] = []
    for msg in history:
        if msg.role is Role.USER:
            converted.append(HumanMessage(content=msg.content))
        elif msg.role is Role.ASSISTANT and converted:
            converted.append(AIMessage(content=msg.content))
    return converted


def _is_rate_limited(exc: Exception) -> bool:
    """True for HTTP 429 or quota exhaustion reported by the backend client."""
    if getattr(exc, "status_code", None) == 429:
        return True
    text = str(exc).lower()
    return "429" in text or "quota" in text or "rate limit" in text


# ── Gateway ─────────────────────────────────────────────────────────


class ModelGateway:
    """Wraps the chat and completion models behind one failure contract."""

    def __init__(self, chat_llm: Any = None, completion_llm: Any = None):
        self._chat_llm = chat_llm if chat_llm is not None else _build_llm()
        self._completion_llm = (
            completion_llm if completion_llm is not None else _build_fast_llm()
        )

    def _invoke(self, llm: Any, messages: list[BaseMessage], operation: str) -> AIMessage:
        t0 = time.perf_counter()
        try:
            response = llm.invoke(messages)
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "anthropic", operation,
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.warning("Model %s failed after %.0fms: %s", operation, elapsed, exc)
            if _is_rate_limited(exc):
                raise ModelRateLimited(f"{operation} rate limited") from exc
            raise ModelUnavailable(f"{operation} failed: {type(exc).__name__}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if not isinstance(response, AIMessage):
            metrics.record_failure(
                "anthropic", operation, error_type="MalformedResponse", latency_ms=elapsed,
            )
            raise ModelUnavailable(f"{operation} returned {type(response).__name__}")
        metrics.record_success("anthropic", operation, latency_ms=elapsed)
        logger.debug("Model %s responded in %.0fms", operation, elapsed)
        return response

    def converse(
        self,
        history: Sequence[Message],
        new_message: str,
        tools: Sequence[dict[str, Any]] = (),
    ) -> ModelResponse:
        """Ask the model to answer *new_message* given *history*.

        With an empty *tools* list the plain completion model is used.
        """
        if not tools:
            return ModelResponse(text=self.complete(new_message))

        messages: list[BaseMessage] = [
            SystemMessage(content=get_system_prompt()),
            *to_langchain_history(history),
            HumanMessage(content=new_message),
        ]
        llm = self._chat_llm.bind_tools(list(tools))
        response = self._invoke(llm, messages, "chat_invoke")

        tool_calls = getattr(response, "tool_calls", None) or []
        if tool_calls:
            if len(tool_calls) > 1:
                logger.warning(
                    "Model requested %d tool calls; only %r will run",
                    len(tool_calls), tool_calls[0].get("name"),
                )
            call = tool_calls[0]
            request = ToolCallRequest(
                tool_name=call["name"],
                arguments=dict(call.get("args") or {}),
                call_id=call.get("id"),
            )
            # Re-emit the request with only the honoured call so every
            # tool_use block sent back has a matching tool result.
            ai_message = AIMessage(
                content=extract_text(response.content),
                tool_calls=[call],
            )
            context = ToolCallContext([*messages, ai_message], request, llm)
            return ModelResponse(tool_call=request, context=context)

        text = extract_text(response.content)
        if not text:
            raise ModelUnavailable("chat_invoke returned neither text nor a tool call")
        return ModelResponse(text=text)

    def resume(self, context: ToolCallContext, result: ToolResult) -> str:
        """Feed *result* back to the model and return its final answer."""
        payload = json.dumps(result.model_dump(by_alias=True), ensure_ascii=False)
        messages = [
            *context.messages,
            ToolMessage(
                content=payload,
                tool_call_id=context.tool_call.call_id or context.tool_call.tool_name,
                name=context.tool_call.tool_name,
            ),
        ]
        response = self._invoke(context.llm, messages, "chat_resume")
        if getattr(response, "tool_calls", None):
            logger.warning("Model asked for another tool after a tool result; ignoring it")

        text = extract_text(response.content)
        if not text:
            raise ModelUnavailable("chat_resume returned no text")
        return text

    def complete(self, message: str) -> str:
        """Plain completion: the raw message in, text out."""
        response = self._invoke(
            self._completion_llm, [HumanMessage(content=message)], "completion_invoke",
        )
        text = extract_text(response.content)
        if not text:
            raise ModelUnavailable("completion_invoke returned no text")
        return text
