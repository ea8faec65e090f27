"""Tool contract and registry.

A tool is declared once (name, description, parameters) and that
declaration is rendered two ways:

* ``Tool.schema()``       — the declarative ``{name, description,
  parameters: [{name, type, required}]}`` listing exposed by the API.
* ``Tool.model_schema()`` — the JSON-Schema tool definition bound to the
  chat model so it knows when and how to call the tool.

Handlers never raise to the caller: ``ToolRegistry.execute`` turns a
missing required argument or any handler exception into a
``ToolResult(success=False, ...)`` with a localized message.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from saathi.errors import UnknownTool
from saathi.services.metrics import metrics

logger = logging.getLogger(__name__)

# Shown when a handler blows up; the exception detail stays in the logs.
TOOL_FAILURE_MESSAGE = (
    "माफ़ करना, यह कार्य अभी पूरा नहीं हो सका। कृपया थोड़ी देर बाद फिर से प्रयास करें। "
    "(Sorry, this request could not be completed right now. Please try again later.)"
)

# Best-effort fallback for lookups whose inputs match no known data.
NO_INFORMATION_MESSAGE = (
    "माफ़ करना, इस अनुरोध के लिए अभी कोई जानकारी उपलब्ध नहीं है। "
    "(Sorry, no information is available for this request.)"
)


class ToolParameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "string"
    description: str = ""
    required: bool = False
    enum: tuple[str, ...] | None = None


class ToolResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    reference_id: str | None = Field(default=None, serialization_alias="referenceId")


class ToolCallRequest(BaseModel):
    """A model's request to run one tool (transient, never persisted as-is)."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Tool(ABC):
    """Base class for every model-invocable tool."""

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {"name": p.name, "type": p.type, "required": p.required}
                for p in self.parameters
            ],
        }

    def model_schema(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for p in self.parameters:
            prop: dict[str, Any] = {"type": p.type, "description": p.description}
            if p.enum:
                prop["enum"] = list(p.enum)
            properties[p.name] = prop
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": {
                "type": "object",
                "properties": properties,
                "required": [p.name for p in self.parameters if p.required],
            },
        }

    def missing_arguments(self, arguments: Mapping[str, Any]) -> list[str]:
        """Names of required parameters that are absent or blank."""
        return [
            p.name for p in self.parameters
            if p.required and _is_blank(arguments.get(p.name))
        ]

    def missing_arguments_message(self, missing: list[str]) -> str:
        names = ", ".join(missing)
        return (
            f"आवश्यक जानकारी गुम है: {names}। कृपया यह जानकारी दें। "
            f"(Required fields missing: {names}.)"
        )

    @abstractmethod
    def execute(self, arguments: Mapping[str, Any]) -> ToolResult:
        """Run the tool.  Called only once required arguments are present."""


class ToolRegistry:
    """Name → tool mapping, in registration order."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        return [t.schema() for t in self._tools.values()]

    def model_schemas(self) -> list[dict[str, Any]]:
        return [t.model_schema() for t in self._tools.values()]

    def execute(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        """Validate and run *name*.  Only ``UnknownTool`` can escape."""
        tool = self.get(name)
        arguments = dict(arguments or {})

        missing = tool.missing_arguments(arguments)
        if missing:
            logger.info("Tool %s rejected: missing %s", name, missing)
            return ToolResult(success=False, message=tool.missing_arguments_message(missing))

        t0 = time.perf_counter()
        try:
            result = tool.execute(arguments)
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "tool", name, error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.exception("Tool %s raised; reporting failure to the model", name)
            return ToolResult(success=False, message=TOOL_FAILURE_MESSAGE)

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("tool", name, latency_ms=elapsed)
        logger.debug("Tool %s finished in %.0fms (success=%s)", name, elapsed, result.success)
        return result
