"""Model-invocable tools and the registry that dispatches them."""

from __future__ import annotations

from saathi.catalog import ServiceRepository
from saathi.tools.agriculture import AgricultureTool
from saathi.tools.base import Tool, ToolCallRequest, ToolParameter, ToolRegistry, ToolResult
from saathi.tools.complaint import ComplaintTool
from saathi.tools.nearby import NearbyServiceTool
from saathi.tools.schemes import SchemeEducationTool

__all__ = [
    "AgricultureTool",
    "ComplaintTool",
    "NearbyServiceTool",
    "SchemeEducationTool",
    "Tool",
    "ToolCallRequest",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
]


def build_default_registry(services: ServiceRepository) -> ToolRegistry:
    """All tools the assistant ships with, complaint filing first."""
    return ToolRegistry(
        [
            ComplaintTool(services),
            NearbyServiceTool(),
            AgricultureTool(),
            SchemeEducationTool(),
        ]
    )
