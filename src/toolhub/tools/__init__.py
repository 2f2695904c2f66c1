"""Tools served by toolhub."""

from __future__ import annotations

from toolhub.tools.base import BaseTool, ToolDefinition, ToolResult
from toolhub.tools.ping import PingTool
from toolhub.tools.search_tools import SearchToolsTool

__all__ = [
	"BaseTool",
	"PingTool",
	"SearchToolsTool",
	"ToolDefinition",
	"ToolResult",
]
