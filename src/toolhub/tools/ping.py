"""Connectivity check tool."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from toolhub.models import ToolCategory, ToolMetadata, ToolPriority
from toolhub.tools.base import BaseTool


def ping_metadata(name: str = "ping") -> ToolMetadata:
	return ToolMetadata(
		name=name,
		description="Check that the MCP server is running and report how many tools it serves.",
		category=ToolCategory.SYSTEM,
		subcategory="health",
		priority=ToolPriority.CRITICAL,
		tags=("ping", "health", "check", "diagnostics"),
		is_helper=True,
	)


class PingTool(BaseTool):
	METADATA = ping_metadata()

	def __init__(
		self,
		server_name: str,
		version: str,
		tool_count: int | None = None,
		metadata: ToolMetadata | None = None,
	) -> None:
		super().__init__(metadata)
		self._server_name = server_name
		self._version = version
		self._tool_count = tool_count

	async def run(self, params: Any) -> dict[str, Any]:
		result: dict[str, Any] = {
			"status": "ok",
			"server": self._server_name,
			"version": self._version,
			"timestamp": datetime.now(timezone.utc).isoformat(),
		}
		if self._tool_count is not None:
			result["tools"] = self._tool_count
		return result
