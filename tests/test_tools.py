"""Tests for the tool base class and the built-in tools."""

from __future__ import annotations

import json
from typing import Any

import pytest
from pydantic import BaseModel, Field

from toolhub.composition import build_registry, prefixed
from toolhub.config import ToolhubConfig
from toolhub.models import ToolCategory, ToolMetadata
from toolhub.registry import DuplicateToolError, ToolRegistration, ToolRegistry
from toolhub.tools import PingTool, SearchToolsTool
from toolhub.tools.base import (
	CONSENT_WARNING,
	BaseTool,
	ToolResult,
	build_definition,
	build_tool_name,
	error_result,
	schema_from_model,
	success_result,
)


class _CreateParams(BaseModel):
	title: str = Field(description="Task title")
	priority: int = Field(default=0, ge=0, le=5)


class _CreateTaskTool(BaseTool):
	METADATA = ToolMetadata(
		name="create_task",
		description="Create a task.",
		category=ToolCategory.TASKS,
		subcategory="write",
		requires_explicit_user_consent=True,
	)
	PARAMS_MODEL = _CreateParams

	async def run(self, params: _CreateParams) -> dict[str, Any]:
		return {"title": params.title, "priority": params.priority}


class TestHelpers:
	def test_build_tool_name(self) -> None:
		assert build_tool_name("fr_", "ping") == "fr_ping"
		assert build_tool_name("fr_", "fr_ping") == "fr_ping"
		assert build_tool_name("", "ping") == "ping"

	def test_success_result(self) -> None:
		result = success_result({"a": 1})
		assert not result.is_error
		assert json.loads(result.to_text()) == {"success": True, "data": {"a": 1}}

	def test_error_result(self) -> None:
		result = error_result("Failed", ValueError("bad"), tool="x")
		assert result.is_error
		assert result.payload == {"success": False, "message": "Failed", "error": "bad", "tool": "x"}

	def test_to_text_handles_non_json_values(self) -> None:
		from datetime import date

		text = ToolResult(payload={"when": date(2024, 1, 2)}).to_text()
		assert json.loads(text) == {"when": "2024-01-02"}

	def test_schema_from_model_drops_title(self) -> None:
		schema = schema_from_model(_CreateParams)
		assert "title" not in schema
		assert schema["required"] == ["title"]
		assert schema["properties"]["priority"]["maximum"] == 5

	def test_empty_schema(self) -> None:
		assert schema_from_model(None) == {"type": "object", "properties": {}}


class TestBaseTool:
	def test_definition_has_consent_prefix(self) -> None:
		definition = _CreateTaskTool().definition()
		assert definition.name == "create_task"
		assert definition.description == CONSENT_WARNING + "Create a task."
		assert definition.to_dict()["inputSchema"]["required"] == ["title"]

	def test_definition_without_consent(self) -> None:
		definition = build_definition(PingTool.METADATA)
		assert definition.description == PingTool.METADATA.description

	def test_metadata_override(self) -> None:
		tool = _CreateTaskTool(metadata=prefixed(_CreateTaskTool.METADATA, "fr_"))
		assert tool.name == "fr_create_task"
		assert tool.definition().name == "fr_create_task"

	async def test_execute_validates(self) -> None:
		result = await _CreateTaskTool().execute({"title": "Write docs", "priority": 9})
		assert result.is_error
		assert result.payload["message"] == "Invalid parameters"
		assert "priority" in result.payload["error"]

	async def test_execute_success(self) -> None:
		result = await _CreateTaskTool().execute({"title": "Write docs"})
		assert result.payload == {"success": True, "data": {"title": "Write docs", "priority": 0}}


class TestPingTool:
	async def test_reports_status(self) -> None:
		result = await PingTool("toolhub", "1.2.3", tool_count=4).execute(None)
		data = result.payload["data"]
		assert data["status"] == "ok"
		assert data["server"] == "toolhub"
		assert data["version"] == "1.2.3"
		assert data["tools"] == 4
		assert "timestamp" in data

	def test_metadata(self) -> None:
		assert PingTool.METADATA.name == "ping"
		assert PingTool.METADATA.is_helper


class TestSearchToolsTool:
	@pytest.fixture()
	def tool(self, registry: ToolRegistry) -> SearchToolsTool:
		return SearchToolsTool(registry)

	async def test_search(self, tool: SearchToolsTool) -> None:
		result = await tool.execute({"query": "task", "limit": 1})
		assert not result.is_error
		data = result.payload["data"]
		assert data["query"] == "task"
		assert data["totalFound"] == 2
		assert data["returned"] == 1
		assert data["tools"][0]["name"] == "get_task"

	async def test_default_limit(self, registry: ToolRegistry) -> None:
		result = await SearchToolsTool(registry, default_limit=1).execute({"query": "task"})
		data = result.payload["data"]
		assert (data["totalFound"], data["returned"]) == (2, 1)

	async def test_filters(self, tool: SearchToolsTool) -> None:
		result = await tool.execute({"query": "task", "isHelper": True, "detailLevel": "name_only"})
		assert [t["name"] for t in result.payload["data"]["tools"]] == ["get_tasks_due_today"]

	async def test_category_filter(self, tool: SearchToolsTool) -> None:
		result = await tool.execute({"query": "get", "category": "comments"})
		assert [t["name"] for t in result.payload["data"]["tools"]] == ["get_issue_comments"]

	@pytest.mark.parametrize("params", [
		{},
		{"query": "   "},
		{"query": "task", "limit": 0},
		{"query": "task", "limit": 101},
		{"query": "task", "detailLevel": "verbose"},
		{"query": "task", "category": "calendar"},
	])
	async def test_invalid_params(self, tool: SearchToolsTool, params: dict[str, Any]) -> None:
		result = await tool.execute(params)
		assert result.is_error
		assert result.payload["message"] == "Invalid parameters"

	async def test_unknown_params_ignored(self, tool: SearchToolsTool) -> None:
		result = await tool.execute({"query": "ping", "verbose": True})
		assert not result.is_error

	def test_schema(self) -> None:
		schema = SearchToolsTool.input_schema()
		assert schema["required"] == ["query"]
		assert set(schema["properties"]) == {"query", "category", "isHelper", "limit", "detailLevel"}


class TestComposition:
	def test_builtin_tools_prefixed(self) -> None:
		registry = build_registry(ToolhubConfig())
		assert registry.names == ["fr_ping", "fr_search_tools"]

	def test_no_prefix(self, config: ToolhubConfig) -> None:
		assert build_registry(config).names == ["ping", "search_tools"]

	def test_extra_tools_after_builtins(self) -> None:
		extra = [ToolRegistration.for_tool(_CreateTaskTool, factory=_CreateTaskTool)]
		registry = build_registry(ToolhubConfig(), extra)
		assert registry.names == ["fr_ping", "fr_search_tools", "fr_create_task"]

	def test_duplicate_extra_rejected(self, config: ToolhubConfig) -> None:
		extra = [ToolRegistration(metadata=PingTool.METADATA)]
		with pytest.raises(DuplicateToolError):
			build_registry(config, extra)

	def test_search_config_applied(self, config: ToolhubConfig) -> None:
		config.search.weights = {"name": 1.0}
		registry = build_registry(config)
		assert registry.search_tools("galendar").total_found == 0

	async def test_search_tools_end_to_end(self) -> None:
		registry = build_registry(ToolhubConfig())
		result = await registry.execute("fr_search_tools", {"query": "ping", "detailLevel": "name_only"})
		assert result.payload["data"]["tools"][0]["name"] == "fr_ping"
		assert isinstance(registry.get_tool("fr_search_tools"), SearchToolsTool)

	async def test_search_default_limit_from_config(self, config: ToolhubConfig) -> None:
		config.search.default_limit = 1
		registry = build_registry(config)
		result = await registry.execute("search_tools", {"query": "s", "detailLevel": "name_only"})
		data = result.payload["data"]
		assert data["totalFound"] == 2
		assert data["returned"] == 1

		explicit = await registry.execute("search_tools", {"query": "s", "limit": 2})
		assert explicit.payload["data"]["returned"] == 2

	async def test_ping_counts_tools(self) -> None:
		extra = [ToolRegistration.for_tool(_CreateTaskTool, factory=_CreateTaskTool)]
		registry = build_registry(ToolhubConfig(), extra)
		result = await registry.execute("fr_ping", {})
		assert result.payload["data"]["tools"] == 3
		assert result.payload["data"]["server"] == "toolhub"
