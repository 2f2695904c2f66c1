"""Shared pytest fixtures and factory functions for toolhub tests."""

from __future__ import annotations

from typing import Any

import pytest

from toolhub.config import ToolhubConfig
from toolhub.models import StaticToolIndex, ToolCategory, ToolMetadata, ToolPriority
from toolhub.registry import ToolRegistration, ToolRegistry


def make_metadata(**overrides: Any) -> ToolMetadata:
	"""Create a ToolMetadata with sensible defaults, overridable via kwargs."""
	defaults: dict[str, Any] = {
		"name": "get_task",
		"description": "Get a task by its id.",
		"category": ToolCategory.TASKS,
	}
	defaults.update(overrides)
	return ToolMetadata(**defaults)


def make_index(**overrides: Any) -> StaticToolIndex:
	return StaticToolIndex.from_metadata(make_metadata(**overrides))


def sample_metadata() -> list[ToolMetadata]:
	"""A small mixed catalog used across search and registry tests."""
	return [
		make_metadata(
			name="get_task",
			description="Get a single task by id.",
			category=ToolCategory.TASKS,
			subcategory="read",
			priority=ToolPriority.CRITICAL,
			tags=("task", "read"),
		),
		make_metadata(
			name="get_tasks_due_today",
			description="List tasks that are due today.",
			category=ToolCategory.TASKS,
			subcategory="date",
			priority=ToolPriority.HIGH,
			tags=("task", "today", "due"),
			is_helper=True,
		),
		make_metadata(
			name="ping",
			description="Check that the server is running.",
			category=ToolCategory.SYSTEM,
			subcategory="health",
			priority=ToolPriority.CRITICAL,
			tags=("health",),
			is_helper=True,
		),
		make_metadata(
			name="get_calendar",
			description="Show upcoming events.",
			category=ToolCategory.PAGES,
			priority=ToolPriority.NORMAL,
			tags=("events",),
		),
		make_metadata(
			name="update_issue",
			description="Update fields of an issue.",
			category=ToolCategory.ISSUES,
			subcategory="write",
			priority=ToolPriority.HIGH,
			tags=("issue", "write"),
			requires_explicit_user_consent=True,
		),
		make_metadata(
			name="get_issue_comments",
			description="Read the comments of an issue.",
			category=ToolCategory.COMMENTS,
			subcategory="read",
			priority=ToolPriority.NORMAL,
			tags=("issue", "comments"),
		),
		make_metadata(
			name="find_projects",
			description="Find projects matching a filter.",
			category=ToolCategory.PROJECTS,
			subcategory="read",
			priority=ToolPriority.LOW,
			tags=("project", "search"),
		),
	]


@pytest.fixture()
def tools() -> list[ToolMetadata]:
	return sample_metadata()


@pytest.fixture()
def index(tools: list[ToolMetadata]) -> list[StaticToolIndex]:
	return [StaticToolIndex.from_metadata(m) for m in tools]


@pytest.fixture()
def registry(tools: list[ToolMetadata]) -> ToolRegistry:
	"""Registry loaded with sample_metadata(); no factories."""
	return ToolRegistry(ToolRegistration(metadata=m) for m in tools)


@pytest.fixture()
def config() -> ToolhubConfig:
	"""Default config with tracing disabled and no tool prefix."""
	cfg = ToolhubConfig()
	cfg.server.tool_prefix = ""
	return cfg
