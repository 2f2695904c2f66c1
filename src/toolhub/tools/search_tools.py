"""search_tools: lets the agent discover tools without the full tool list in context."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from toolhub.constants import DEFAULT_TOOL_SEARCH_LIMIT
from toolhub.models import (
	SearchOptions,
	SearchToolsParams,
	ToolCategory,
	ToolMetadata,
	ToolPriority,
)
from toolhub.tools.base import BaseTool

if TYPE_CHECKING:
	from toolhub.registry import ToolRegistry

logger = logging.getLogger(__name__)


def search_tools_metadata(name: str = "search_tools") -> ToolMetadata:
	return ToolMetadata(
		name=name,
		description=(
			"Search the available tools by name, description, category and tags. "
			"Use this first to find the right tool for a task instead of guessing tool names. "
			"Supports typo-tolerant matching and optional category or helper filters."
		),
		category=ToolCategory.SEARCH,
		subcategory="discovery",
		priority=ToolPriority.CRITICAL,
		tags=("search", "tools", "discovery", "find", "helper"),
		is_helper=True,
		examples=(
			'{"query": "create task"}',
			'{"query": "issue comments", "category": "comments", "detailLevel": "full"}',
			'{"query": "calendar", "isHelper": true, "limit": 5}',
		),
	)


class SearchToolsTool(BaseTool):
	METADATA = search_tools_metadata()
	PARAMS_MODEL = SearchToolsParams

	def __init__(
		self,
		registry: ToolRegistry,
		metadata: ToolMetadata | None = None,
		default_limit: int = DEFAULT_TOOL_SEARCH_LIMIT,
	) -> None:
		super().__init__(metadata)
		self._registry = registry
		self._default_limit = default_limit

	async def run(self, params: SearchToolsParams) -> dict[str, Any]:
		options = SearchOptions(
			category=params.category,
			is_helper=params.isHelper,
			limit=params.limit if params.limit is not None else self._default_limit,
			detail_level=params.detailLevel,
		)
		response = self._registry.search_tools(params.query, options)
		logger.info(
			"search_tools %r returned %d of %d match(es)",
			response.query, response.returned, response.total_found,
		)
		return response.to_dict()
