"""Data models for tool metadata, search results and filter criteria."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from toolhub.constants import (
	DEFAULT_TOOL_SEARCH_DETAIL_LEVEL,
	DEFAULT_TOOL_SEARCH_LIMIT,
	MAX_TOOL_SEARCH_LIMIT,
	PRIORITY_RANK,
)

DetailLevel = Literal["name_only", "name_and_description", "full"]

_TOKEN_SPLIT_RE = re.compile(r"\W+")
_SENTENCE_END_RE = re.compile(r"[.!?]")


class ToolCategory(str, Enum):
	"""Closed set of tool categories used for grouping and filtering."""

	TASKS = "tasks"
	PROJECTS = "projects"
	ISSUES = "issues"
	QUEUES = "queues"
	USERS = "users"
	COMMENTS = "comments"
	GRIDS = "grids"
	PAGES = "pages"
	RESOURCES = "resources"
	SYSTEM = "system"
	HELPERS = "helpers"
	SEARCH = "search"
	URL_GENERATION = "url-generation"
	VALIDATION = "validation"


class ToolPriority(str, Enum):
	"""Tool priority; lower rank is served first."""

	CRITICAL = "critical"
	HIGH = "high"
	NORMAL = "normal"
	LOW = "low"

	@property
	def rank(self) -> int:
		return PRIORITY_RANK[self.value]


def tokenize(text: str) -> list[str]:
	"""Lowercase, treat underscores/hyphens as separators, split on non-word chars."""
	normalized = text.lower().replace("_", " ").replace("-", " ")
	return [t for t in _TOKEN_SPLIT_RE.split(normalized) if t]


def short_description(description: str) -> str:
	"""First sentence of a description, or the whole text if it has none."""
	first = _SENTENCE_END_RE.split(description, maxsplit=1)[0].strip()
	return first or description.strip()


@dataclass(frozen=True)
class ToolMetadata:
	"""Static descriptive record attached to every tool."""

	name: str
	description: str
	category: ToolCategory
	subcategory: str | None = None
	priority: ToolPriority = ToolPriority.NORMAL
	tags: tuple[str, ...] = ()
	is_helper: bool = False
	requires_explicit_user_consent: bool = False
	examples: tuple[str, ...] = ()

	def __post_init__(self) -> None:
		# Plain strings and lists are coerced to the enum and tuple types
		object.__setattr__(self, "category", ToolCategory(self.category))
		object.__setattr__(self, "priority", ToolPriority(self.priority))
		if not isinstance(self.tags, tuple):
			object.__setattr__(self, "tags", tuple(self.tags))
		if not isinstance(self.examples, tuple):
			object.__setattr__(self, "examples", tuple(self.examples))


@dataclass(frozen=True)
class StaticToolIndex:
	"""Read-only projection of ToolMetadata used purely for search."""

	name: str
	description: str
	category: ToolCategory
	subcategory: str | None = None
	tags: tuple[str, ...] = ()
	priority: ToolPriority = ToolPriority.NORMAL
	is_helper: bool = False
	name_tokens: tuple[str, ...] = ()
	description_tokens: tuple[str, ...] = ()

	def __post_init__(self) -> None:
		object.__setattr__(self, "category", ToolCategory(self.category))
		object.__setattr__(self, "priority", ToolPriority(self.priority))
		if not isinstance(self.tags, tuple):
			object.__setattr__(self, "tags", tuple(self.tags))

	@classmethod
	def from_metadata(cls, metadata: ToolMetadata) -> StaticToolIndex:
		return cls(
			name=metadata.name,
			description=metadata.description,
			category=metadata.category,
			subcategory=metadata.subcategory,
			tags=tuple(metadata.tags),
			priority=metadata.priority,
			is_helper=metadata.is_helper,
			name_tokens=tuple(tokenize(metadata.name)),
			description_tokens=tuple(tokenize(metadata.description)),
		)


@dataclass
class SearchResult:
	"""A scored tool produced by a search strategy."""

	tool: StaticToolIndex
	score: float
	match_details: dict[str, float] = field(default_factory=dict)

	@property
	def name(self) -> str:
		return self.tool.name


@dataclass(frozen=True)
class FilterCriteria:
	"""Independently optional predicates, AND-combined.

	tags use match-any semantics; priority is an exact match.
	"""

	category: ToolCategory | None = None
	tags: tuple[str, ...] | None = None
	is_helper: bool | None = None
	priority: ToolPriority | None = None

	@property
	def is_empty(self) -> bool:
		return (
			self.category is None
			and not self.tags
			and self.is_helper is None
			and self.priority is None
		)


@dataclass
class CategoryFilter:
	"""Parsed category filter from configuration ("tasks,issues:read")."""

	categories: set[str] = field(default_factory=set)
	categories_with_subcategories: dict[str, set[str]] = field(default_factory=dict)
	include_all: bool = True


@dataclass(frozen=True)
class SearchOptions:
	"""Options accepted by ToolRegistry.search_tools."""

	category: ToolCategory | None = None
	is_helper: bool | None = None
	tags: tuple[str, ...] | None = None
	priority: ToolPriority | None = None
	limit: int = DEFAULT_TOOL_SEARCH_LIMIT
	detail_level: DetailLevel = DEFAULT_TOOL_SEARCH_DETAIL_LEVEL  # type: ignore[assignment]

	def to_criteria(self) -> FilterCriteria:
		return FilterCriteria(
			category=self.category,
			tags=self.tags,
			is_helper=self.is_helper,
			priority=self.priority,
		)


@dataclass
class SearchResponse:
	"""Bounded, field-limited answer to a search_tools query."""

	query: str
	total_found: int = 0
	tools: list[dict[str, Any]] = field(default_factory=list)

	@property
	def returned(self) -> int:
		return len(self.tools)

	def to_dict(self) -> dict[str, Any]:
		return {
			"query": self.query,
			"totalFound": self.total_found,
			"returned": self.returned,
			"tools": self.tools,
		}


class SearchToolsParams(BaseModel, extra="ignore"):
	"""Pydantic schema for validating search_tools arguments."""

	query: str = Field(description=(
		"Search query matched against tool names, descriptions, categories and tags. "
		"Examples: \"task\", \"create issue\", \"calendar\"."
	))
	category: ToolCategory | None = Field(
		default=None,
		description="Only return tools from this category.",
	)
	isHelper: bool | None = Field(
		default=None,
		description="true: only helper tools; false: only API tools; omitted: all tools.",
	)
	limit: int | None = Field(
		default=None,
		ge=1,
		le=MAX_TOOL_SEARCH_LIMIT,
		description=f"Maximum number of results (server default, normally {DEFAULT_TOOL_SEARCH_LIMIT}).",
	)
	detailLevel: DetailLevel = Field(
		default=DEFAULT_TOOL_SEARCH_DETAIL_LEVEL,  # type: ignore[arg-type]
		description=(
			"name_only: names only; name_and_description: names, short descriptions "
			"and categories (default); full: complete metadata with input schema."
		),
	)

	@field_validator("query")
	@classmethod
	def _query_not_blank(cls, value: str) -> str:
		if not value.strip():
			raise ValueError("query must not be empty")
		return value
