"""Tool filtering by category, tags, helper flag and priority.

Works on any object exposing the ToolMetadata attributes (ToolMetadata and
StaticToolIndex alike). Filters never mutate their input and preserve the
relative order of the tools they keep.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, TypeVar

from toolhub.models import CategoryFilter, FilterCriteria, ToolCategory, ToolPriority

logger = logging.getLogger(__name__)


class FilterableTool(Protocol):
	@property
	def name(self) -> str: ...

	@property
	def category(self) -> ToolCategory: ...

	@property
	def subcategory(self) -> str | None: ...

	@property
	def tags(self) -> tuple[str, ...]: ...

	@property
	def is_helper(self) -> bool: ...

	@property
	def priority(self) -> ToolPriority: ...


T = TypeVar("T", bound=FilterableTool)


class ToolFilterService:
	"""Applies category/tag/priority predicates to a tool collection."""

	def filter(self, tools: Sequence[T], criteria: FilterCriteria | None = None) -> list[T]:
		"""Keep tools satisfying every supplied predicate (AND-combined).

		tags: match-any. priority: exact match. No criteria: a copy of the input.
		"""
		if criteria is None or criteria.is_empty:
			return list(tools)

		wanted_tags = {t.lower() for t in criteria.tags} if criteria.tags else None

		def _keep(tool: T) -> bool:
			if criteria.category is not None and tool.category != criteria.category:
				return False
			if criteria.is_helper is not None and tool.is_helper != criteria.is_helper:
				return False
			if criteria.priority is not None and tool.priority != criteria.priority:
				return False
			if wanted_tags is not None and not wanted_tags.intersection(t.lower() for t in tool.tags):
				return False
			return True

		return [tool for tool in tools if _keep(tool)]

	def filter_by_categories(self, tools: Sequence[T], category_filter: CategoryFilter) -> list[T]:
		"""Positive filter: a bare category admits all its subcategories."""
		if category_filter.include_all:
			return list(tools)

		self._validate_categories(tools, category_filter)

		kept: list[T] = []
		for tool in tools:
			category = tool.category.value
			if category in category_filter.categories:
				kept.append(tool)
				continue
			allowed = category_filter.categories_with_subcategories.get(category)
			if allowed and tool.subcategory and tool.subcategory in allowed:
				kept.append(tool)

		logger.info(
			"Tools filtered by categories: %d of %d kept (categories=%s, subcategories=%s)",
			len(kept), len(tools),
			sorted(category_filter.categories),
			{c: sorted(s) for c, s in category_filter.categories_with_subcategories.items()},
		)
		return kept

	def apply_disabled_filter(self, tools: Sequence[T], disabled_filter: CategoryFilter) -> list[T]:
		"""Negative filter: drop disabled categories and category:subcategory pairs."""
		if disabled_filter.include_all:
			return list(tools)

		kept: list[T] = []
		for tool in tools:
			category = tool.category.value
			if category in disabled_filter.categories:
				continue
			disabled = disabled_filter.categories_with_subcategories.get(category)
			if disabled and tool.subcategory and tool.subcategory in disabled:
				continue
			kept.append(tool)

		logger.info(
			"Disabled tool groups applied: %d of %d kept (categories=%s, subcategories=%s)",
			len(kept), len(tools),
			sorted(disabled_filter.categories),
			{c: sorted(s) for c, s in disabled_filter.categories_with_subcategories.items()},
		)
		return kept

	def _validate_categories(self, tools: Sequence[T], category_filter: CategoryFilter) -> None:
		"""Log warnings for requested categories/subcategories no tool declares."""
		known: dict[str, set[str]] = {}
		for tool in tools:
			subs = known.setdefault(tool.category.value, set())
			if tool.subcategory:
				subs.add(tool.subcategory)

		unknown_categories = sorted(
			{c for c in category_filter.categories if c not in known}
			| {c for c in category_filter.categories_with_subcategories if c not in known}
		)
		unknown_subcategories = sorted(
			f"{c}:{s}"
			for c, subs in category_filter.categories_with_subcategories.items()
			if c in known
			for s in subs
			if s not in known[c]
		)

		if unknown_categories:
			logger.warning(
				"Unknown categories in filter: %s (known: %s)",
				unknown_categories, sorted(known),
			)
		if unknown_subcategories:
			logger.warning("Unknown subcategories in filter: %s", unknown_subcategories)
