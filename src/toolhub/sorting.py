"""Deterministic tool ordering: priority rank, then name."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar

from toolhub.models import ToolPriority


class SortableTool(Protocol):
	@property
	def name(self) -> str: ...

	@property
	def priority(self) -> ToolPriority: ...


T = TypeVar("T", bound=SortableTool)


def sort_key(tool: SortableTool) -> tuple[int, str]:
	return (tool.priority.rank, tool.name)


class ToolSorter:
	"""Orders tools CRITICAL first, names ascending (case-sensitive) within a rank."""

	def sort(self, tools: Iterable[T]) -> list[T]:
		return sorted(tools, key=sort_key)
