"""Tool registry: authoritative set of registered tools plus the search_tools pipeline.

The registry is built once at startup from an ordered list of registrations.
Duplicate names are a fatal configuration error raised before any tool is
served. The registered set is held in an immutable state object that is
replaced wholesale (copy-on-write) whenever tools are added, so concurrent
readers always see a consistent snapshot without locking.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter, OrderedDict
from collections.abc import Callable, Iterable, Mapping, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from toolhub.constants import (
	DEFAULT_ESSENTIAL_TOOLS,
	DETAIL_LEVELS,
	FUZZY_MIN_SIMILARITY,
	MAX_SEARCH_CACHE_SIZE,
)
from toolhub.filtering import ToolFilterService
from toolhub.metrics import SearchStats, Timer
from toolhub.models import (
	CategoryFilter,
	FilterCriteria,
	SearchOptions,
	SearchResponse,
	SearchResult,
	StaticToolIndex,
	ToolMetadata,
	short_description,
)
from toolhub.search import StrategyType, WeightedCombinedStrategy, default_strategies
from toolhub.sorting import ToolSorter
from toolhub.tools.base import ToolDefinition, ToolResult, build_definition, error_result
from toolhub.tracing import NoOpSpan, SearchTracer

if TYPE_CHECKING:
	from toolhub.tools.base import BaseTool

logger = logging.getLogger(__name__)

ToolFactory = Callable[[], "BaseTool"]


class ConfigurationError(Exception):
	"""Structural problem detected at startup; never recovered automatically."""


class DuplicateToolError(ConfigurationError):
	"""Two registrations share a tool name."""

	def __init__(self, names: Sequence[str]) -> None:
		self.names = sorted(set(names))
		super().__init__(f"Duplicate tool name(s): {', '.join(self.names)}")


class InvalidArgumentError(ValueError):
	"""A caller-supplied argument was rejected before entering the search pipeline."""


@dataclass(frozen=True)
class ToolRegistration:
	"""Metadata plus the factory that constructs the tool on first use."""

	metadata: ToolMetadata
	factory: ToolFactory | None = field(default=None, compare=False)
	input_schema: dict[str, Any] | None = field(default=None, compare=False, hash=False)

	@property
	def name(self) -> str:
		return self.metadata.name

	def definition(self) -> ToolDefinition:
		return build_definition(self.metadata, self.input_schema)

	@classmethod
	def for_tool(
		cls,
		tool_class: type[BaseTool],
		factory: ToolFactory | None = None,
		metadata: ToolMetadata | None = None,
	) -> ToolRegistration:
		return cls(
			metadata=metadata if metadata is not None else tool_class.METADATA,
			factory=factory,
			input_schema=tool_class.input_schema(),
		)


class _SearchCache:
	"""Bounded LRU of search responses keyed by normalized query and options."""

	def __init__(self, max_size: int = MAX_SEARCH_CACHE_SIZE) -> None:
		self.max_size = max_size
		self._entries: OrderedDict[tuple[Any, ...], SearchResponse] = OrderedDict()

	def __len__(self) -> int:
		return len(self._entries)

	def get(self, key: tuple[Any, ...]) -> SearchResponse | None:
		entry = self._entries.get(key)
		if entry is not None:
			self._entries.move_to_end(key)
		return entry

	def put(self, key: tuple[Any, ...], response: SearchResponse) -> None:
		if self.max_size <= 0:
			return
		self._entries[key] = response
		self._entries.move_to_end(key)
		while len(self._entries) > self.max_size:
			self._entries.popitem(last=False)

	def clear(self) -> None:
		self._entries.clear()


@dataclass(frozen=True)
class _RegistryState:
	registrations: Mapping[str, ToolRegistration]
	index: tuple[StaticToolIndex, ...]
	cache: _SearchCache


def _cache_key(query: str, options: SearchOptions) -> tuple[Any, ...]:
	return (
		query.strip().lower(),
		options.category,
		options.is_helper,
		tuple(sorted(options.tags)) if options.tags else None,
		options.priority,
		options.limit,
		options.detail_level,
	)


def _is_essential(name: str, essential_names: Iterable[str]) -> bool:
	return any(name == e or name.endswith(f"_{e}") for e in essential_names)


class ToolRegistry:
	"""Owns the registered tools; composes filter, sorter and search."""

	def __init__(
		self,
		registrations: Iterable[ToolRegistration] = (),
		*,
		weights: Mapping[str | StrategyType, float] | None = None,
		fuzzy_min_similarity: float = FUZZY_MIN_SIMILARITY,
		cache_size: int = MAX_SEARCH_CACHE_SIZE,
		filter_service: ToolFilterService | None = None,
		sorter: ToolSorter | None = None,
		tracer: SearchTracer | None = None,
	) -> None:
		self._filter = filter_service or ToolFilterService()
		self._sorter = sorter or ToolSorter()
		self._search = WeightedCombinedStrategy(
			strategies=default_strategies(fuzzy_min_similarity),
			weights=weights,
		)
		self._tracer = tracer
		self._cache_size = cache_size
		self._instances: dict[str, BaseTool] = {}
		self.stats = SearchStats()
		self._state = _RegistryState(
			registrations=MappingProxyType({}),
			index=(),
			cache=_SearchCache(cache_size),
		)
		self.register_all(registrations)

	# -- Registration --

	def register(
		self,
		metadata: ToolMetadata,
		factory: ToolFactory | None = None,
		input_schema: dict[str, Any] | None = None,
	) -> ToolRegistration:
		"""Register one tool.

		Raises:
			DuplicateToolError: If a tool with the same name is already registered.
		"""
		registration = ToolRegistration(metadata=metadata, factory=factory, input_schema=input_schema)
		self.register_all([registration])
		return registration

	def register_all(self, registrations: Iterable[ToolRegistration]) -> None:
		"""Validate a batch as a whole, then swap it in.

		Nothing is applied if the batch contains duplicates, either within
		itself or against tools already registered.

		Raises:
			DuplicateToolError: On any duplicate name.
		"""
		batch = list(registrations)
		if not batch:
			return

		current = self._state
		counts = Counter(r.name for r in batch)
		duplicates = [name for name, n in counts.items() if n > 1]
		duplicates += [r.name for r in batch if r.name in current.registrations]
		if duplicates:
			logger.error("Tool registration rejected, duplicate names: %s", sorted(set(duplicates)))
			raise DuplicateToolError(duplicates)

		merged = dict(current.registrations)
		for registration in batch:
			merged[registration.name] = registration

		self._state = _RegistryState(
			registrations=MappingProxyType(merged),
			index=current.index + tuple(StaticToolIndex.from_metadata(r.metadata) for r in batch),
			cache=_SearchCache(self._cache_size),
		)
		for registration in batch:
			logger.debug("Registered tool: %s", registration.name)
		logger.info("Registered %d tool(s); %d total", len(batch), len(merged))

	# -- Introspection --

	@property
	def tool_count(self) -> int:
		return len(self._state.registrations)

	@property
	def names(self) -> list[str]:
		return list(self._state.registrations)

	@property
	def is_duplicate_free(self) -> bool:
		index_names = [entry.name for entry in self._state.index]
		return len(index_names) == len(set(index_names)) == len(self._state.registrations)

	@property
	def index(self) -> tuple[StaticToolIndex, ...]:
		return self._state.index

	@property
	def cache_size(self) -> int:
		return len(self._state.cache)

	def __contains__(self, name: object) -> bool:
		return name in self._state.registrations

	def __len__(self) -> int:
		return self.tool_count

	def get(self, name: str) -> ToolMetadata | None:
		registration = self._state.registrations.get(name)
		return registration.metadata if registration else None

	def get_registration(self, name: str) -> ToolRegistration | None:
		return self._state.registrations.get(name)

	def get_tool(self, name: str) -> BaseTool | None:
		"""Return the tool instance, constructing it on first use."""
		instance = self._instances.get(name)
		if instance is not None:
			return instance
		registration = self._state.registrations.get(name)
		if registration is None or registration.factory is None:
			return None
		instance = registration.factory()
		self._instances[name] = instance
		return instance

	# -- Listing --

	def list(self, criteria: FilterCriteria | None = None) -> list[ToolMetadata]:
		"""Filter then sort; no query text involved."""
		metadata = [r.metadata for r in self._state.registrations.values()]
		return self._sorter.sort(self._filter.filter(metadata, criteria))

	def definitions(self, tools: Iterable[ToolMetadata] | None = None) -> list[ToolDefinition]:
		selected = self.list() if tools is None else self._sorter.sort(tools)
		registrations = self._state.registrations
		return [registrations[m.name].definition() for m in selected]

	def definitions_for_mode(
		self,
		mode: str,
		essential_names: Sequence[str] = DEFAULT_ESSENTIAL_TOOLS,
		category_filter: CategoryFilter | None = None,
		disabled_filter: CategoryFilter | None = None,
	) -> list[ToolDefinition]:
		"""Definitions advertised in tools/list.

		lazy: only essential tools (the agent discovers the rest via search_tools).
		eager: all tools, narrowed by the positive then the negative category filter.
		"""
		metadata = [r.metadata for r in self._state.registrations.values()]
		if mode == "lazy":
			selected = [m for m in metadata if _is_essential(m.name, essential_names)]
		elif mode == "eager":
			selected = metadata
			if category_filter is not None and not category_filter.include_all:
				selected = self._filter.filter_by_categories(selected, category_filter)
			if disabled_filter is not None:
				selected = self._filter.apply_disabled_filter(selected, disabled_filter)
		else:
			raise InvalidArgumentError(f"Unknown discovery mode: {mode!r}")
		return self.definitions(selected)

	# -- Search --

	def search_tools(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
		"""Validate, pre-filter, rank and render tools matching query.

		Raises:
			InvalidArgumentError: If query is empty after trimming, limit < 1,
				or detail_level is unknown.
		"""
		if query is None or not str(query).strip():
			raise InvalidArgumentError("query must not be empty")
		options = options or SearchOptions()
		if options.limit < 1:
			raise InvalidArgumentError(f"limit must be a positive integer, got {options.limit}")
		if options.detail_level not in DETAIL_LEVELS:
			raise InvalidArgumentError(f"Unknown detail level: {options.detail_level!r}")

		state = self._state
		key = _cache_key(query, options)
		cached = state.cache.get(key)
		if cached is not None:
			self.stats.record(cache_hit=True, found=cached.total_found, elapsed_s=0.0)
			hit = copy.deepcopy(cached)
			hit.query = query.strip()
			return hit

		with self._span(query) as span, Timer() as timer:
			candidates = self._filter.filter(state.index, options.to_criteria())
			ranked = self._search.combine(query, candidates, limit=None)
			top = ranked[:options.limit]
			response = SearchResponse(
				query=query.strip(),
				total_found=len(ranked),
				tools=[self._render(result, options.detail_level, state) for result in top],
			)
			span.set_attribute("search.candidates", len(candidates))
			span.set_attribute("search.total_found", response.total_found)

		self.stats.record(cache_hit=False, found=response.total_found, elapsed_s=timer.elapsed)
		logger.debug(
			"search_tools %r: %d candidates, %d found, %d returned",
			query, len(candidates), response.total_found, response.returned,
		)
		state.cache.put(key, response)
		return copy.deepcopy(response)

	def _span(self, query: str) -> AbstractContextManager[Any]:
		if self._tracer is None:
			return nullcontext(NoOpSpan())
		return self._tracer.start_search_span(query)

	def _render(self, result: SearchResult, detail_level: str, state: _RegistryState) -> dict[str, Any]:
		tool = result.tool
		score = round(result.score, 2)
		if detail_level == "name_only":
			return {"name": tool.name, "score": score}
		if detail_level == "name_and_description":
			return {
				"name": tool.name,
				"description": short_description(tool.description),
				"category": tool.category.value,
				"score": score,
			}

		registration = state.registrations[tool.name]
		metadata = registration.metadata
		definition = registration.definition()
		return {
			"name": tool.name,
			"description": definition.description,
			"category": tool.category.value,
			"subcategory": tool.subcategory,
			"priority": tool.priority.value,
			"tags": list(tool.tags),
			"isHelper": tool.is_helper,
			"requiresExplicitUserConsent": metadata.requires_explicit_user_consent,
			"inputSchema": definition.input_schema,
			"examples": list(metadata.examples),
			"score": score,
			"matchDetails": {k: round(v, 3) for k, v in result.match_details.items()},
		}

	# -- Execution --

	async def execute(self, name: str, params: dict[str, Any] | None) -> ToolResult:
		"""Run a tool by name; failures come back as error results."""
		tool = self.get_tool(name)
		if tool is None:
			available = self.names
			similar = [n for n in available if name in n or n in name]
			logger.error("Tool %r not found (%d available)", name, len(available))
			hint = (
				f"Did you mean: {', '.join(similar)}"
				if similar
				else "Use search_tools to find available tools"
			)
			return error_result(f"Tool {name!r} not found", hint=hint, availableTools=available)

		logger.info("Executing tool %s", name)
		try:
			result = await tool.execute(params)
		except Exception as exc:
			logger.error("Tool %s raised: %s", name, exc, exc_info=True)
			return error_result(f"Tool {name} failed", exc, tool=name)
		if result.is_error:
			logger.warning("Tool %s returned an error result", name)
		return result
