"""Weighted combination of the individual search strategies.

Every weighted strategy runs over the full tool set; a tool's combined score is
the weighted sum of its raw strategy scores (a strategy that did not return the
tool contributes 0). Results are ranked by score, then priority rank, then
name, and only then truncated to the requested limit.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from toolhub.constants import DEFAULT_TOOL_SEARCH_LIMIT, STRATEGY_WEIGHTS
from toolhub.models import SearchResult, StaticToolIndex
from toolhub.search.strategies import SearchStrategy, StrategyType, default_strategies

logger = logging.getLogger(__name__)

WEIGHT_SUM_TOLERANCE = 1e-9


def resolve_weights(
	weights: Mapping[str | StrategyType, float] | None,
) -> dict[StrategyType, float]:
	"""Normalize a strategy-name -> weight mapping so the weights sum to 1.

	A supplied mapping replaces the defaults; strategies it omits get weight 0.
	Weights that do not sum to 1 are rescaled, which keeps combined scores
	within [0, 1].

	Raises:
		ValueError: On unknown strategy names, negative weights, or when no
			weight is positive.
	"""
	source: Mapping[str | StrategyType, float] = STRATEGY_WEIGHTS if weights is None else weights
	resolved = {st: 0.0 for st in StrategyType}
	for key, value in source.items():
		try:
			strategy_type = StrategyType(key)
		except ValueError:
			raise ValueError(f"Unknown search strategy: {key!r}") from None
		weight = float(value)
		if weight < 0:
			raise ValueError(f"Weight for {strategy_type.value} must be non-negative, got {weight}")
		resolved[strategy_type] = weight

	total = sum(resolved.values())
	if total <= 0:
		raise ValueError("at least one strategy weight must be positive")
	if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
		resolved = {st: w / total for st, w in resolved.items()}
	return resolved


class WeightedCombinedStrategy:
	"""Runs all strategies, merges and re-ranks their results."""

	def __init__(
		self,
		strategies: Mapping[StrategyType, SearchStrategy] | None = None,
		weights: Mapping[str | StrategyType, float] | None = None,
	) -> None:
		self._strategies = dict(strategies) if strategies is not None else default_strategies()
		self._weights = resolve_weights(weights)

	@property
	def weights(self) -> dict[StrategyType, float]:
		return dict(self._weights)

	def run_strategies(
		self,
		query: str,
		tools: Sequence[StaticToolIndex],
		weights: Mapping[StrategyType, float],
	) -> dict[StrategyType, list[SearchResult]]:
		"""Run each weighted strategy, isolating failures."""
		raw: dict[StrategyType, list[SearchResult]] = {}
		for strategy_type, strategy in self._strategies.items():
			if weights.get(strategy_type, 0.0) <= 0:
				continue
			try:
				raw[strategy_type] = strategy.search(query, tools)
			except Exception as exc:
				logger.warning("Search strategy %s failed for %r: %s", strategy_type.value, query, exc)
				raw[strategy_type] = []
		return raw

	def combine(
		self,
		query: str,
		tools: Sequence[StaticToolIndex],
		weights: Mapping[str | StrategyType, float] | None = None,
		limit: int | None = DEFAULT_TOOL_SEARCH_LIMIT,
	) -> list[SearchResult]:
		if not query or not query.strip():
			return []
		if limit is not None and limit < 0:
			raise ValueError(f"limit must be non-negative, got {limit}")

		active = self._weights if weights is None else resolve_weights(weights)
		raw = self.run_strategies(query, tools, active)

		merged: dict[str, SearchResult] = {}
		for strategy_type, results in raw.items():
			weight = active[strategy_type]
			for result in results:
				entry = merged.get(result.tool.name)
				if entry is None:
					entry = SearchResult(tool=result.tool, score=0.0)
					merged[result.tool.name] = entry
				entry.score += weight * result.score
				entry.match_details[strategy_type.value] = result.score

		ranked = [r for r in merged.values() if r.score > 0]
		for result in ranked:
			result.score = min(result.score, 1.0)
		ranked.sort(key=lambda r: (-r.score, r.tool.priority.rank, r.tool.name))

		if limit is not None:
			ranked = ranked[:limit]
		return ranked

	def search(self, query: str, tools: Sequence[StaticToolIndex]) -> list[SearchResult]:
		return self.combine(query, tools, limit=None)
