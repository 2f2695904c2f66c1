"""Tool search strategies and their weighted combination."""

from __future__ import annotations

from toolhub.search.combined import WeightedCombinedStrategy, resolve_weights
from toolhub.search.strategies import (
	CategorySearchStrategy,
	DescriptionSearchStrategy,
	FuzzySearchStrategy,
	NameSearchStrategy,
	SearchStrategy,
	StrategyType,
	default_strategies,
	levenshtein,
	similarity,
)

__all__ = [
	"CategorySearchStrategy",
	"DescriptionSearchStrategy",
	"FuzzySearchStrategy",
	"NameSearchStrategy",
	"SearchStrategy",
	"StrategyType",
	"WeightedCombinedStrategy",
	"default_strategies",
	"levenshtein",
	"resolve_weights",
	"similarity",
]
