"""Independent search strategies scoring a single tool against a query.

Each strategy is a pure function of (query, tools). Strategies never emit
zero-score entries: non-matches are omitted. A failure while scoring one tool
is logged and that tool is omitted from the strategy's result.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum

from toolhub.constants import FUZZY_MIN_SIMILARITY, FUZZY_MIN_TERM_LENGTH
from toolhub.models import SearchResult, StaticToolIndex, tokenize

logger = logging.getLogger(__name__)

_NAME_SEPARATOR_RE = re.compile(r"[\s\-]+")


class StrategyType(str, Enum):
	NAME = "name"
	DESCRIPTION = "description"
	CATEGORY = "category"
	FUZZY = "fuzzy"


def levenshtein(a: str, b: str) -> int:
	"""Minimum number of single-character insertions, deletions and substitutions."""
	if a == b:
		return 0
	if not a:
		return len(b)
	if not b:
		return len(a)
	if len(a) < len(b):
		a, b = b, a

	previous = list(range(len(b) + 1))
	for i, ca in enumerate(a, start=1):
		current = [i]
		for j, cb in enumerate(b, start=1):
			cost = 0 if ca == cb else 1
			current.append(min(
				previous[j] + 1,
				current[j - 1] + 1,
				previous[j - 1] + cost,
			))
		previous = current
	return previous[-1]


def similarity(a: str, b: str) -> float:
	"""Edit-distance similarity normalized to [0, 1]."""
	longest = max(len(a), len(b))
	if longest == 0:
		return 1.0
	return 1.0 - levenshtein(a, b) / longest


class SearchStrategy(ABC):
	"""Scores tools against a query; subclasses implement score()."""

	strategy_type: StrategyType

	@abstractmethod
	def score(self, query: str, tool: StaticToolIndex) -> float:
		"""Score in [0, 1]; 0 means no match."""

	def search(self, query: str, tools: Sequence[StaticToolIndex]) -> list[SearchResult]:
		if not query.strip():
			return []

		results: list[SearchResult] = []
		for tool in tools:
			try:
				score = self.score(query, tool)
			except Exception as exc:
				logger.warning(
					"%s strategy failed to score tool %r: %s",
					self.strategy_type.value, getattr(tool, "name", tool), exc,
				)
				continue
			if score > 0:
				score = min(score, 1.0)
				results.append(SearchResult(
					tool=tool,
					score=score,
					match_details={self.strategy_type.value: score},
				))

		results.sort(key=lambda r: (-r.score, r.tool.name))
		return results


class NameSearchStrategy(SearchStrategy):
	"""Exact name match scores 1.0; containment scores len(query) / len(name)."""

	strategy_type = StrategyType.NAME

	def score(self, query: str, tool: StaticToolIndex) -> float:
		needle = _NAME_SEPARATOR_RE.sub("_", query.strip().lower())
		name = tool.name.lower()
		if not needle or not name:
			return 0.0
		if needle == name:
			return 1.0
		if needle in name:
			return len(needle) / len(name)
		return 0.0


class DescriptionSearchStrategy(SearchStrategy):
	"""Fraction of query tokens found among the description tokens."""

	strategy_type = StrategyType.DESCRIPTION

	def score(self, query: str, tool: StaticToolIndex) -> float:
		query_tokens = list(dict.fromkeys(tokenize(query)))
		if not query_tokens:
			return 0.0
		description_tokens = set(tool.description_tokens or tokenize(tool.description))
		matched = sum(1 for token in query_tokens if token in description_tokens)
		return matched / len(query_tokens)


class CategorySearchStrategy(SearchStrategy):
	"""1.0 when the query equals or is contained in the category or subcategory."""

	strategy_type = StrategyType.CATEGORY

	def score(self, query: str, tool: StaticToolIndex) -> float:
		needle = query.strip().lower()
		if not needle:
			return 0.0
		candidates = [tool.category.value]
		if tool.subcategory:
			candidates.append(tool.subcategory.lower())
		if any(needle in candidate for candidate in candidates):
			return 1.0
		return 0.0


class FuzzySearchStrategy(SearchStrategy):
	"""Typo-tolerant matching over name, name tokens, description tokens and tags."""

	strategy_type = StrategyType.FUZZY

	def __init__(
		self,
		min_similarity: float = FUZZY_MIN_SIMILARITY,
		min_term_length: int = FUZZY_MIN_TERM_LENGTH,
	) -> None:
		if not 0.0 <= min_similarity <= 1.0:
			raise ValueError(f"min_similarity must be within [0, 1], got {min_similarity}")
		self.min_similarity = min_similarity
		self.min_term_length = min_term_length

	def _terms(self, tool: StaticToolIndex) -> set[str]:
		terms: set[str] = set()
		terms.update(tool.name_tokens or tokenize(tool.name))
		terms.update(tool.description_tokens or tokenize(tool.description))
		for tag in tool.tags:
			terms.add(tag.lower())
		return {t for t in terms if len(t) >= self.min_term_length}

	def score(self, query: str, tool: StaticToolIndex) -> float:
		normalized = _NAME_SEPARATOR_RE.sub("_", query.strip().lower())
		if not normalized:
			return 0.0

		whole = similarity(normalized, tool.name.lower())

		terms = self._terms(tool)
		query_tokens = [t for t in dict.fromkeys(tokenize(query)) if len(t) >= self.min_term_length]
		per_token = 0.0
		if terms and query_tokens:
			best = [max(similarity(token, term) for term in terms) for token in query_tokens]
			per_token = sum(best) / len(best)

		score = max(whole, per_token)
		if score < self.min_similarity:
			return 0.0
		return score


def default_strategies(
	fuzzy_min_similarity: float = FUZZY_MIN_SIMILARITY,
) -> dict[StrategyType, SearchStrategy]:
	return {
		StrategyType.NAME: NameSearchStrategy(),
		StrategyType.DESCRIPTION: DescriptionSearchStrategy(),
		StrategyType.CATEGORY: CategorySearchStrategy(),
		StrategyType.FUZZY: FuzzySearchStrategy(min_similarity=fuzzy_min_similarity),
	}
