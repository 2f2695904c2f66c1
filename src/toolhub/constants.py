"""Centralized search weights, priority ranks and default limits."""

from __future__ import annotations

# Priority rank table shared by the sorter and the combined-strategy tie-break
PRIORITY_RANK: dict[str, int] = {
	"critical": 0,
	"high": 1,
	"normal": 2,
	"low": 3,
}

# Default strategy weights (name, description, category, fuzzy); sum to 1.0
STRATEGY_WEIGHTS: dict[str, float] = {
	"name": 0.4,
	"description": 0.3,
	"category": 0.2,
	"fuzzy": 0.1,
}

DEFAULT_TOOL_SEARCH_LIMIT = 10
MAX_TOOL_SEARCH_LIMIT = 100
DEFAULT_TOOL_SEARCH_DETAIL_LEVEL = "name_and_description"
DETAIL_LEVELS: tuple[str, ...] = ("name_only", "name_and_description", "full")

# Fuzzy matching: minimum normalized similarity and shortest term considered
FUZZY_MIN_SIMILARITY = 0.3
FUZZY_MIN_TERM_LENGTH = 3

MAX_SEARCH_CACHE_SIZE = 100

DEFAULT_TOOL_PREFIX = "fr_"
DEFAULT_ESSENTIAL_TOOLS: tuple[str, ...] = ("ping", "search_tools")
DEFAULT_DISCOVERY_MODE = "lazy"
