"""TOML + environment configuration loader for toolhub."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from toolhub.constants import (
	DEFAULT_DISCOVERY_MODE,
	DEFAULT_ESSENTIAL_TOOLS,
	DEFAULT_TOOL_PREFIX,
	FUZZY_MIN_SIMILARITY,
	MAX_SEARCH_CACHE_SIZE,
	STRATEGY_WEIGHTS,
)
from toolhub.models import CategoryFilter
from toolhub.search import resolve_weights

DEFAULT_CONFIG = "toolhub.toml"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
VALID_DISCOVERY_MODES = ("lazy", "eager")

ENV_LOG_LEVEL = "TOOLHUB_LOG_LEVEL"
ENV_DISCOVERY_MODE = "TOOLHUB_TOOL_DISCOVERY_MODE"
ENV_ESSENTIAL_TOOLS = "TOOLHUB_ESSENTIAL_TOOLS"
ENV_ENABLED_CATEGORIES = "TOOLHUB_ENABLED_TOOL_CATEGORIES"
ENV_DISABLED_GROUPS = "TOOLHUB_DISABLED_TOOL_GROUPS"
ENV_TOOL_PREFIX = "TOOLHUB_TOOL_PREFIX"


@dataclass
class ServerConfig:
	"""Identity of the MCP server."""

	name: str = "toolhub"
	version: str = "0.1.0"
	tool_prefix: str = DEFAULT_TOOL_PREFIX


@dataclass
class LoggingConfig:
	"""Logging settings."""

	level: str = "INFO"
	json: bool = False


@dataclass
class DiscoveryConfig:
	"""Which tools tools/list advertises."""

	mode: str = DEFAULT_DISCOVERY_MODE  # lazy/eager
	essential_tools: list[str] = field(default_factory=lambda: list(DEFAULT_ESSENTIAL_TOOLS))
	enabled_categories: str = ""  # "tasks,issues:read"; empty = all
	disabled_groups: str = ""  # same syntax; takes precedence

	@property
	def category_filter(self) -> CategoryFilter:
		return parse_category_filter(self.enabled_categories)

	@property
	def disabled_filter(self) -> CategoryFilter | None:
		parsed = parse_category_filter(self.disabled_groups)
		return None if parsed.include_all else parsed


@dataclass
class SearchConfig:
	"""search_tools ranking settings."""

	default_limit: int = 10
	fuzzy_min_similarity: float = FUZZY_MIN_SIMILARITY
	cache_size: int = MAX_SEARCH_CACHE_SIZE
	weights: dict[str, float] = field(default_factory=lambda: dict(STRATEGY_WEIGHTS))


@dataclass
class HttpConfig:
	"""Upstream API client settings."""

	base_url: str = ""
	timeout: float = 30.0
	max_retries: int = 3
	backoff_base: float = 0.5
	backoff_max: float = 10.0


@dataclass
class TracingConfig:
	"""OpenTelemetry tracing settings."""

	enabled: bool = False
	exporter: str = "console"  # console/otlp
	service_name: str = "toolhub"
	otlp_endpoint: str = "http://localhost:4317"


@dataclass
class ToolhubConfig:
	"""Top-level configuration."""

	server: ServerConfig = field(default_factory=ServerConfig)
	logging: LoggingConfig = field(default_factory=LoggingConfig)
	discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
	search: SearchConfig = field(default_factory=SearchConfig)
	http: HttpConfig = field(default_factory=HttpConfig)
	tracing: TracingConfig = field(default_factory=TracingConfig)


def parse_category_filter(value: str | None) -> CategoryFilter:
	"""Parse "tasks,issues:read" into a CategoryFilter.

	Empty input means include everything. Malformed items ("issues::read",
	"a:b:c", ":read") are skipped; if nothing valid remains the filter
	includes everything.
	"""
	if not value or not value.strip():
		return CategoryFilter()

	categories: set[str] = set()
	with_subcategories: dict[str, set[str]] = {}

	for part in (p.strip() for p in value.split(",")):
		if not part:
			continue
		if ":" in part:
			segments = part.split(":")
			if len(segments) != 2:
				continue
			category, subcategory = (s.strip() for s in segments)
			if not category or not subcategory:
				continue
			with_subcategories.setdefault(category, set()).add(subcategory)
		else:
			categories.add(part)

	return CategoryFilter(
		categories=categories,
		categories_with_subcategories=with_subcategories,
		include_all=not categories and not with_subcategories,
	)


def _parse_name_list(value: str) -> list[str]:
	return [name.strip() for name in value.split(",") if name.strip()]


def _build_server(data: dict[str, Any]) -> ServerConfig:
	return ServerConfig(
		name=str(data.get("name", "toolhub")),
		version=str(data.get("version", "0.1.0")),
		tool_prefix=str(data.get("tool_prefix", DEFAULT_TOOL_PREFIX)),
	)


def _build_logging(data: dict[str, Any]) -> LoggingConfig:
	level = str(data.get("level", "INFO")).upper()
	return LoggingConfig(
		level=level if level in VALID_LOG_LEVELS else "INFO",
		json=bool(data.get("json", False)),
	)


def _build_discovery(data: dict[str, Any]) -> DiscoveryConfig:
	mode = str(data.get("mode", DEFAULT_DISCOVERY_MODE))
	essential = data.get("essential_tools")
	return DiscoveryConfig(
		mode=mode if mode in VALID_DISCOVERY_MODES else DEFAULT_DISCOVERY_MODE,
		essential_tools=[str(n) for n in essential] if essential else list(DEFAULT_ESSENTIAL_TOOLS),
		enabled_categories=str(data.get("enabled_categories", "")),
		disabled_groups=str(data.get("disabled_groups", "")),
	)


def _build_search(data: dict[str, Any]) -> SearchConfig:
	sc = SearchConfig()
	if "default_limit" in data:
		sc.default_limit = int(data["default_limit"])
	if "fuzzy_min_similarity" in data:
		sc.fuzzy_min_similarity = float(data["fuzzy_min_similarity"])
	if "cache_size" in data:
		sc.cache_size = int(data["cache_size"])
	if "weights" in data:
		sc.weights = {str(k): float(v) for k, v in data["weights"].items()}
	return sc


def _build_http(data: dict[str, Any]) -> HttpConfig:
	hc = HttpConfig()
	if "base_url" in data:
		hc.base_url = str(data["base_url"])
	for key in ("timeout", "backoff_base", "backoff_max"):
		if key in data:
			setattr(hc, key, float(data[key]))
	if "max_retries" in data:
		hc.max_retries = int(data["max_retries"])
	return hc


def _build_tracing(data: dict[str, Any]) -> TracingConfig:
	tc = TracingConfig()
	if "enabled" in data:
		tc.enabled = bool(data["enabled"])
	for key in ("exporter", "service_name", "otlp_endpoint"):
		if key in data:
			setattr(tc, key, str(data[key]))
	return tc


def apply_env_overrides(config: ToolhubConfig, environ: Mapping[str, str] | None = None) -> ToolhubConfig:
	"""Override file values from TOOLHUB_* environment variables.

	Invalid values are ignored, keeping the file/default value.
	"""
	env = os.environ if environ is None else environ

	level = env.get(ENV_LOG_LEVEL, "").strip().upper()
	if level in VALID_LOG_LEVELS:
		config.logging.level = level

	mode = env.get(ENV_DISCOVERY_MODE, "").strip().lower()
	if mode in VALID_DISCOVERY_MODES:
		config.discovery.mode = mode

	essential = env.get(ENV_ESSENTIAL_TOOLS, "")
	if essential.strip():
		config.discovery.essential_tools = _parse_name_list(essential)

	if ENV_ENABLED_CATEGORIES in env:
		config.discovery.enabled_categories = env[ENV_ENABLED_CATEGORIES]
	if ENV_DISABLED_GROUPS in env:
		config.discovery.disabled_groups = env[ENV_DISABLED_GROUPS]

	if ENV_TOOL_PREFIX in env:
		config.server.tool_prefix = env[ENV_TOOL_PREFIX].strip()

	return config


def load_config(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> ToolhubConfig:
	"""Load a toolhub.toml config file, then apply environment overrides.

	Args:
		path: Path to the TOML config file. None uses defaults only.
		environ: Environment mapping (defaults to os.environ).

	Returns:
		Parsed ToolhubConfig.

	Raises:
		FileNotFoundError: If path is given but doesn't exist.
		tomllib.TOMLDecodeError: If config is invalid TOML.
	"""
	tc = ToolhubConfig()
	if path is not None:
		config_path = Path(path)
		if not config_path.exists():
			raise FileNotFoundError(f"Config file not found: {config_path}")

		with open(config_path, "rb") as f:
			data = tomllib.load(f)

		if "server" in data:
			tc.server = _build_server(data["server"])
		if "logging" in data:
			tc.logging = _build_logging(data["logging"])
		if "discovery" in data:
			tc.discovery = _build_discovery(data["discovery"])
		if "search" in data:
			tc.search = _build_search(data["search"])
		if "http" in data:
			tc.http = _build_http(data["http"])
		if "tracing" in data:
			tc.tracing = _build_tracing(data["tracing"])

	return apply_env_overrides(tc, environ)


def validate_config(config: ToolhubConfig) -> list[tuple[str, str]]:
	"""Perform semantic validation of a loaded ToolhubConfig.

	Returns a list of (level, message) tuples where level is 'error' or 'warning'.
	"""
	issues: list[tuple[str, str]] = []

	try:
		resolve_weights(config.search.weights)
	except ValueError as e:
		issues.append(("error", f"search.weights: {e}"))
	else:
		total = sum(config.search.weights.values())
		if abs(total - 1.0) > 1e-6:
			issues.append(("warning", f"search.weights sum to {total:.3f}, not 1.0; they are rescaled"))

	if not 0.0 <= config.search.fuzzy_min_similarity <= 1.0:
		issues.append(("error", f"search.fuzzy_min_similarity out of range: {config.search.fuzzy_min_similarity}"))
	if config.search.default_limit < 1:
		issues.append(("error", f"search.default_limit must be positive: {config.search.default_limit}"))
	if config.search.cache_size < 0:
		issues.append(("error", f"search.cache_size is negative: {config.search.cache_size}"))

	if config.discovery.mode == "lazy" and not config.discovery.essential_tools:
		issues.append(("warning", "lazy discovery with no essential tools advertises nothing"))

	if config.http.max_retries < 0:
		issues.append(("error", f"http.max_retries is negative: {config.http.max_retries}"))
	if config.http.timeout <= 0:
		issues.append(("error", f"http.timeout must be positive: {config.http.timeout}"))
	if config.http.backoff_max < config.http.backoff_base:
		issues.append(("warning", "http.backoff_max is lower than http.backoff_base"))

	if config.tracing.exporter not in ("console", "otlp"):
		issues.append(("error", f"tracing.exporter must be 'console' or 'otlp': {config.tracing.exporter}"))

	return issues
