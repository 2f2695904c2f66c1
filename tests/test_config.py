"""Tests for config loading."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from toolhub.config import (
	ToolhubConfig,
	apply_env_overrides,
	load_config,
	parse_category_filter,
	validate_config,
)


@pytest.fixture()
def full_config(tmp_path: Path) -> Path:
	toml = tmp_path / "toolhub.toml"
	toml.write_text("""\
[server]
name = "tracker-mcp"
version = "2.1.0"
tool_prefix = "yt_"

[logging]
level = "debug"
json = true

[discovery]
mode = "eager"
essential_tools = ["ping"]
enabled_categories = "issues,comments:read"
disabled_groups = "issues:write"

[search]
default_limit = 5
fuzzy_min_similarity = 0.5
cache_size = 10

[search.weights]
name = 0.5
description = 0.5

[http]
base_url = "https://api.example.com/v2"
timeout = 15
max_retries = 5
backoff_base = 1
backoff_max = 20

[tracing]
enabled = true
exporter = "otlp"
service_name = "tracker"
""")
	return toml


class TestLoadConfig:
	def test_defaults_without_file(self) -> None:
		config = load_config(None, environ={})
		assert config.server.tool_prefix == "fr_"
		assert config.discovery.mode == "lazy"
		assert config.discovery.essential_tools == ["ping", "search_tools"]
		assert config.search.weights == {"name": 0.4, "description": 0.3, "category": 0.2, "fuzzy": 0.1}
		assert config.tracing.enabled is False

	def test_full_file(self, full_config: Path) -> None:
		config = load_config(full_config, environ={})
		assert config.server.name == "tracker-mcp"
		assert config.server.tool_prefix == "yt_"
		assert config.logging.level == "DEBUG"
		assert config.logging.json is True
		assert config.discovery.mode == "eager"
		assert config.discovery.essential_tools == ["ping"]
		assert config.search.default_limit == 5
		assert config.search.weights == {"name": 0.5, "description": 0.5}
		assert config.http.base_url == "https://api.example.com/v2"
		assert config.http.timeout == 15.0
		assert config.http.max_retries == 5
		assert config.tracing.exporter == "otlp"

	def test_partial_file_keeps_defaults(self, tmp_path: Path) -> None:
		toml = tmp_path / "toolhub.toml"
		toml.write_text('[server]\nname = "x"\n')
		config = load_config(toml, environ={})
		assert config.server.name == "x"
		assert config.search.cache_size == 100

	def test_invalid_values_fall_back(self, tmp_path: Path) -> None:
		toml = tmp_path / "toolhub.toml"
		toml.write_text('[logging]\nlevel = "LOUD"\n[discovery]\nmode = "greedy"\n')
		config = load_config(toml, environ={})
		assert config.logging.level == "INFO"
		assert config.discovery.mode == "lazy"

	def test_missing_file(self, tmp_path: Path) -> None:
		with pytest.raises(FileNotFoundError):
			load_config(tmp_path / "nope.toml")

	def test_invalid_toml(self, tmp_path: Path) -> None:
		toml = tmp_path / "toolhub.toml"
		toml.write_text("[server\n")
		with pytest.raises(tomllib.TOMLDecodeError):
			load_config(toml)

	def test_discovery_filters(self, full_config: Path) -> None:
		config = load_config(full_config, environ={})
		enabled = config.discovery.category_filter
		assert enabled.categories == {"issues"}
		assert enabled.categories_with_subcategories == {"comments": {"read"}}
		disabled = config.discovery.disabled_filter
		assert disabled is not None
		assert disabled.categories_with_subcategories == {"issues": {"write"}}

	def test_no_disabled_groups(self) -> None:
		assert ToolhubConfig().discovery.disabled_filter is None


class TestEnvOverrides:
	def test_overrides_file_values(self, full_config: Path) -> None:
		config = load_config(full_config, environ={
			"TOOLHUB_LOG_LEVEL": "warning",
			"TOOLHUB_TOOL_DISCOVERY_MODE": "LAZY",
			"TOOLHUB_ESSENTIAL_TOOLS": "ping, search_tools ,get_task",
			"TOOLHUB_ENABLED_TOOL_CATEGORIES": "tasks",
			"TOOLHUB_DISABLED_TOOL_GROUPS": "",
			"TOOLHUB_TOOL_PREFIX": "fr_",
		})
		assert config.logging.level == "WARNING"
		assert config.discovery.mode == "lazy"
		assert config.discovery.essential_tools == ["ping", "search_tools", "get_task"]
		assert config.discovery.enabled_categories == "tasks"
		assert config.discovery.disabled_filter is None
		assert config.server.tool_prefix == "fr_"

	def test_invalid_env_values_ignored(self) -> None:
		config = apply_env_overrides(ToolhubConfig(), {
			"TOOLHUB_LOG_LEVEL": "verbose",
			"TOOLHUB_TOOL_DISCOVERY_MODE": "sometimes",
			"TOOLHUB_ESSENTIAL_TOOLS": "  ",
		})
		assert config.logging.level == "INFO"
		assert config.discovery.mode == "lazy"
		assert config.discovery.essential_tools == ["ping", "search_tools"]

	def test_empty_prefix_allowed(self) -> None:
		config = apply_env_overrides(ToolhubConfig(), {"TOOLHUB_TOOL_PREFIX": ""})
		assert config.server.tool_prefix == ""


class TestParseCategoryFilter:
	@pytest.mark.parametrize("value", [None, "", "   ", ",,"])
	def test_empty_includes_all(self, value: str | None) -> None:
		assert parse_category_filter(value).include_all

	def test_mixed(self) -> None:
		parsed = parse_category_filter("tasks, issues:read ,issues:write,comments")
		assert not parsed.include_all
		assert parsed.categories == {"tasks", "comments"}
		assert parsed.categories_with_subcategories == {"issues": {"read", "write"}}

	@pytest.mark.parametrize("value", ["issues::read", "a:b:c", ":read", "issues:"])
	def test_malformed_items_skipped(self, value: str) -> None:
		assert parse_category_filter(value).include_all

	def test_malformed_mixed_with_valid(self) -> None:
		parsed = parse_category_filter("issues::read,tasks")
		assert parsed.categories == {"tasks"}
		assert parsed.categories_with_subcategories == {}


class TestValidateConfig:
	def test_defaults_are_clean(self) -> None:
		assert validate_config(ToolhubConfig()) == []

	def test_full_file_is_clean(self, full_config: Path) -> None:
		issues = validate_config(load_config(full_config, environ={}))
		assert issues == []

	def test_weights_not_summing_to_one(self) -> None:
		config = ToolhubConfig()
		config.search.weights = {"name": 0.9, "fuzzy": 0.9}
		issues = validate_config(config)
		assert ("warning", "search.weights sum to 1.800, not 1.0; they are rescaled") in issues

	def test_unknown_strategy_is_error(self) -> None:
		config = ToolhubConfig()
		config.search.weights = {"semantic": 1.0}
		levels = [lvl for lvl, _ in validate_config(config)]
		assert levels == ["error"]

	def test_all_zero_weights_is_error(self) -> None:
		config = ToolhubConfig()
		config.search.weights = {"name": 0.0}
		issues = validate_config(config)
		assert issues[0][0] == "error"

	def test_range_checks(self) -> None:
		config = ToolhubConfig()
		config.search.fuzzy_min_similarity = 1.5
		config.search.default_limit = 0
		config.search.cache_size = -1
		config.http.max_retries = -1
		config.http.timeout = 0
		config.tracing.exporter = "jaeger"
		errors = [msg for lvl, msg in validate_config(config) if lvl == "error"]
		assert len(errors) == 6

	def test_lazy_without_essentials_warns(self) -> None:
		config = ToolhubConfig()
		config.discovery.essential_tools = []
		assert validate_config(config) == [("warning", "lazy discovery with no essential tools advertises nothing")]

	def test_backoff_order_warns(self) -> None:
		config = ToolhubConfig()
		config.http.backoff_base = 5.0
		config.http.backoff_max = 1.0
		assert [lvl for lvl, _ in validate_config(config)] == ["warning"]
