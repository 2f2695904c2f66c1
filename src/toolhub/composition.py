"""Composition root: the ordered registration list and the registry built from it."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from toolhub.config import ToolhubConfig
from toolhub.models import ToolMetadata
from toolhub.registry import ToolRegistration, ToolRegistry
from toolhub.tools.base import build_tool_name
from toolhub.tools.ping import PingTool
from toolhub.tools.search_tools import SearchToolsTool
from toolhub.tracing import SearchTracer

logger = logging.getLogger(__name__)


def prefixed(metadata: ToolMetadata, prefix: str) -> ToolMetadata:
	name = build_tool_name(prefix, metadata.name)
	if name == metadata.name:
		return metadata
	return replace(metadata, name=name)


def build_registrations(
	config: ToolhubConfig,
	registry: ToolRegistry,
	extra: Iterable[ToolRegistration] = (),
) -> list[ToolRegistration]:
	"""Built-in tools first, then extra registrations, all with the server prefix.

	Factories close over the registry so tools are only constructed on first call.
	"""
	prefix = config.server.tool_prefix
	ping_meta = prefixed(PingTool.METADATA, prefix)
	search_meta = prefixed(SearchToolsTool.METADATA, prefix)

	registrations = [
		ToolRegistration.for_tool(
			PingTool,
			factory=lambda: PingTool(
				config.server.name,
				config.server.version,
				tool_count=registry.tool_count,
				metadata=ping_meta,
			),
			metadata=ping_meta,
		),
		ToolRegistration.for_tool(
			SearchToolsTool,
			factory=lambda: SearchToolsTool(
				registry,
				metadata=search_meta,
				default_limit=config.search.default_limit,
			),
			metadata=search_meta,
		),
	]
	for registration in extra:
		registrations.append(replace(registration, metadata=prefixed(registration.metadata, prefix)))
	return registrations


def build_registry(
	config: ToolhubConfig | None = None,
	extra: Iterable[ToolRegistration] = (),
	tracer: SearchTracer | None = None,
) -> ToolRegistry:
	"""Build the registry for a server.

	Raises:
		DuplicateToolError: If any two registrations share a (prefixed) name.
	"""
	config = config or ToolhubConfig()
	registry = ToolRegistry(
		weights=config.search.weights,
		fuzzy_min_similarity=config.search.fuzzy_min_similarity,
		cache_size=config.search.cache_size,
		tracer=tracer,
	)
	registry.register_all(build_registrations(config, registry, extra))
	logger.info("Registry ready: %d tool(s) for %s", registry.tool_count, config.server.name)
	return registry
