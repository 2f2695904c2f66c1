"""MCP stdio server exposing the registry's tools."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from toolhub.composition import build_registry
from toolhub.config import DiscoveryConfig, ToolhubConfig
from toolhub.registry import ToolRegistry
from toolhub.tools.base import ToolDefinition
from toolhub.tracing import SearchTracer, get_current_trace_id

logger = logging.getLogger(__name__)


def _to_tool(definition: ToolDefinition) -> Tool:
	return Tool(
		name=definition.name,
		description=definition.description,
		inputSchema=definition.input_schema,
	)


def list_tool_definitions(registry: ToolRegistry, discovery: DiscoveryConfig) -> list[Tool]:
	"""Tools advertised in tools/list for the configured discovery mode."""
	definitions = registry.definitions_for_mode(
		discovery.mode,
		essential_names=discovery.essential_tools,
		category_filter=discovery.category_filter,
		disabled_filter=discovery.disabled_filter,
	)
	logger.debug("tools/list (%s): %d tool(s)", discovery.mode, len(definitions))
	return [_to_tool(d) for d in definitions]


async def call_registry_tool(
	registry: ToolRegistry,
	tracer: SearchTracer | None,
	name: str,
	arguments: dict[str, Any] | None,
) -> list[TextContent]:
	"""Run a tool through the registry; failures come back as JSON error text."""
	if tracer is None:
		result = await registry.execute(name, arguments)
	else:
		with tracer.start_tool_span(name) as span:
			trace_id = get_current_trace_id()
			if trace_id:
				logger.debug("tool_call %s trace_id=%s", name, trace_id)
			result = await registry.execute(name, arguments)
			span.set_attribute("tool.is_error", result.is_error)
	return [TextContent(type="text", text=result.to_text())]


def create_server(
	registry: ToolRegistry,
	config: ToolhubConfig,
	tracer: SearchTracer | None = None,
) -> Server:
	server: Server = Server(config.server.name, version=config.server.version)

	@server.list_tools()
	async def list_tools() -> list[Tool]:
		return list_tool_definitions(registry, config.discovery)

	@server.call_tool()
	async def call_tool(name: str, arguments: dict) -> list[TextContent]:
		return await call_registry_tool(registry, tracer, name, arguments)

	return server


def run_mcp_server(config: ToolhubConfig) -> None:
	"""Entry point for the `toolhub serve` CLI command."""
	import asyncio

	tracer = SearchTracer(config.tracing)
	registry = build_registry(config, tracer=tracer)
	server = create_server(registry, config, tracer)
	logger.info(
		"Starting %s %s over stdio (%s discovery, %d tools)",
		config.server.name, config.server.version, config.discovery.mode, registry.tool_count,
	)

	async def _run():
		async with stdio_server() as (read_stream, write_stream):
			await server.run(read_stream, write_stream, server.create_initialization_options())

	try:
		asyncio.run(_run())
	finally:
		tracer.shutdown()
