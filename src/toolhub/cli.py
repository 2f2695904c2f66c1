"""CLI interface for toolhub."""

from __future__ import annotations

import argparse
import json
import sys
import tomllib
from pathlib import Path

from toolhub.composition import build_registrations, build_registry
from toolhub.config import DEFAULT_CONFIG, ToolhubConfig, load_config, validate_config
from toolhub.connectors import CLIENTS, ServerEntry, get_connector
from toolhub.constants import DETAIL_LEVELS, MAX_TOOL_SEARCH_LIMIT
from toolhub.metrics import setup_logging
from toolhub.models import FilterCriteria, SearchOptions, ToolCategory
from toolhub.registry import ConfigurationError, InvalidArgumentError, ToolRegistry
from toolhub.validation import validate_registrations

CATEGORY_CHOICES = [c.value for c in ToolCategory]


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="toolhub",
		description="toolhub - MCP tool registry and search",
	)
	parser.add_argument("--config", default=None, help=f"Config file path (default: {DEFAULT_CONFIG} if present)")
	sub = parser.add_subparsers(dest="command")

	# toolhub serve
	sub.add_parser("serve", help="Start the MCP server (stdio)")

	# toolhub tools
	tools = sub.add_parser("tools", help="List registered tools")
	tools.add_argument("--mode", choices=["all", "lazy", "eager"], default="all",
		help="Show what tools/list advertises in this discovery mode")
	tools.add_argument("--category", choices=CATEGORY_CHOICES, default=None)
	tools.add_argument("--json", action="store_true", help="Print JSON definitions")

	# toolhub search
	search = sub.add_parser("search", help="Search tools like the search_tools tool does")
	search.add_argument("query")
	search.add_argument("--category", choices=CATEGORY_CHOICES, default=None)
	search.add_argument("--helper", dest="is_helper", action="store_true", default=None,
		help="Only helper tools")
	search.add_argument("--no-helper", dest="is_helper", action="store_false", default=None,
		help="Only API tools")
	search.add_argument("--limit", type=int, default=None, help=f"1..{MAX_TOOL_SEARCH_LIMIT}")
	search.add_argument("--detail", choices=DETAIL_LEVELS, default="name_and_description")

	# toolhub validate
	sub.add_parser("validate", help="Validate config and tool registrations")

	# toolhub connect
	connect = sub.add_parser("connect", help="Add toolhub to an MCP client config")
	connect.add_argument("client", choices=sorted(CLIENTS))
	connect.add_argument("--command", dest="server_command", default="toolhub",
		help="Executable the client launches")
	connect.add_argument("--env", action="append", default=[], metavar="KEY=VALUE",
		help="Environment variable for the server (repeatable)")

	# toolhub disconnect
	disconnect = sub.add_parser("disconnect", help="Remove toolhub from an MCP client config")
	disconnect.add_argument("client", choices=sorted(CLIENTS))

	# toolhub status
	sub.add_parser("status", help="Show connection status for every known client")

	return parser


def _load(args: argparse.Namespace) -> ToolhubConfig:
	path = args.config
	if path is None and Path(DEFAULT_CONFIG).exists():
		path = DEFAULT_CONFIG
	return load_config(path)


def cmd_serve(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Start the MCP server."""
	from toolhub.mcp_server import run_mcp_server

	run_mcp_server(config)
	return 0


def cmd_tools(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""List tools, optionally as advertised by a discovery mode."""
	registry = build_registry(config)
	if args.mode == "all":
		criteria = FilterCriteria(category=ToolCategory(args.category)) if args.category else None
		definitions = registry.definitions(registry.list(criteria))
	else:
		definitions = registry.definitions_for_mode(
			args.mode,
			essential_names=config.discovery.essential_tools,
			category_filter=config.discovery.category_filter,
			disabled_filter=config.discovery.disabled_filter,
		)

	if args.json:
		print(json.dumps([d.to_dict() for d in definitions], indent=2))
		return 0

	for definition in definitions:
		metadata = registry.get(definition.name)
		category = metadata.category.value if metadata else "?"
		print(f"  {definition.name} [{category}]")
	print(f"\n{len(definitions)} tool(s)")
	return 0


def cmd_search(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Run a search and print the JSON response."""
	registry = build_registry(config)
	options = SearchOptions(
		category=ToolCategory(args.category) if args.category else None,
		is_helper=args.is_helper,
		limit=args.limit if args.limit is not None else config.search.default_limit,
		detail_level=args.detail,
	)
	try:
		response = registry.search_tools(args.query, options)
	except InvalidArgumentError as e:
		print(f"Error: {e}")
		return 1
	print(json.dumps(response.to_dict(), indent=2))
	return 0


def cmd_validate(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Validate config semantically and check the registration list."""
	issues = validate_config(config)

	registrations = build_registrations(config, ToolRegistry())
	report = validate_registrations(r.metadata for r in registrations)
	issues += [("error", f"duplicate tool name: {name}") for name in report.duplicates]
	issues += [("error", msg) for msg in report.errors]
	issues += [("warning", msg) for msg in report.warnings]

	errors = [(lvl, msg) for lvl, msg in issues if lvl == "error"]
	warnings = [(lvl, msg) for lvl, msg in issues if lvl == "warning"]

	for level, msg in issues:
		print(f"[{level.upper()}] {msg}")

	if not issues:
		print("Config OK")

	print(f"\n{report.total_tools} tool(s), {report.tools_with_consent} requiring consent")
	print(f"{len(errors)} error(s), {len(warnings)} warning(s)")
	return 1 if errors else 0


def _parse_env(pairs: list[str]) -> dict[str, str]:
	env: dict[str, str] = {}
	for pair in pairs:
		key, sep, value = pair.partition("=")
		if not sep or not key:
			raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
		env[key] = value
	return env


def cmd_connect(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Add the server to a client's config file."""
	try:
		env = _parse_env(args.env)
	except ValueError as e:
		print(f"Error: {e}")
		return 1

	server_args = ["serve"]
	if args.config:
		server_args = ["--config", str(Path(args.config).resolve()), "serve"]

	connector = get_connector(args.client, config.server.name)
	try:
		connector.connect(ServerEntry(command=args.server_command, args=server_args, env=env))
	except (OSError, ValueError) as e:
		print(f"Error: {e}")
		return 1
	print(f"Connected '{config.server.name}' to {args.client} ({connector.config_path})")
	return 0


def cmd_disconnect(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Remove the server from a client's config file."""
	connector = get_connector(args.client, config.server.name)
	try:
		removed = connector.disconnect()
	except (OSError, ValueError) as e:
		print(f"Error: {e}")
		return 1
	if not removed:
		print(f"'{config.server.name}' is not connected to {args.client}")
		return 1
	print(f"Disconnected '{config.server.name}' from {args.client}")
	return 0


def cmd_status(args: argparse.Namespace, config: ToolhubConfig) -> int:
	"""Show connection status for every known client."""
	for client in sorted(CLIENTS):
		connector = get_connector(client, config.server.name)
		if not connector.is_installed():
			print(f"  {client}: not installed")
			continue
		status = connector.status()
		if status.connected:
			print(f"  {client}: connected ({status.config_path})")
		elif status.error:
			print(f"  {client}: not connected - {status.error}")
		else:
			print(f"  {client}: not connected")
	return 0


COMMANDS = {
	"serve": cmd_serve,
	"tools": cmd_tools,
	"search": cmd_search,
	"validate": cmd_validate,
	"connect": cmd_connect,
	"disconnect": cmd_disconnect,
	"status": cmd_status,
}


def main(argv: list[str] | None = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)

	if args.command is None:
		parser.print_help()
		return 0

	try:
		config = _load(args)
	except (FileNotFoundError, tomllib.TOMLDecodeError) as e:
		print(f"Error: {e}")
		return 1

	setup_logging(config.logging.level, config.logging.json)

	handler = COMMANDS.get(args.command)
	if handler is None:
		print(f"Unknown command: {args.command}")
		return 1

	try:
		return handler(args, config)
	except ConfigurationError as e:
		print(f"Error: {e}")
		return 1


if __name__ == "__main__":
	sys.exit(main())
