"""Connect the toolhub server to MCP desktop clients by editing their JSON config.

Supported clients keep their servers under an "mcpServers" key. Writes touch
only our own entry; every other key in the file is preserved.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SERVERS_KEY = "mcpServers"


@dataclass
class ServerEntry:
	"""How a client should launch the server."""

	command: str = "toolhub"
	args: list[str] = field(default_factory=lambda: ["serve"])
	env: dict[str, str] = field(default_factory=dict)

	def to_dict(self) -> dict[str, Any]:
		return {"command": self.command, "args": list(self.args), "env": dict(self.env)}


@dataclass
class ConnectionStatus:
	connected: bool
	config_path: str = ""
	server_config: dict[str, Any] | None = None
	error: str = ""


class JsonConfigConnector:
	"""Adds/removes a server entry in a client's JSON config file."""

	def __init__(self, client: str, config_path: Path, server_name: str = "toolhub") -> None:
		self.client = client
		self.config_path = Path(config_path)
		self.server_name = server_name

	def is_installed(self) -> bool:
		return self.config_path.parent.is_dir()

	def _read(self) -> dict[str, Any]:
		text = self.config_path.read_text(encoding="utf-8")
		if not text.strip():
			return {}
		data = json.loads(text)
		if not isinstance(data, dict):
			raise ValueError(f"{self.config_path} does not contain a JSON object")
		return data

	def _write(self, data: dict[str, Any]) -> None:
		self.config_path.parent.mkdir(parents=True, exist_ok=True)
		tmp = self.config_path.with_suffix(self.config_path.suffix + ".tmp")
		tmp.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
		tmp.replace(self.config_path)

	def status(self) -> ConnectionStatus:
		path = str(self.config_path)
		if not self.config_path.exists():
			return ConnectionStatus(connected=False, config_path=path, error="config file not found")
		try:
			data = self._read()
		except (OSError, ValueError) as e:
			return ConnectionStatus(connected=False, config_path=path, error=f"cannot read config: {e}")
		servers = data.get(SERVERS_KEY) or {}
		entry = servers.get(self.server_name) if isinstance(servers, dict) else None
		if entry is None:
			return ConnectionStatus(connected=False, config_path=path)
		return ConnectionStatus(connected=True, config_path=path, server_config=entry)

	def connect(self, entry: ServerEntry) -> None:
		"""Add or replace our server entry.

		Raises:
			ValueError: If the existing file is not a JSON object.
		"""
		data = self._read() if self.config_path.exists() else {}
		servers = data.get(SERVERS_KEY)
		if not isinstance(servers, dict):
			servers = {}
			data[SERVERS_KEY] = servers
		servers[self.server_name] = entry.to_dict()
		self._write(data)
		logger.info("Connected %s to %s (%s)", self.server_name, self.client, self.config_path)

	def disconnect(self) -> bool:
		"""Remove our server entry. Returns False if it was not present."""
		if not self.config_path.exists():
			return False
		data = self._read()
		servers = data.get(SERVERS_KEY)
		if not isinstance(servers, dict) or self.server_name not in servers:
			return False
		del servers[self.server_name]
		self._write(data)
		logger.info("Disconnected %s from %s", self.server_name, self.client)
		return True


def _claude_desktop_path(home: Path) -> Path:
	if sys.platform == "darwin":
		return home / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
	if sys.platform == "win32":
		appdata = os.environ.get("APPDATA")
		base = Path(appdata) if appdata else home / "AppData" / "Roaming"
		return base / "Claude" / "claude_desktop_config.json"
	return home / ".config" / "Claude" / "claude_desktop_config.json"


CLIENTS = {
	"claude-desktop": _claude_desktop_path,
	"cursor": lambda home: home / ".cursor" / "mcp.json",
	"windsurf": lambda home: home / ".codeium" / "windsurf" / "mcp_config.json",
}


def get_connector(client: str, server_name: str = "toolhub", home: Path | None = None) -> JsonConfigConnector:
	"""Connector for a known client name.

	Raises:
		ValueError: If the client is unknown.
	"""
	path_for = CLIENTS.get(client)
	if path_for is None:
		raise ValueError(f"Unknown client: {client!r} (expected one of {', '.join(sorted(CLIENTS))})")
	return JsonConfigConnector(client, path_for(home or Path.home()), server_name)
