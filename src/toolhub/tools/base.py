"""Base class for MCP tools: metadata, schema-derived definition, validated execution."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from toolhub.models import ToolMetadata

logger = logging.getLogger(__name__)

CONSENT_WARNING = (
	"WARNING: this operation changes user data. "
	"Ask the user for explicit confirmation before calling it.\n\n"
)


def build_tool_name(prefix: str, name: str) -> str:
	"""Prefix a bare tool name once ("ping" -> "fr_ping")."""
	if not prefix or name.startswith(prefix):
		return name
	return f"{prefix}{name}"


def format_validation_error(error: ValidationError) -> str:
	"""Flatten pydantic errors into "field: message; ..." form."""
	parts: list[str] = []
	for issue in error.errors():
		location = ".".join(str(p) for p in issue.get("loc", ()))
		message = issue.get("msg", "invalid value")
		parts.append(f"{location}: {message}" if location else message)
	return "; ".join(parts)


@dataclass
class ToolDefinition:
	"""MCP-facing definition: name, description and JSON-Schema input."""

	name: str
	description: str
	input_schema: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

	def to_dict(self) -> dict[str, Any]:
		return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


@dataclass
class ToolResult:
	"""Outcome of a tool call, serialized as JSON text content."""

	payload: dict[str, Any]
	is_error: bool = False

	def to_text(self) -> str:
		return json.dumps(self.payload, indent=2, ensure_ascii=False, default=str)


def success_result(data: Any) -> ToolResult:
	return ToolResult(payload={"success": True, "data": data})


def error_result(message: str, error: BaseException | str | None = None, **extra: Any) -> ToolResult:
	payload: dict[str, Any] = {"success": False, "message": message}
	if error is not None:
		payload["error"] = str(error)
	payload.update(extra)
	return ToolResult(payload=payload, is_error=True)


def schema_from_model(model: type[BaseModel] | None) -> dict[str, Any]:
	"""JSON Schema for a pydantic params model (empty object schema when None)."""
	if model is None:
		return {"type": "object", "properties": {}}
	schema = model.model_json_schema()
	schema.pop("title", None)
	schema.setdefault("properties", {})
	return schema


def build_definition(metadata: ToolMetadata, input_schema: dict[str, Any] | None = None) -> ToolDefinition:
	"""Definition for a tool; consent-gated tools get a warning prefix."""
	description = metadata.description
	if metadata.requires_explicit_user_consent:
		description = CONSENT_WARNING + description
	return ToolDefinition(
		name=metadata.name,
		description=description,
		input_schema=input_schema if input_schema is not None else schema_from_model(None),
	)


class BaseTool(ABC):
	"""A single named, schema-validated operation exposed to the agent.

	Subclasses set METADATA (and PARAMS_MODEL when they take arguments) and
	implement run(). execute() validates arguments and converts any failure
	into an error result. The composition root may pass prefixed metadata to
	the constructor in place of the class default.
	"""

	METADATA: ClassVar[ToolMetadata]
	PARAMS_MODEL: ClassVar[type[BaseModel] | None] = None

	def __init__(self, metadata: ToolMetadata | None = None) -> None:
		self.metadata = metadata if metadata is not None else type(self).METADATA

	@classmethod
	def input_schema(cls) -> dict[str, Any]:
		return schema_from_model(cls.PARAMS_MODEL)

	def definition(self) -> ToolDefinition:
		return build_definition(self.metadata, self.input_schema())

	@property
	def name(self) -> str:
		return self.metadata.name

	async def execute(self, params: dict[str, Any] | None) -> ToolResult:
		arguments = params or {}
		parsed: BaseModel | dict[str, Any]
		if self.PARAMS_MODEL is not None:
			try:
				parsed = self.PARAMS_MODEL.model_validate(arguments)
			except ValidationError as exc:
				message = format_validation_error(exc)
				logger.info("Invalid parameters for %s: %s", self.name, message)
				return error_result("Invalid parameters", message)
		else:
			parsed = arguments

		try:
			data = await self.run(parsed)
		except Exception as exc:
			logger.error("Tool %s failed: %s", self.name, exc, exc_info=True)
			return error_result(f"Tool {self.name} failed", exc)
		return success_result(data)

	@abstractmethod
	async def run(self, params: Any) -> Any:
		"""Perform the operation and return JSON-serializable data."""
