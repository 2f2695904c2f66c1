"""Startup checks over a registration list: duplicate names and consent flags."""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from toolhub.models import ToolMetadata

logger = logging.getLogger(__name__)

DESTRUCTIVE_PATTERNS = ("update", "delete", "bulk", "batch")
READ_ONLY_PATTERNS = ("get", "find", "search", "list")


@dataclass
class ValidationReport:
	"""Outcome of validate_registrations()."""

	duplicates: list[str] = field(default_factory=list)
	errors: list[str] = field(default_factory=list)
	warnings: list[str] = field(default_factory=list)
	total_tools: int = 0
	tools_with_consent: int = 0

	@property
	def success(self) -> bool:
		return not self.duplicates and not self.errors

	def to_dict(self) -> dict[str, object]:
		return {
			"success": self.success,
			"duplicates": self.duplicates,
			"errors": self.errors,
			"warnings": self.warnings,
			"stats": {
				"totalTools": self.total_tools,
				"toolsWithConsent": self.tools_with_consent,
			},
		}

	def to_json(self) -> str:
		return json.dumps(self.to_dict(), indent=2)


def is_read_only_name(name: str, patterns: Sequence[str] = READ_ONLY_PATTERNS) -> bool:
	"""True when a read-only verb appears as a whole name segment.

	"fr_tracker_get_bulk_change_status" is read-only: "_get_" wins over "bulk".
	"""
	lowered = name.lower()
	return any(f"_{p}_" in lowered or lowered.startswith(f"{p}_") for p in patterns)


def is_destructive_name(name: str, patterns: Sequence[str] = DESTRUCTIVE_PATTERNS) -> bool:
	lowered = name.lower()
	return any(p in lowered for p in patterns)


def check_consent_flags(
	tools: Iterable[ToolMetadata],
	destructive_patterns: Sequence[str] = DESTRUCTIVE_PATTERNS,
	read_only_patterns: Sequence[str] = READ_ONLY_PATTERNS,
) -> tuple[list[str], list[str]]:
	"""Return (errors, warnings) for tools whose consent flag contradicts their name.

	Helper tools are skipped since they do not modify user data directly.
	"""
	errors: list[str] = []
	warnings: list[str] = []
	for tool in tools:
		if tool.is_helper:
			continue
		read_only = is_read_only_name(tool.name, read_only_patterns)
		if is_destructive_name(tool.name, destructive_patterns) and not read_only:
			if not tool.requires_explicit_user_consent:
				errors.append(f"{tool.name}: modifies data but requires_explicit_user_consent is not set")
		if read_only and tool.requires_explicit_user_consent:
			warnings.append(f"{tool.name}: read-only tool sets requires_explicit_user_consent")
	return errors, warnings


def validate_registrations(
	tools: Iterable[ToolMetadata],
	destructive_patterns: Sequence[str] = DESTRUCTIVE_PATTERNS,
	read_only_patterns: Sequence[str] = READ_ONLY_PATTERNS,
) -> ValidationReport:
	"""Check a full registration list without building a registry."""
	metadata = list(tools)
	counts = Counter(m.name for m in metadata)
	errors, warnings = check_consent_flags(metadata, destructive_patterns, read_only_patterns)

	report = ValidationReport(
		duplicates=sorted(name for name, n in counts.items() if n > 1),
		errors=errors,
		warnings=warnings,
		total_tools=len(metadata),
		tools_with_consent=sum(1 for m in metadata if m.requires_explicit_user_consent),
	)
	for message in report.errors:
		logger.error("Registration check: %s", message)
	for message in report.warnings:
		logger.warning("Registration check: %s", message)
	if report.duplicates:
		logger.error("Registration check: duplicate tool names %s", report.duplicates)
	return report
