"""Search statistics, timing and logging setup for toolhub."""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from toolhub.tracing import get_current_trace_id


@dataclass
class SearchStats:
	"""Counters collected across search_tools calls."""

	searches: int = 0
	cache_hits: int = 0
	empty_results: int = 0
	total_duration_s: float = 0.0

	@property
	def cache_hit_rate(self) -> float:
		"""Fraction of searches answered from the cache."""
		if self.searches == 0:
			return 0.0
		return self.cache_hits / self.searches

	@property
	def avg_duration_s(self) -> float:
		"""Average ranking time over searches that missed the cache."""
		misses = self.searches - self.cache_hits
		if misses == 0:
			return 0.0
		return self.total_duration_s / misses

	def record(self, cache_hit: bool, found: int, elapsed_s: float) -> None:
		self.searches += 1
		if cache_hit:
			self.cache_hits += 1
		if found == 0:
			self.empty_results += 1
		self.total_duration_s += elapsed_s

	def to_dict(self) -> dict[str, object]:
		return {
			"searches": self.searches,
			"cache_hits": self.cache_hits,
			"cache_hit_rate": round(self.cache_hit_rate, 3),
			"empty_results": self.empty_results,
			"avg_duration_ms": round(self.avg_duration_s * 1000, 3),
		}

	def to_json(self) -> str:
		return json.dumps(self.to_dict(), indent=2)


class Timer:
	"""Wall-clock timer used around search ranking and tool calls."""

	def __init__(self) -> None:
		self._started_at = 0.0
		self.elapsed = 0.0

	@property
	def elapsed_ms(self) -> float:
		return self.elapsed * 1000

	def __enter__(self) -> Timer:
		self._started_at = time.perf_counter()
		return self

	def __exit__(self, *exc: object) -> None:
		self.elapsed = time.perf_counter() - self._started_at


_HANDLER_NAME = "toolhub-stderr"
_QUIET_LOGGERS = ("httpx", "httpcore", "mcp.server.lowlevel.server")


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
	"""Attach a single stderr handler to the "toolhub" logger.

	stdout belongs to the MCP stdio transport, so nothing is logged there.
	Calling again only updates the level and the formatter.
	"""
	package_logger = logging.getLogger("toolhub")
	package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

	handler = next((h for h in package_logger.handlers if h.get_name() == _HANDLER_NAME), None)
	if handler is None:
		handler = logging.StreamHandler(sys.stderr)
		handler.set_name(_HANDLER_NAME)
		package_logger.addHandler(handler)

	if json_format:
		handler.setFormatter(_JsonFormatter())
	else:
		handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"))

	for name in _QUIET_LOGGERS:
		logging.getLogger(name).setLevel(logging.WARNING)


class _JsonFormatter(logging.Formatter):
	"""One JSON object per record, tagged with the active trace id."""

	def format(self, record: logging.LogRecord) -> str:
		data: dict[str, object] = {
			"ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
			"level": record.levelname,
			"logger": record.name,
			"msg": record.getMessage(),
		}
		trace_id = get_current_trace_id()
		if trace_id:
			data["trace_id"] = trace_id
		if record.exc_info and record.exc_info[1] is not None:
			exc = record.exc_info[1]
			data["exception"] = str(exc)
			data["exception_type"] = type(exc).__name__
		return json.dumps(data, default=str)
