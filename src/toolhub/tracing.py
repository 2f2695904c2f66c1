"""OpenTelemetry spans for search_tools queries and MCP tool calls.

Each SearchTracer owns its TracerProvider; no global provider is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter

from toolhub.config import TracingConfig

logger = logging.getLogger(__name__)

SEARCH_SPAN = "search_tools"
TOOL_SPAN = "tool_call"


class NoOpSpan:
	"""Stand-in span yielded while tracing is off."""

	def set_attribute(self, key: str, value: Any) -> None:
		pass

	def set_status(self, status: Any, description: str | None = None) -> None:
		pass

	def record_exception(self, exception: BaseException) -> None:
		pass

	def end(self) -> None:
		pass


def _build_exporter(config: TracingConfig) -> SpanExporter:
	if config.exporter != "otlp":
		return ConsoleSpanExporter()
	try:
		from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
	except ImportError:
		logger.warning(
			"OTLP exporter not installed (pip install toolhub[otlp]), exporting spans to the console"
		)
		return ConsoleSpanExporter()
	return OTLPSpanExporter(endpoint=config.otlp_endpoint)


class SearchTracer:
	"""Opens spans around searches and tool calls when tracing is enabled."""

	def __init__(self, config: TracingConfig) -> None:
		self._config = config
		self._tracer: Any = None
		self.provider: TracerProvider | None = None

		if not config.enabled:
			return

		self.provider = TracerProvider(resource=Resource.create({"service.name": config.service_name}))
		self.provider.add_span_processor(SimpleSpanProcessor(_build_exporter(config)))
		self._tracer = self.provider.get_tracer("toolhub")
		logger.info("Tracing enabled (%s exporter, service %s)", config.exporter, config.service_name)

	@property
	def active(self) -> bool:
		return self._tracer is not None

	@contextmanager
	def _span(self, name: str, attributes: Mapping[str, Any]) -> Iterator[Any]:
		if not self.active:
			yield NoOpSpan()
			return
		with self._tracer.start_as_current_span(name, attributes=dict(attributes)) as span:
			yield span

	def start_search_span(self, query: str) -> AbstractContextManager[Any]:
		return self._span(SEARCH_SPAN, {"search.query": query})

	def start_tool_span(self, tool_name: str) -> AbstractContextManager[Any]:
		return self._span(TOOL_SPAN, {"tool.name": tool_name})

	def shutdown(self) -> None:
		"""Flush pending spans; a no-op when tracing is off."""
		if self.provider is not None:
			self.provider.shutdown()


def get_current_trace_id() -> str:
	"""Hex trace id of the active span, or "" when there is none."""
	ctx = trace.get_current_span().get_span_context()
	if ctx is None or ctx.trace_id == 0:
		return ""
	return format(ctx.trace_id, "032x")
