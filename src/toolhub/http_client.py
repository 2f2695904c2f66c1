"""Async HTTP client for upstream APIs, with retry/backoff and error mapping.

Tools that wrap an upstream REST API build one HttpClient from the [http]
config section (`HttpClient(config.http)`) and share it across their calls.

Every failure surfaces as ApiError: HTTP error responses keep their status
code, transport failures (no response at all) use status 0.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from toolhub.config import HttpConfig

logger = logging.getLogger(__name__)

NETWORK_ERROR = 0
TOO_MANY_REQUESTS = 429
DEFAULT_RETRY_AFTER = 60


class ApiError(Exception):
	"""Upstream API failure with status code and optional field errors."""

	def __init__(
		self,
		status_code: int,
		message: str,
		errors: dict[str, list[str]] | None = None,
		retry_after: int | None = None,
	) -> None:
		super().__init__(message)
		self.status_code = status_code
		self.message = message
		self.errors = errors
		self.retry_after = retry_after

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {"statusCode": self.status_code, "message": self.message}
		if self.errors:
			data["errors"] = self.errors
		if self.retry_after is not None:
			data["retryAfter"] = self.retry_after
		return data

	def __str__(self) -> str:
		return f"[{self.status_code}] {self.message}"


def _parse_retry_after(value: str | None) -> int:
	if value:
		try:
			parsed = int(value)
		except ValueError:
			return DEFAULT_RETRY_AFTER
		if parsed > 0:
			return parsed
	return DEFAULT_RETRY_AFTER


def map_http_error(response: httpx.Response) -> ApiError:
	"""Build an ApiError from an error response.

	The message is taken from errorMessages[0], then message, then the reason
	phrase. 429 responses carry retry_after from the Retry-After header.
	"""
	if response.status_code == TOO_MANY_REQUESTS:
		retry_after = _parse_retry_after(response.headers.get("retry-after"))
		return ApiError(
			TOO_MANY_REQUESTS,
			f"Rate limit exceeded. Retry after {retry_after} seconds.",
			retry_after=retry_after,
		)

	try:
		data = response.json()
	except ValueError:
		data = None

	fallback = response.reason_phrase or f"HTTP {response.status_code}"
	if not isinstance(data, dict):
		return ApiError(response.status_code, fallback)

	error_messages = data.get("errorMessages")
	message = (error_messages[0] if error_messages else None) or data.get("message") or fallback
	errors = data.get("errors") if isinstance(data.get("errors"), dict) else None
	return ApiError(response.status_code, str(message), errors)


def map_transport_error(exc: httpx.TransportError) -> ApiError:
	if isinstance(exc, httpx.TimeoutException):
		return ApiError(NETWORK_ERROR, f"Request timed out: {exc}")
	return ApiError(NETWORK_ERROR, f"No response from server: {exc}")


@dataclass
class RetryPolicy:
	"""Exponential backoff with a cap and jitter."""

	max_retries: int = 3
	backoff_base: float = 0.5
	backoff_max: float = 10.0
	jitter: float = 0.1
	retryable_statuses: frozenset[int] = field(
		default_factory=lambda: frozenset({NETWORK_ERROR, 408, TOO_MANY_REQUESTS, 500, 502, 503, 504})
	)

	@classmethod
	def from_config(cls, config: HttpConfig) -> RetryPolicy:
		return cls(
			max_retries=config.max_retries,
			backoff_base=config.backoff_base,
			backoff_max=config.backoff_max,
		)

	def should_retry(self, error: ApiError, attempt: int) -> bool:
		return attempt < self.max_retries and error.status_code in self.retryable_statuses

	def delay(self, attempt: int, error: ApiError | None = None) -> float:
		"""Seconds to wait before retry number attempt + 1."""
		if error is not None and error.retry_after is not None:
			return min(float(error.retry_after), self.backoff_max)
		base = min(self.backoff_base * (2 ** attempt), self.backoff_max)
		return base + random.uniform(0, base * self.jitter)


class HttpClient:
	"""JSON-over-HTTP client wrapping httpx.AsyncClient."""

	def __init__(
		self,
		config: HttpConfig | None = None,
		retry_policy: RetryPolicy | None = None,
		headers: Mapping[str, str] | None = None,
		transport: httpx.AsyncBaseTransport | None = None,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		self._config = config or HttpConfig()
		self._retry = retry_policy or RetryPolicy.from_config(self._config)
		self._sleep = sleep
		self._client = httpx.AsyncClient(
			base_url=self._config.base_url,
			timeout=self._config.timeout,
			headers=dict(headers or {}),
			transport=transport,
		)

	async def __aenter__(self) -> HttpClient:
		return self

	async def __aexit__(self, *args: object) -> None:
		await self.close()

	async def close(self) -> None:
		await self._client.aclose()

	async def request(
		self,
		method: str,
		url: str,
		*,
		params: Mapping[str, Any] | None = None,
		json: Any = None,
	) -> Any:
		"""Send a request, retrying retryable failures, and return decoded JSON.

		Raises:
			ApiError: When the request fails and retries are exhausted.
		"""
		attempt = 0
		while True:
			try:
				response = await self._client.request(method, url, params=params, json=json)
			except httpx.TransportError as exc:
				error = map_transport_error(exc)
			else:
				logger.debug("HTTP %s %s -> %d", method, url, response.status_code)
				if response.is_success:
					return _decode(response)
				error = map_http_error(response)

			if not self._retry.should_retry(error, attempt):
				logger.error("HTTP %s %s failed: %s", method, url, error)
				raise error

			wait = self._retry.delay(attempt, error)
			attempt += 1
			logger.warning(
				"HTTP %s %s failed (%s), retry %d/%d in %.2fs",
				method, url, error, attempt, self._retry.max_retries, wait,
			)
			await self._sleep(wait)

	async def get(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
		return await self.request("GET", url, params=params)

	async def post(self, url: str, json: Any = None) -> Any:
		return await self.request("POST", url, json=json)

	async def patch(self, url: str, json: Any = None) -> Any:
		return await self.request("PATCH", url, json=json)

	async def delete(self, url: str) -> Any:
		return await self.request("DELETE", url)


def _decode(response: httpx.Response) -> Any:
	if not response.content:
		return None
	try:
		return response.json()
	except ValueError:
		return response.text
