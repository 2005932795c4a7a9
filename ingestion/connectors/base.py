"""Connector abstraction, errors, and HTTP helpers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Mapping, Optional, TypeVar

import httpx

from ingestion.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class ConnectorError(Exception):
    """Base connector error."""


class TransientError(ConnectorError):
    """Retryable error (e.g., rate limit, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (e.g., 4xx semantics, missing credentials, bad payload)."""


class BaseConnector(ABC, Generic[T]):
    """Upstream connector with bounded retry and exponential backoff.

    Subclasses implement ``_fetch_raw`` (one upstream round trip) and
    ``_normalize`` (payload -> domain value). Only ``TransientError`` is
    retried; the delay before retry ``n`` is ``backoff_seconds * 2 ** (n - 1)``.
    """

    source: str

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def fetch(self) -> T:
        attempts = 0
        delay = self._backoff_seconds
        while True:
            attempts += 1
            try:
                raw = self._fetch_raw()
                return self._normalize(raw)
            except TransientError as exc:
                if attempts >= self._max_attempts:
                    raise
                logger.warning(
                    "connector.retry",
                    extra={"source": self.source, "attempt": attempts, "delay": delay, "error": str(exc)},
                )
                if delay > 0:
                    self._sleep(delay)
                delay *= 2

    @abstractmethod
    def _fetch_raw(self) -> Any:
        """Return the raw upstream payload."""

    @abstractmethod
    def _normalize(self, raw: Any) -> T:
        """Convert the raw payload into the connector's result type."""


def get_json(
    url: str,
    *,
    label: str,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    """GET ``url`` and return its JSON object, classifying failures."""
    try:
        resp = httpx.get(url, params=params, headers=headers, timeout=timeout)
    except httpx.TimeoutException as exc:
        raise TransientError(f"{label} timeout") from exc
    except httpx.HTTPError as exc:
        raise TransientError(f"{label} request failed: {exc}") from exc

    if resp.status_code == 429 or resp.status_code >= 500:
        raise TransientError(f"{label} error: {resp.status_code}")
    if resp.status_code >= 400:
        raise PermanentError(f"{label} error: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise PermanentError(f"{label} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise PermanentError(f"{label} returned an unexpected payload")
    return data


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
