"""NewsData.io connector (provider-injected for tests/offline)."""

from __future__ import annotations

import hashlib
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ingestion.models.domain import NewsItemDTO
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger

from .base import BaseConnector, PermanentError, get_json

ProviderFn = Callable[[], Dict[str, Any]]

QUERY_TERMS = ("oil", "crude", "petroleum", "natural gas", "opec", "energy", "refinery", "lng")

MAX_EXTERNAL_ID_LENGTH = 128

logger = get_logger(__name__)


def _fingerprint(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _external_id(entry: Dict[str, Any]) -> str:
    """Upstream article id; over-long ids and link fallbacks become their sha256 digest."""
    article_id = str(entry.get("article_id") or "").strip()
    if article_id and len(article_id) <= MAX_EXTERNAL_ID_LENGTH:
        return article_id
    fallback = article_id or str(entry.get("link") or "").strip()
    return _fingerprint(fallback) if fallback else ""


class NewsDataConnector(BaseConnector[List[NewsItemDTO]]):
    """Latest oil & gas headlines from NewsData.io."""

    source = "newsdata"

    def __init__(self, settings: Optional[Settings] = None, provider: Optional[ProviderFn] = None, **kwargs: Any):
        self._settings = settings or get_settings()
        self._provider = provider
        kwargs.setdefault("max_attempts", self._settings.http_max_attempts)
        kwargs.setdefault("backoff_seconds", self._settings.http_backoff_seconds)
        super().__init__(**kwargs)

    def _fetch_raw(self) -> Dict[str, Any]:
        if self._provider is not None:
            return self._provider()

        cfg = self._settings
        if not cfg.newsdata_api_key:
            raise PermanentError("NEWSDATA_API_KEY is not configured")
        return get_json(
            cfg.newsdata_endpoint,
            label="NewsData",
            params={
                "apikey": cfg.newsdata_api_key.get_secret_value(),
                "q": " OR ".join(QUERY_TERMS),
                "language": "en",
                "size": int(cfg.news_page_size),
                "category": "business,top",
            },
            timeout=float(cfg.http_timeout_seconds),
        )

    def _normalize(self, raw: Dict[str, Any]) -> List[NewsItemDTO]:
        if raw.get("status") != "success":
            raise PermanentError("NewsData returned a non-success status")
        seen: set[str] = set()
        items: List[NewsItemDTO] = []
        for entry in raw.get("results") or []:
            external_id = _external_id(entry)
            title = str(entry.get("title") or "").strip()
            if not external_id or not title or external_id in seen:
                continue
            try:
                dto = NewsItemDTO(
                    external_id=external_id,
                    title=title,
                    description=entry.get("description"),
                    content=entry.get("content"),
                    link=entry.get("link"),
                    source_name=entry.get("source_name") or entry.get("source_id"),
                    image_url=entry.get("image_url"),
                    published_at=entry.get("pubDate"),
                    language=entry.get("language"),
                    keywords=entry.get("keywords"),
                    categories=entry.get("category"),
                )
            except ValidationError as exc:
                logger.warning("newsdata.skip_invalid", extra={"external_id": external_id, "error": str(exc)})
                continue
            seen.add(external_id)
            items.append(dto)
        return items
