"""Domain DTOs for the ingestion pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class BenchmarkQuote(BaseModel):
    """Price of one benchmark with its move against the previous snapshot."""

    name: str = Field(..., description="Benchmark name (e.g., Brent, WTI)")
    price: float
    change: Optional[float] = None
    change_percent: Optional[float] = None


class NewsItemDTO(BaseModel):
    """Normalized representation of one upstream news article."""

    external_id: str = Field(..., description="Upstream article identifier")
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    link: Optional[str] = None
    source_name: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    language: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)

    @field_validator("published_at", mode="before")
    @classmethod
    def _parse_published(cls, value):
        # NewsData.io sends "YYYY-MM-DD HH:MM:SS" in UTC
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return value
        text = str(value).strip().replace(" ", "T", 1)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @field_validator("keywords", "categories", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return list(value or [])


class JobOutcome(BaseModel):
    """Response body of a job invocation."""

    success: bool
    message: Optional[str] = None
    data: Optional[dict] = None
    error: Optional[str] = None
    duration_ms: int = 0
    skipped: Optional[bool] = None

    def to_response(self) -> dict:
        return self.model_dump(exclude_none=True)
