from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

InquiryCategory = Literal["verified-buyer", "verified-seller", "strategic-partner"]
ProductType = Literal["crude-oil", "pms", "ago", "jet-fuel", "multiple"]
VolumeUnit = Literal["BBLs", "MT", "Liters"]
InquiryStatus = Literal["pending", "contacted", "qualified", "converted", "closed"]
ReviewDecision = Literal["pending", "approved", "rejected"]
AdminRole = Literal["super_admin", "admin", "editor", "viewer"]

MIN_MESSAGE_LENGTH = 20

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _min_length(value: str, length: int, message: str) -> str:
    value = value.strip()
    if len(value) < length:
        raise ValueError(message)
    return value


class InquiryCreate(BaseModel):
    """Lead submitted through the public contact form (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str
    email: str
    phone: str
    company_name: str
    category: InquiryCategory
    product_type: ProductType
    estimated_volume: str
    volume_unit: VolumeUnit
    message: str
    agreed_to_terms: bool

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        return _min_length(value, 2, "Name must be at least 2 characters")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _min_length(value, 10, "Phone number must be at least 10 characters")

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, value: str) -> str:
        return _min_length(value, 2, "Company name must be at least 2 characters")

    @field_validator("estimated_volume")
    @classmethod
    def validate_volume(cls, value: str) -> str:
        return _min_length(value, 1, "Volume is required")

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str) -> str:
        return _min_length(value, MIN_MESSAGE_LENGTH, f"Message must be at least {MIN_MESSAGE_LENGTH} characters")

    @field_validator("agreed_to_terms")
    @classmethod
    def validate_terms(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must agree to the terms")
        return value


class Inquiry(BaseModel):
    inquiry_id: str
    full_name: str
    email: str
    phone: str
    company_name: str
    category: InquiryCategory
    product_type: ProductType
    estimated_volume: str
    volume_unit: VolumeUnit
    message: str
    status: InquiryStatus
    source: str
    notes: str | None = None
    created_at: datetime


class InquiryUpdate(BaseModel):
    status: InquiryStatus | None = None
    notes: str | None = None


class AdminProfile(BaseModel):
    profile_id: str
    email: str
    full_name: str
    phone: str | None = None
    job_title: str | None = None
    department: str | None = None
    avatar_url: str | None = None
    role: AdminRole
    is_active: bool
    last_login_at: datetime | None = None


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    job_title: str | None = None
    department: str | None = None
    avatar_url: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)


class BlogPostSummary(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    excerpt: str | None = None
    category: str
    tags: list[str] = Field(default_factory=list)
    featured_image: str | None = None
    author_name: str | None = None
    source_type: str
    published_at: datetime | None = None


class BlogPostDetail(BlogPostSummary):
    body: str
    meta_title: str | None = None
    meta_description: str | None = None
    author_role: str | None = None
    key_factors: list[str] = Field(default_factory=list)
    view_count: int = 0


class NewsArticleOut(BaseModel):
    id: uuid.UUID
    external_id: str
    title: str
    summary: str | None = None
    source_name: str | None = None
    source_url: str | None = None
    published_at: datetime | None = None
    fetched_at: datetime
    relevance_score: float
    relevance_keywords: list[str] = Field(default_factory=list)
    sentiment: str
    category: str
    status: str
    auto_post: bool
    review_notes: str | None = None
    blog_post_id: uuid.UUID | None = None


class NewsReviewUpdate(BaseModel):
    status: ReviewDecision
    review_notes: str | None = None


class JobLog(BaseModel):
    id: uuid.UUID
    job_name: str
    status: str
    started_at: datetime
    completed_at: datetime
    duration_ms: int
    records_fetched: int
    records_created: int
    records_failed: int
    summary: dict[str, Any] | None = None
    error_message: str | None = None
    triggered_by: str
    trace_id: str | None = None


class PriceSnapshot(BaseModel):
    id: uuid.UUID
    benchmark: str
    price: float
    currency: str
    captured_at: datetime
    price_date: date
    trend: str
    change: float | None = None
    change_percent: float | None = None
    market_trend: str
    trend_factors: list[str] = Field(default_factory=list)
    quotes: dict[str, dict[str, Any]] = Field(default_factory=dict)
