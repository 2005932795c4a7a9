"""Database utilities shared by every component."""

from .models import (  # noqa: F401
    Base,
    BlogPost,
    JobExecutionLog,
    JobStatus,
    MarketTrend,
    NewsArticle,
    PostSource,
    PriceRecord,
    PriceTrend,
    ReviewStatus,
    Sentiment,
)
from .session import get_engine, get_sessionmaker, session_scope  # noqa: F401

__all__ = [
    "Base",
    "BlogPost",
    "JobExecutionLog",
    "JobStatus",
    "MarketTrend",
    "NewsArticle",
    "PostSource",
    "PriceRecord",
    "PriceTrend",
    "ReviewStatus",
    "Sentiment",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]
