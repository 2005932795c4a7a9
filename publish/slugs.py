"""URL slugs for blog posts."""

from __future__ import annotations

import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from ingestion.db.models import BlogPost

MAX_SLUG_LENGTH = 100

_INVALID = re.compile(r"[^a-z0-9\s-]")
_SEPARATORS = re.compile(r"[\s-]+")


def slugify(title: str) -> str:
    """Lowercase, drop punctuation, and join words with single hyphens."""
    text = _INVALID.sub("", title.lower())
    slug = _SEPARATORS.sub("-", text).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-") or "post"


def unique_slug(session: Session, title: str) -> str:
    """Return ``slugify(title)``, suffixed with ``-1``, ``-2`` ... until unused."""
    base = slugify(title)
    taken = set(
        session.execute(
            select(BlogPost.slug).where((BlogPost.slug == base) | BlogPost.slug.like(f"{base}-%"))
        ).scalars()
    )
    if base not in taken:
        return base
    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
