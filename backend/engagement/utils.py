"""Shared utility helpers used across services."""
from datetime import datetime, timezone

from django.conf import settings


def utcnow() -> datetime:
    """Return timezone-aware UTC now. Default clock for every service."""
    return datetime.now(timezone.utc)


def get_actor(request) -> str | None:
    """Principal forwarded by the auth gateway. Authentication itself happens upstream."""
    return request.META.get(settings.ACTOR_HEADER) or None
