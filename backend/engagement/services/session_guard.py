"""
Session Guard — single active session per principal.

Starting a session closes every prior active session of the principal and
opens the new one in the same transaction. The partial unique constraint on
(principal) WHERE is_active makes a second active row impossible even when
two logins for the same principal race; the losing request retries the
close-then-open unit and, if it keeps losing, gets Conflict.

Durations are milliseconds. An active session has no stored duration; reads
compute it live as now - login_time.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction

from engagement.models import UserSession
from engagement.services.errors import Conflict, InvalidArgument, NotFound
from engagement.utils import utcnow

logger = logging.getLogger(__name__)


def _require_principal(principal) -> str:
    if not principal:
        raise InvalidArgument("principal", "A principal is required")
    return principal


def _close_active(principal: str, now) -> list[UserSession]:
    closed = []
    for prior in UserSession.objects.select_for_update().filter(principal=principal, is_active=True):
        prior.close(now)
        prior.save(update_fields=["logout_time", "is_active", "duration_ms"])
        closed.append(prior)
    return closed


def start_session(principal: str, user_agent: str | None = None, ip_address: str | None = None, clock=utcnow) -> UserSession:
    """Open a new active session, ending any session the principal still has open."""
    principal = _require_principal(principal)
    attempts = max(1, settings.SESSION_START_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                now = clock()
                closed = _close_active(principal, now)
                session = UserSession.objects.create(
                    principal=principal,
                    login_time=now,
                    user_agent=user_agent,
                    ip_address=ip_address,
                )
        except IntegrityError:
            logger.warning(
                "Concurrent session start for %s (attempt %d/%d)", principal, attempt, attempts,
            )
            continue

        if closed:
            logger.info(
                "Replaced %d active session(s) for %s with %s", len(closed), principal, session.id,
            )
        return session

    raise Conflict(f"Could not start a session for {principal}: another login keeps winning")


def end_session(principal: str, clock=utcnow) -> UserSession:
    """Close the principal's active session, stamping logout time and duration."""
    principal = _require_principal(principal)
    with transaction.atomic():
        session = (
            UserSession.objects.select_for_update()
            .filter(principal=principal, is_active=True)
            .first()
        )
        if not session:
            raise NotFound("No active session found", principal=principal)
        session.close(clock())
        session.save(update_fields=["logout_time", "is_active", "duration_ms"])

    logger.info("Session %s for %s ended after %d ms", session.id, principal, session.duration_ms)
    return session


def current_session(principal: str) -> UserSession | None:
    return UserSession.objects.filter(principal=_require_principal(principal), is_active=True).first()


def session_stats(principal: str, clock=utcnow) -> dict:
    """
    Usage summary for a principal: the live session, recent history, all-time
    usage and usage over the last 24 hours. Live time of the open session is
    included in both totals.
    """
    principal = _require_principal(principal)
    now = clock()
    current = current_session(principal)
    current_ms = current.live_duration_ms(now) if current else 0

    sessions = UserSession.objects.filter(principal=principal)
    recent = list(sessions.order_by("-login_time")[:settings.SESSION_RECENT_LIMIT])

    completed_total = sum(
        s.duration_ms or 0 for s in sessions.filter(is_active=False, logout_time__isnull=False)
    )
    last_24h = sum(
        s.duration_ms or 0
        for s in sessions.filter(is_active=False, login_time__gte=now - timedelta(hours=24))
    )
    if current and current.login_time >= now - timedelta(hours=24):
        last_24h += current_ms

    return {
        "current_session": {
            "id": str(current.id),
            "login_time": current.login_time.isoformat(),
            "duration_ms": current_ms,
        } if current else None,
        "recent_sessions": [
            {
                "id": str(s.id),
                "login_time": s.login_time.isoformat(),
                "logout_time": s.logout_time.isoformat() if s.logout_time else None,
                "duration_ms": s.live_duration_ms(now),
                "is_active": s.is_active,
            }
            for s in recent
        ],
        "total_session_time_ms": completed_total + current_ms,
        "last_24_hours_usage_ms": last_24h,
        "total_sessions": sessions.count(),
    }
