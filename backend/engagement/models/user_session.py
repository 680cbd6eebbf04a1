import uuid
from django.db import models
from django.db.models import Q


class UserSession(models.Model):
    """
    A login session for a principal. At most one row per principal may be
    active; the partial unique constraint enforces it in the database.

    duration_ms is only stored once the session ends. For an active session
    the live duration is computed from login_time on every read.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    principal = models.CharField(max_length=64)

    login_time = models.DateTimeField()
    logout_time = models.DateTimeField(null=True, blank=True)
    duration_ms = models.BigIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    user_agent = models.CharField(max_length=255, null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "user_sessions"
        ordering = ["-login_time"]
        indexes = [
            models.Index(fields=["principal", "-login_time"], name="idx_session_principal_login"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["principal"],
                condition=Q(is_active=True),
                name="uniq_active_session_per_principal",
            ),
        ]

    def close(self, at):
        """Stamp logout and duration. Caller saves."""
        self.logout_time = at
        self.is_active = False
        self.duration_ms = int((at - self.login_time).total_seconds() * 1000)
        return self

    def live_duration_ms(self, now) -> int:
        if not self.is_active:
            return self.duration_ms or 0
        return int((now - self.login_time).total_seconds() * 1000)

    def __str__(self):
        state = "active" if self.is_active else "ended"
        return f"session {self.id} for {self.principal} ({state})"
