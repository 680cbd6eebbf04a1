"""
DRF serializers for API request/response validation.
Separates API contract from DB models. Domain rules (status set, slot
conflicts, duration bounds) live in the services, not here.
"""
from rest_framework import serializers
from engagement.models import Lead, CallBooking, CallHistoryEntry, Customer, Event, UserSession


# ─── Lead Serializers ────────────────────────────────────────────────────────

class LeadCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lead
        fields = [
            'name', 'phone', 'email', 'source', 'notes',
            'important_points', 'assigned_to', 'additional_fields',
        ]


class LeadUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lead
        fields = [
            'name', 'phone', 'email', 'source', 'notes',
            'important_points', 'assigned_to', 'additional_fields',
        ]
        extra_kwargs = {field: {'required': False} for field in fields}


class CallHistoryEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = CallHistoryEntry
        fields = [
            'id', 'outcome', 'occurred_at', 'actor', 'notes',
            'booking_id', 'rescheduled_for',
        ]


class LeadSerializer(serializers.ModelSerializer):
    call_history = CallHistoryEntrySerializer(many=True, read_only=True)

    class Meta:
        model = Lead
        fields = [
            'id', 'name', 'phone', 'email', 'source', 'notes', 'important_points',
            'status', 'created_by', 'assigned_to', 'last_contacted',
            'call_completed', 'call_completed_at', 'call_completed_by',
            'call_history', 'additional_fields', 'is_active',
            'created_at', 'updated_at',
        ]


class LeadSummarySerializer(serializers.ModelSerializer):
    """Lightweight lead listing for search/filter results."""
    class Meta:
        model = Lead
        fields = [
            'id', 'name', 'phone', 'email', 'status', 'created_by', 'assigned_to',
            'last_contacted', 'call_completed', 'created_at', 'updated_at',
        ]


class StatusTransitionSerializer(serializers.Serializer):
    # Membership in the status set is checked by the lifecycle engine
    status = serializers.CharField()


class CallCompletionSerializer(serializers.Serializer):
    outcome = serializers.CharField(required=False, allow_blank=True, default="")
    completed_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class NotConnectedSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


# ─── Booking Serializers ─────────────────────────────────────────────────────

class BookingCreateSerializer(serializers.Serializer):
    """Shape only; date/time/duration are validated by the booking service."""
    lead_id = serializers.CharField()
    scheduled_date = serializers.CharField()
    scheduled_time = serializers.CharField()
    duration_minutes = serializers.JSONField(required=False, allow_null=True, default=None)


class BookingUpdateSerializer(serializers.Serializer):
    scheduled_date = serializers.CharField(required=False)
    scheduled_time = serializers.CharField(required=False)
    duration_minutes = serializers.JSONField(required=False, allow_null=True, default=None)
    status = serializers.CharField(required=False)


class CallBookingSerializer(serializers.ModelSerializer):
    lead_name = serializers.CharField(source='lead.name', read_only=True)

    class Meta:
        model = CallBooking
        fields = [
            'id', 'lead_id', 'lead_name', 'scheduled_by', 'scheduled_date',
            'scheduled_time', 'duration_minutes', 'status', 'reminder_sent',
            'created_at', 'updated_at',
        ]


# ─── Customer / Event Serializers ────────────────────────────────────────────

class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'email', 'phone', 'status', 'notes',
            'converted_from_lead_id', 'converted_at', 'owner', 'created_at',
        ]


class EventSerializer(serializers.ModelSerializer):
    class Meta:
        model = Event
        fields = [
            'id', 'lead_id', 'event_type', 'source', 'actor',
            'payload', 'description', 'created_at',
        ]


# ─── Session Serializers ─────────────────────────────────────────────────────

class UserSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserSession
        fields = [
            'id', 'principal', 'login_time', 'logout_time',
            'duration_ms', 'is_active',
        ]


# ─── Query Params ────────────────────────────────────────────────────────────

class PageParamsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=0)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)
