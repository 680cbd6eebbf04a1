"""
Lead API — CRUD, status transitions and call outcomes for the operator dashboard.

Lifecycle statuses: New → Qualified → Negotiation → Closed | Lost
Moving a lead to Qualified converts it to a customer (best-effort, at most once).

POST /convert is the manual conversion path; it shares the same dedupe keys.
DELETE is a soft delete; the hard-delete path is administrative and not exposed here.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from engagement.api.responses import error_response, missing_actor, page_params
from engagement.models import Event, LeadStatus
from engagement.serializers import (
    LeadCreateSerializer, LeadUpdateSerializer, LeadSerializer, LeadSummarySerializer,
    StatusTransitionSerializer, CallCompletionSerializer, NotConnectedSerializer,
    CallBookingSerializer, CustomerSerializer, EventSerializer,
)
from engagement.services import booking_store, lead_store
from engagement.services.call_completion import complete_call
from engagement.services.conversion import convert_lead
from engagement.services.errors import EngagementError
from engagement.services.lifecycle import transition_status
from engagement.services.rescheduler import handle_not_connected
from engagement.utils import get_actor

# Funnel order for status sorting (lower = earlier in journey)
STATUS_PIPELINE_ORDER = {s: idx for idx, s in enumerate(LeadStatus.values)}


class LeadListCreateView(APIView):
    """List/search active leads and create new leads."""

    def get(self, request):
        """List active leads with filtering and search."""
        mine = request.query_params.get("mine") in ("1", "true", "yes")
        try:
            limit, offset = page_params(request.query_params, default_limit=50, max_limit=200)
            queryset = lead_store.active_leads(
                status=request.query_params.get("status") or None,
                owner=get_actor(request) if mine else None,
                search=request.query_params.get("search") or None,
            )
        except EngagementError as e:
            return error_response(e)

        leads = list(queryset[offset:offset + limit])

        if request.query_params.get("sort_by") == "status":
            leads.sort(key=lambda lead: STATUS_PIPELINE_ORDER.get(lead.status, 99))

        return Response(LeadSummarySerializer(leads, many=True).data)

    def post(self, request):
        """Create a new lead (always starts as New)."""
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = LeadCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        try:
            lead = lead_store.create_lead(data.pop("name"), created_by=actor, **data)
        except EngagementError as e:
            return error_response(e)

        return Response(LeadSerializer(lead).data, status=status.HTTP_201_CREATED)


class LeadStatsView(APIView):
    """Active-lead counts per status for the dashboard."""

    def get(self, request):
        mine = request.query_params.get("mine") in ("1", "true", "yes")
        return Response(lead_store.lead_stats(owner=get_actor(request) if mine else None))


class LeadDetailView(APIView):
    """Full lead detail, update and soft delete."""

    def get(self, request, lead_id):
        try:
            lead = lead_store.get_lead(lead_id)
        except EngagementError as e:
            return error_response(e)

        events = Event.objects.filter(lead_id=lead.id).order_by("-created_at")
        bookings = booking_store.bookings_for_lead(lead.id)

        return Response({
            "lead": LeadSerializer(lead).data,
            "bookings": CallBookingSerializer(bookings, many=True).data,
            "events": EventSerializer(events, many=True).data,
        })

    def patch(self, request, lead_id):
        """Update a lead's contact info. Status changes go through /status."""
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = LeadUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        patch = dict(serializer.validated_data)
        if "status" in request.data:
            patch["status"] = request.data["status"]

        try:
            lead = lead_store.update_lead(lead_id, patch, actor=actor)
        except EngagementError as e:
            return error_response(e)
        return Response(LeadSerializer(lead).data)

    def delete(self, request, lead_id):
        """Soft delete: the lead drops out of active reads but is kept for audit."""
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            lead = lead_store.deactivate_lead(lead_id, actor=actor)
        except EngagementError as e:
            return error_response(e)
        return Response({"detail": "Lead deactivated", "lead_id": str(lead.id)})


class LeadStatusView(APIView):
    """Change a lead's lifecycle status."""

    def patch(self, request, lead_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = StatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = transition_status(lead_id, serializer.validated_data["status"], actor)
        except EngagementError as e:
            return error_response(e)

        return Response({
            "message": "Lead status updated successfully",
            "lead": LeadSerializer(result.lead).data,
            "previous_status": result.previous_status,
            "conversion": result.conversion.to_dict() if result.conversion else None,
            "warnings": result.warnings,
            "steps": result.steps,
        })


class CallCompletedView(APIView):
    """Mark the lead's call as completed."""

    def post(self, request, lead_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = CallCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = complete_call(
                lead_id, outcome=data["outcome"], completed_at=data["completed_at"], actor=actor,
            )
        except EngagementError as e:
            return error_response(e)

        return Response({
            "lead": LeadSerializer(result.lead).data,
            "booking": CallBookingSerializer(result.booking).data,
        })


class CallNotConnectedView(APIView):
    """Record an unanswered call and auto-book the retry."""

    def post(self, request, lead_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = NotConnectedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = handle_not_connected(lead_id, actor, notes=serializer.validated_data["notes"])
        except EngagementError as e:
            return error_response(e)

        return Response(
            {
                "lead": LeadSerializer(result.lead).data,
                "booking": CallBookingSerializer(result.booking).data if result.booking else None,
                "rescheduled_for": result.rescheduled_for.isoformat(),
                "booking_error": result.booking_error.to_dict() if result.booking_error else None,
                "steps": result.steps,
            },
            # 207: history was recorded but the retry booking was not
            status=status.HTTP_201_CREATED if result.fully_applied else status.HTTP_207_MULTI_STATUS,
        )


class LeadConvertView(APIView):
    """Manual lead -> customer conversion. Idempotent: a repeat returns the existing customer."""

    def post(self, request, lead_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        try:
            outcome = convert_lead(lead_id, actor)
        except EngagementError as e:
            return error_response(e)

        return Response(
            {
                "conversion": outcome.to_dict(),
                "customer": CustomerSerializer(outcome.customer).data if outcome.customer else None,
            },
            status=status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK,
        )
