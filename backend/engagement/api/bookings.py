"""
Call booking API — book, list, move and close contact attempts.

A 409 response carries `existing_booking` (id, date, time, status) so the
operator can pick a different slot.
"""
from django.conf import settings
from django.db import transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from engagement.api.responses import error_response, missing_actor, page_params
from engagement.serializers import BookingCreateSerializer, BookingUpdateSerializer, CallBookingSerializer
from engagement.services import booking_service, booking_store
from engagement.services.errors import EngagementError
from engagement.utils import get_actor


class BookingListCreateView(APIView):
    """List the caller's bookings and book new ones."""

    def get(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        try:
            on_date = request.query_params.get("date")
            start, end = request.query_params.get("start"), request.query_params.get("end")
            if start and end:
                queryset = booking_store.bookings_in_range(
                    actor, booking_service.parse_date(start), booking_service.parse_date(end),
                )
            else:
                queryset = booking_store.bookings_for_owner(
                    actor,
                    status=request.query_params.get("status") or None,
                    on_date=booking_service.parse_date(on_date) if on_date else None,
                )
        except EngagementError as e:
            return error_response(e)

        bookings = list(queryset)
        return Response({
            "bookings": CallBookingSerializer(bookings, many=True).data,
            "total": len(bookings),
        })

    def post(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = booking_service.create_booking(
                data["lead_id"],
                data["scheduled_date"],
                data["scheduled_time"],
                duration_minutes=data.get("duration_minutes"),
                owner=actor,
            )
        except EngagementError as e:
            return error_response(e)

        return Response(
            {"message": "Call scheduled successfully", "booking": CallBookingSerializer(booking).data},
            status=status.HTTP_201_CREATED,
        )


class UpcomingBookingsView(APIView):
    """Scheduled bookings from today on, soonest first."""

    def get(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            limit, _ = page_params(
                request.query_params, default_limit=settings.UPCOMING_BOOKINGS_LIMIT, max_limit=100,
            )
        except EngagementError as e:
            return error_response(e)
        bookings = list(booking_service.upcoming_for(actor, limit=limit))
        return Response({
            "bookings": CallBookingSerializer(bookings, many=True).data,
            "total": len(bookings),
        })


class BookingStatsView(APIView):
    def get(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        return Response({"stats": booking_store.booking_stats(owner=actor)})


class BookingDetailView(APIView):
    """Read, move/close, or delete one of the caller's bookings."""

    def get(self, request, booking_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            booking = booking_store.get_booking(booking_id, owner=actor)
        except EngagementError as e:
            return error_response(e)
        return Response(CallBookingSerializer(booking).data)

    def patch(self, request, booking_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()

        serializer = BookingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            # A rejected status change must not leave the slot move behind
            with transaction.atomic():
                booking = booking_service.reschedule_booking(
                    booking_id,
                    actor,
                    scheduled_date=data.get("scheduled_date"),
                    scheduled_time=data.get("scheduled_time"),
                    duration_minutes=data.get("duration_minutes"),
                )
                if data.get("status"):
                    booking = booking_service.update_booking_status(booking.id, data["status"], actor)
        except EngagementError as e:
            return error_response(e)

        return Response({"message": "Booking updated", "booking": CallBookingSerializer(booking).data})

    def delete(self, request, booking_id):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            booking_service.delete_booking(booking_id, actor)
        except EngagementError as e:
            return error_response(e)
        return Response({"detail": "Booking deleted"})
