"""
Session API — login/logout bookkeeping for the usage dashboard.
Credentials are checked upstream; these endpoints only track sessions.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from engagement.api.responses import error_response, missing_actor
from engagement.serializers import UserSessionSerializer
from engagement.services import session_guard
from engagement.services.errors import EngagementError
from engagement.utils import get_actor, utcnow


class SessionStartView(APIView):
    def post(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            session = session_guard.start_session(
                actor,
                user_agent=request.META.get("HTTP_USER_AGENT"),
                ip_address=request.META.get("REMOTE_ADDR"),
            )
        except EngagementError as e:
            return error_response(e)
        return Response({"session": UserSessionSerializer(session).data}, status=status.HTTP_201_CREATED)


class SessionEndView(APIView):
    def post(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        try:
            session = session_guard.end_session(actor)
        except EngagementError as e:
            return error_response(e)
        return Response({"session": UserSessionSerializer(session).data})


class CurrentSessionView(APIView):
    """The active session with its live duration."""

    def get(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        session = session_guard.current_session(actor)
        if not session:
            return Response({"detail": "No active session found"}, status=status.HTTP_404_NOT_FOUND)

        data = UserSessionSerializer(session).data
        data["duration_ms"] = session.live_duration_ms(utcnow())
        return Response({"session": data})


class SessionStatsView(APIView):
    def get(self, request):
        actor = get_actor(request)
        if not actor:
            return missing_actor()
        return Response({"stats": session_guard.session_stats(actor)})
