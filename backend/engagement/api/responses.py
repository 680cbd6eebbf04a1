"""Shared response helpers for the API views."""
from rest_framework.response import Response
from rest_framework import status

from engagement.serializers import PageParamsSerializer
from engagement.services.errors import (
    EngagementError, NotFound, InvalidArgument, Conflict, DependencyUnavailable,
)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
    DependencyUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(error: EngagementError) -> Response:
    http_status = ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    return Response(error.to_dict(), status=http_status)


def missing_actor() -> Response:
    return Response(
        {"detail": "X-Actor header is required", "code": "unauthenticated"},
        status=status.HTTP_401_UNAUTHORIZED,
    )


def page_params(query_params, default_limit: int, max_limit: int) -> tuple[int, int]:
    """(limit, offset) from the query string. limit is capped at max_limit."""
    serializer = PageParamsSerializer(data=query_params)
    if not serializer.is_valid():
        field, messages = next(iter(serializer.errors.items()))
        raise InvalidArgument(field, f"Invalid {field}: {messages[0]}")
    data = serializer.validated_data
    return min(data.get("limit", default_limit), max_limit), data["offset"]
