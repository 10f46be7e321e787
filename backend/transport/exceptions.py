from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from routes.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    RouteEngineError,
    ValidationError,
)
from tenancy.errors import ScopeError


def route_engine_exception_handler(exc, context):
    """
    Maps route engine errors to HTTP responses; everything else goes to DRF's default handler.
    """
    if isinstance(exc, ScopeError):
        return Response({"error": "Access to this organization's data is not allowed"}, status=status.HTTP_403_FORBIDDEN)

    if isinstance(exc, ConflictError):
        return Response({"error": str(exc), "pickupRequestIds": exc.request_ids}, status=status.HTTP_409_CONFLICT)

    if isinstance(exc, InvalidTransitionError):
        return Response(
            {
                "error": str(exc),
                "currentStatus": exc.current.value,
                "requestedStatus": exc.requested.value,
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, NotFoundError):
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, ValidationError):
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, RouteEngineError):
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    return exception_handler(exc, context)
