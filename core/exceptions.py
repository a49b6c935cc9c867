from rest_framework import status
from rest_framework.response import Response


class DeliveryError(Exception):
    """Base exception for delivery lifecycle and attendance errors."""

    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(DeliveryError):
    """Raised when input is missing or malformed."""


class NotFoundError(DeliveryError):
    """Raised when a package, record or zone does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class NoCheckInError(NotFoundError):
    """Raised when checking out without a check-in for the day."""

    status_code = status.HTTP_400_BAD_REQUEST


class IllegalTransitionError(DeliveryError):
    """Raised when a package status change is not allowed from its current status."""

    status_code = status.HTTP_409_CONFLICT


class InvalidScanError(IllegalTransitionError):
    """Raised when a scan type does not match the package's current status."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(DeliveryError):
    """Raised when a concurrent writer got there first."""

    status_code = status.HTTP_409_CONFLICT


class DuplicateCheckInError(ConflictError):
    pass


class DuplicateCheckOutError(ConflictError):
    pass


class OutsideGeofenceError(DeliveryError):
    """Raised when a location is outside every active geofence zone."""


class ForbiddenError(DeliveryError):
    """Raised when the actor may not perform the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotPendingError(DeliveryError):
    """Raised when reviewing an attendance record that was already reviewed."""

    status_code = status.HTTP_409_CONFLICT


def error_response(exc: DeliveryError) -> Response:
    return Response({"detail": str(exc)}, status=exc.status_code)
