"""Expected, user-recoverable failures of the attendance core.

Each error carries a stable ``code`` and the HTTP status the API answers with.
They are rendered as structured results by the handler registered in ``main.py``;
they are never treated as internal faults.
"""

from typing import Any, Dict, Optional


class AttendanceError(Exception):
    code = "ATTENDANCE_ERROR"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message: Optional[str] = None, **payload: Any):
        self.message = message or self.default_message
        self.payload = payload
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        body.update(self.payload)
        return body


# --- Location acquisition ---


class LocationUnavailable(AttendanceError):
    code = "LOCATION_UNAVAILABLE"
    status_code = 422
    default_message = "Your location could not be determined. Please try again."


class PermissionDenied(AttendanceError):
    code = "PERMISSION_DENIED"
    status_code = 422
    default_message = "Location access was denied. Enable location services to clock in or out."


# --- Geofence ---


class GeofenceViolation(AttendanceError):
    code = "GEOFENCE_VIOLATION"
    status_code = 403

    def __init__(self, distance: float, allowed_radius: float):
        self.distance = distance
        self.allowed_radius = allowed_radius
        super().__init__(
            f"{distance:.0f}m away, allowed {allowed_radius:.0f}m",
            distance=round(distance, 1),
            allowed_radius=allowed_radius,
        )


# --- Ledger invariants ---


class ShiftAlreadyActive(AttendanceError):
    code = "SHIFT_ALREADY_ACTIVE"
    status_code = 409
    default_message = "You are already clocked in. Clock out before starting a new shift."


class NoActiveShift(AttendanceError):
    code = "NO_ACTIVE_SHIFT"
    status_code = 409
    default_message = "You are not clocked in."


# --- Sites ---


class SiteNotConfigured(AttendanceError):
    code = "SITE_NOT_CONFIGURED"
    status_code = 404
    default_message = "No work site is configured for clock-in."


class SiteSelectionRequired(AttendanceError):
    code = "SITE_SELECTION_REQUIRED"
    status_code = 400
    default_message = "Several work sites are configured. Choose the site you are clocking in at."
