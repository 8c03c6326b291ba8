# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for camp assignment.

Each error carries its kind, the HTTP status it maps to and a problem type
identifier used when rendering RFC 7807 responses.
"""

from typing import Any, Dict, List, Optional

from ..models.enums import ErrorKind


class ReliefError(Exception):
    """Base class for domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500
    error_type: str = "application-error"
    title: str = "Application Error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFound(ReliefError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    error_type = "resource-not-found"
    title = "Resource Not Found"


class RefugeeNotFound(NotFound):
    def __init__(self, refugee_id: str):
        super().__init__(f"Refugee {refugee_id} not found")
        self.refugee_id = refugee_id


class CampNotFound(NotFound):
    def __init__(self, camp_id: str):
        super().__init__(f"Camp {camp_id} not found")
        self.camp_id = camp_id


class InvalidInput(ReliefError):
    """Malformed coordinate, non-positive sizes, duplicate camp name."""

    kind = ErrorKind.VALIDATION_ERROR
    status_code = 400
    error_type = "validation-error"
    title = "Validation Error"


class AlreadyAssigned(ReliefError):
    kind = ErrorKind.ALREADY_ASSIGNED
    status_code = 409
    error_type = "already-assigned"
    title = "Refugee Already Assigned"


class RefugeeNotAssigned(ReliefError):
    kind = ErrorKind.REFUGEE_NOT_ASSIGNED
    status_code = 409
    error_type = "refugee-not-assigned"
    title = "Refugee Not Assigned"


class NoCampsAvailable(ReliefError):
    """No camp currently accepts intake."""

    kind = ErrorKind.NO_CAMPS_AVAILABLE
    status_code = 404
    error_type = "no-camps-available"
    title = "No Camps Available"


class NoCapacitySufficient(ReliefError):
    """Camps accept intake but none has room for the family."""

    kind = ErrorKind.NO_CAPACITY_SUFFICIENT
    status_code = 409
    error_type = "no-capacity-sufficient"
    title = "Insufficient Capacity"


class CapacityExceededConcurrently(ReliefError):
    """Conditional occupancy update lost against a concurrent writer."""

    kind = ErrorKind.CAPACITY_EXCEEDED_CONCURRENTLY
    status_code = 409
    error_type = "capacity-exceeded-concurrently"
    title = "Capacity Exceeded"

    def __init__(self, camp_id: str, delta: int):
        super().__init__(f"Occupancy of camp {camp_id} cannot change by {delta}")
        self.camp_id = camp_id
        self.delta = delta


class SameCampError(ReliefError):
    kind = ErrorKind.SAME_CAMP
    status_code = 400
    error_type = "same-camp"
    title = "Same Camp"


class GeocodeFailure(ReliefError):
    kind = ErrorKind.GEOCODE_FAILURE
    status_code = 422
    error_type = "geocode-failure"
    title = "Geocoding Failed"


class CampHasAssignedRefugees(ReliefError):
    kind = ErrorKind.CAMP_HAS_ASSIGNED_REFUGEES
    status_code = 409
    error_type = "camp-has-assigned-refugees"
    title = "Camp Has Assigned Refugees"
