# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the relief camps platform.
"""

from enum import Enum


class CampStatus(str, Enum):
    """Camp intake status."""
    ACTIVE = "Active"
    FULL = "Full"
    INACTIVE = "Inactive"
    EMERGENCY = "Emergency"


class Gender(str, Enum):
    """Refugee gender."""
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class RefugeeStatus(str, Enum):
    """Refugee placement status."""
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    RELOCATED = "Relocated"


class ErrorKind(str, Enum):
    """Failure kinds surfaced by the assignment engine and camp graph."""
    NOT_FOUND = "NotFound"
    VALIDATION_ERROR = "ValidationError"
    ALREADY_ASSIGNED = "AlreadyAssigned"
    REFUGEE_NOT_ASSIGNED = "RefugeeNotAssigned"
    NO_CAMPS_AVAILABLE = "NoCampsAvailable"
    NO_CAPACITY_SUFFICIENT = "NoCapacitySufficient"
    CAPACITY_EXCEEDED_CONCURRENTLY = "CapacityExceededConcurrently"
    SAME_CAMP = "SameCampError"
    GEOCODE_FAILURE = "GeocodeFailure"
    CAMP_HAS_ASSIGNED_REFUGEES = "CampHasAssignedRefugees"
    INTERNAL = "InternalError"
