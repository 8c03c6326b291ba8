# SPDX-License-Identifier: Apache-2.0

"""
Camp status derivation from occupancy.

Full is always derived from occupancy and capacity. Inactive and Emergency
are set by operators. Full overrides Emergency once capacity is reached, and
a camp leaving Full returns to Active. Inactive is left only through an
operator edit, never through an occupancy change.
"""

from typing import Optional, Tuple

from ..models.enums import CampStatus

INTAKE_STATUSES: Tuple[CampStatus, ...] = (CampStatus.ACTIVE, CampStatus.EMERGENCY)


def derive_status(current_occupancy: int, capacity: int, current_status: str) -> CampStatus:
    """
    Status a camp should have after an occupancy change.

    Args:
        current_occupancy: Occupancy after the change
        capacity: Camp capacity
        current_status: Status before the change

    Returns:
        The status to persist
    """
    if current_status == CampStatus.INACTIVE:
        return CampStatus.INACTIVE
    if current_occupancy >= capacity:
        return CampStatus.FULL
    if current_status == CampStatus.FULL:
        return CampStatus.ACTIVE
    return CampStatus(current_status)


def apply_explicit_status(
    requested: Optional[str],
    current_occupancy: int,
    capacity: int,
    current_status: str
) -> CampStatus:
    """
    Status resulting from an operator edit of status and/or capacity.

    A requested Full is treated as a request to follow occupancy. A requested
    Inactive is always kept, even for a camp at capacity.
    """
    base = current_status if requested is None else requested
    if base == CampStatus.FULL and current_occupancy < capacity:
        return CampStatus.ACTIVE
    return derive_status(current_occupancy, capacity, base)


def can_accept_intake(status: str) -> bool:
    """Whether a camp in this status may receive new assignments."""
    return status in INTAKE_STATUSES
