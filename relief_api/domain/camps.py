# SPDX-License-Identifier: Apache-2.0

"""
Camp and refugee business rules.

This module contains pure functions for eligibility checks and validation of
operator edits. Nothing here touches storage.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..models.entities import Camp, Refugee
from .occupancy import apply_explicit_status, can_accept_intake


@dataclass
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = field(default_factory=list)


def is_eligible(camp: Camp, family_size: int) -> bool:
    """Whether the camp accepts intake and has room for the family."""
    return can_accept_intake(camp.status) and camp.available_capacity >= family_size


def filter_eligible(camps: Sequence[Camp], family_size: int) -> List[Camp]:
    """Eligible camps in their original order."""
    return [camp for camp in camps if is_eligible(camp, family_size)]


def validate_camp_update(camp: Camp, updates: Dict[str, Any]) -> ValidationResult:
    """
    Validate an operator edit of a camp.

    Args:
        camp: Camp as currently stored
        updates: Field updates keyed by model field name

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    warnings = []

    capacity = updates.get('capacity', camp.capacity)
    if capacity < camp.current_occupancy:
        errors.append(
            f"Capacity cannot be lower than current occupancy ({camp.current_occupancy})"
        )

    for forbidden in ('current_occupancy', 'connected_camps', 'id'):
        if forbidden in updates:
            errors.append(f"Field '{forbidden}' cannot be updated directly")

    if 'status' in updates:
        resulting = apply_explicit_status(
            updates['status'], camp.current_occupancy, capacity, camp.status
        )
        if resulting != updates['status']:
            warnings.append(f"Status will be {resulting.value} given current occupancy")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_refugee_update(refugee: Refugee, updates: Dict[str, Any]) -> ValidationResult:
    """
    Validate an edit of a refugee record.

    Placement fields belong to the assignment engine, and the family size of
    an assigned refugee is frozen because it is held as camp occupancy.
    """
    errors = []

    for forbidden in ('assigned_camp', 'status', 'id'):
        if forbidden in updates:
            errors.append(f"Field '{forbidden}' cannot be updated directly")

    if (
        refugee.is_assigned()
        and 'family_members' in updates
        and updates['family_members'] != refugee.family_members
    ):
        errors.append("Family size of an assigned refugee cannot change; release the refugee first")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)
