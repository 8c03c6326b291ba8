# SPDX-License-Identifier: Apache-2.0

"""
Camp and refugee registration, editing and removal.

Occupancy and placement are never written here directly: refugee removal
goes through the assignment engine's release, and camp removal is refused
while anyone is assigned to the camp.
"""

import logging
from typing import Any, Dict, List, Optional

from opentelemetry import trace

from ..domain.camps import validate_camp_update, validate_refugee_update
from ..domain.errors import (
    AlreadyAssigned, CampHasAssignedRefugees, CampNotFound, GeocodeFailure,
    InvalidInput, RefugeeNotFound
)
from ..domain.occupancy import INTAKE_STATUSES, apply_explicit_status, derive_status
from ..models.entities import Camp, Coordinate, Refugee
from ..models.enums import ErrorKind
from ..models.requests import (
    CreateCampRequest, UpdateCampRequest, CreateRefugeeRequest, UpdateRefugeeRequest
)
from .assignment import AssignmentEngine
from .camp_graph import CampGraph
from .geocoder import NominatimGeocoder
from .repositories import CampRepository, RefugeeRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

COORDINATE_FIELDS = {'latitude', 'longitude'}


def _request_fields(request) -> Dict[str, Any]:
    """Explicitly provided request fields, with latitude/longitude folded into a coordinate."""
    fields = request.model_dump(exclude_unset=True, exclude=COORDINATE_FIELDS)
    coordinate = request.coordinate() if hasattr(request, 'coordinate') else None
    if coordinate is not None:
        fields['coordinate'] = coordinate
    return fields


class CampRegistry:
    """Camp lifecycle outside of occupancy changes."""

    def __init__(self, camp_repository: CampRepository, refugee_repository: RefugeeRepository,
                 camp_graph: CampGraph):
        self.camps = camp_repository
        self.refugees = refugee_repository
        self.graph = camp_graph

    def create_camp(self, request: CreateCampRequest) -> Camp:
        fields = request.model_dump(exclude=COORDINATE_FIELDS | {'managed_by'}, exclude_none=True)
        if request.managed_by:
            fields['managed_by'] = request.managed_by
        camp = Camp(
            **fields,
            coordinate=Coordinate(latitude=request.latitude, longitude=request.longitude)
        )
        with tracer.start_as_current_span("registry.camp.create", attributes={"camp.id": camp.id}):
            return self.camps.create(camp)

    def list_camps(self, only_available: bool = False) -> List[Camp]:
        if only_available:
            return self.camps.list(statuses=INTAKE_STATUSES, only_available=True)
        return self.camps.list()

    def get_camp(self, camp_id: str) -> Camp:
        camp = self.camps.get(camp_id)
        if camp is None:
            raise CampNotFound(camp_id)
        return camp

    def update_camp(self, camp_id: str, request: UpdateCampRequest) -> Camp:
        """
        Apply an operator edit.

        Capacity may not drop below current occupancy; the capacity write is
        conditioned on occupancy so a concurrent assignment cannot slip under it.
        """
        camp = self.get_camp(camp_id)
        fields = _request_fields(request)
        if not fields:
            return camp

        validation = validate_camp_update(camp, fields)
        if not validation.is_valid:
            raise InvalidInput(
                "Camp update validation failed",
                details=[{"message": error} for error in validation.errors]
            )

        capacity = fields.get('capacity', camp.capacity)
        if 'status' in fields or 'capacity' in fields:
            fields['status'] = apply_explicit_status(
                fields.get('status'), camp.current_occupancy, capacity, camp.status
            ).value

        updated = self.camps.update_fields(
            camp_id, fields, max_occupancy=capacity if 'capacity' in fields else None
        )
        if updated is None:
            if self.camps.get(camp_id) is None:
                raise CampNotFound(camp_id)
            raise InvalidInput("Capacity cannot be lower than current occupancy")

        status = derive_status(updated.current_occupancy, updated.capacity, updated.status)
        if status != updated.status and self.camps.set_status_if_occupancy(
            camp_id, status, updated.current_occupancy, expected_status=updated.status
        ):
            updated = updated.model_copy(update={'status': status.value})

        logger.info("Camp updated", extra={"camp_id": camp_id, "fields": sorted(fields)})
        return updated

    def delete_camp(self, camp_id: str) -> None:
        """Delete an empty camp and drop it from its neighbours' connections."""
        camp = self.get_camp(camp_id)
        assigned = self.refugees.count_by_camp(camp_id)
        if camp.current_occupancy > 0 or assigned > 0:
            raise CampHasAssignedRefugees(
                f"Camp {camp_id} has {assigned} assigned refugee record(s) "
                f"and occupancy {camp.current_occupancy}"
            )

        if not self.camps.delete_if_unoccupied(camp_id):
            if self.camps.get(camp_id) is None:
                raise CampNotFound(camp_id)
            raise CampHasAssignedRefugees(f"Camp {camp_id} received an assignment during deletion")

        self.graph.detach_camp(camp_id)
        logger.warning("Camp deleted", extra={"camp_id": camp_id, "camp_name": camp.name})


class RefugeeRegistry:
    """Refugee records outside of placement changes."""

    def __init__(self, refugee_repository: RefugeeRepository, engine: AssignmentEngine,
                 geocoder: Optional[NominatimGeocoder] = None):
        self.refugees = refugee_repository
        self.engine = engine
        self.geocoder = geocoder

    def create_refugee(self, request: CreateRefugeeRequest) -> Refugee:
        """Register a refugee as Pending; geocodes the address when no coordinate is given."""
        coordinate = request.coordinate()
        if coordinate is None:
            if self.geocoder is None:
                raise GeocodeFailure("No coordinate given and no geocoder configured")
            coordinate = self.geocoder.resolve(request.address).coordinate
        fields = request.model_dump(exclude=COORDINATE_FIELDS)
        refugee = Refugee(**fields, coordinate=coordinate)
        return self.refugees.create(refugee)

    def list_refugees(self, status: Optional[str] = None, camp_id: Optional[str] = None) -> List[Refugee]:
        return self.refugees.list(status=status, camp_id=camp_id)

    def get_refugee(self, refugee_id: str) -> Refugee:
        refugee = self.refugees.get(refugee_id)
        if refugee is None:
            raise RefugeeNotFound(refugee_id)
        return refugee

    def update_refugee(self, refugee_id: str, request: UpdateRefugeeRequest) -> Refugee:
        refugee = self.get_refugee(refugee_id)
        fields = _request_fields(request)
        if not fields:
            return refugee

        validation = validate_refugee_update(refugee, fields)
        if not validation.is_valid:
            raise InvalidInput(
                "Refugee update validation failed",
                details=[{"message": error} for error in validation.errors]
            )

        resizing = 'family_members' in fields and fields['family_members'] != refugee.family_members
        updated = self.refugees.update_fields(refugee_id, fields, unassigned_only=resizing)
        if updated is None:
            if self.refugees.get(refugee_id) is None:
                raise RefugeeNotFound(refugee_id)
            raise InvalidInput(
                "Family size of an assigned refugee cannot change; release the refugee first"
            )
        return updated

    def delete_refugee(self, refugee_id: str) -> None:
        """Release the refugee's place, if any, then remove the record."""
        refugee = self.get_refugee(refugee_id)
        if refugee.is_assigned():
            result = self.engine.release(refugee_id)
            if not result.success and result.error_kind != ErrorKind.REFUGEE_NOT_ASSIGNED:
                raise result.error

        if not self.refugees.delete(refugee_id, unassigned_only=True):
            if self.refugees.get(refugee_id) is None:
                raise RefugeeNotFound(refugee_id)
            raise AlreadyAssigned(f"Refugee {refugee_id} was assigned during deletion; retry")
        logger.info("Refugee deleted", extra={"refugee_id": refugee_id})
