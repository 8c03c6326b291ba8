# SPDX-License-Identifier: Apache-2.0

"""
Camp assignment engine.

Finds eligible camps, picks the nearest one, reserves capacity with a
conditional occupancy update and records the placement on the refugee.
Every public operation returns an EngineResult; failures carry one of the
domain error kinds.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from ..domain import geo
from ..domain.errors import (
    AlreadyAssigned, CapacityExceededConcurrently, GeocodeFailure,
    InvalidInput, NoCampsAvailable, NoCapacitySufficient, RefugeeNotAssigned,
    RefugeeNotFound, ReliefError
)
from ..domain.occupancy import INTAKE_STATUSES, derive_status
from ..models.entities import Camp, Coordinate, Refugee
from ..models.enums import ErrorKind
from .geocoder import NominatimGeocoder
from .repositories import CampRepository, RefugeeRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class AssignmentResult:
    """Refugee placement, or a refugee left pending when camp is None."""
    refugee: Refugee
    camp: Optional[Camp] = None
    distance_km: Optional[float] = None
    attempts: int = 0

    @property
    def assigned(self) -> bool:
        return self.camp is not None


@dataclass
class EngineResult:
    """Result of an assignment engine operation."""
    success: bool
    assignment: Optional[AssignmentResult] = None
    camps: List[Camp] = field(default_factory=list)
    ranked: List[geo.RankedSite] = field(default_factory=list)
    error: Optional[ReliefError] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @classmethod
    def failed(cls, error: ReliefError) -> "EngineResult":
        return cls(success=False, error=error)


class AssignmentEngine:
    """Assigns refugees to the nearest camp with room for their family."""

    def __init__(
        self,
        camp_repository: CampRepository,
        refugee_repository: RefugeeRepository,
        geocoder: Optional[NominatimGeocoder] = None,
        max_attempts: Optional[int] = None
    ):
        self.camps = camp_repository
        self.refugees = refugee_repository
        self.geocoder = geocoder
        self.max_attempts = max_attempts

    # Public operations

    def find_eligible_camps(self, family_size: int) -> EngineResult:
        """Camps accepting intake with room for family_size persons."""
        try:
            return EngineResult(success=True, camps=self._eligible_camps(family_size))
        except ReliefError as e:
            return EngineResult.failed(e)

    def assign(self, refugee_id: str) -> EngineResult:
        """Assign a registered refugee to the nearest eligible camp."""
        with tracer.start_as_current_span(
            "assignment.assign", attributes={"refugee.id": refugee_id}
        ) as span:
            try:
                refugee = self.refugees.get(refugee_id)
                if refugee is None:
                    raise RefugeeNotFound(refugee_id)
                assignment = self._assign(refugee)
            except ReliefError as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                span.set_attribute("assignment.error", e.kind.value)
                logger.info(
                    "Refugee assignment failed",
                    extra={"refugee_id": refugee_id, "error_kind": e.kind.value, "error": e.message}
                )
                return EngineResult.failed(e)

            span.set_attributes({
                "camp.id": assignment.camp.id,
                "assignment.distance_km": round(assignment.distance_km, 3),
                "assignment.attempts": assignment.attempts
            })
            return EngineResult(success=True, assignment=assignment)

    def register_and_assign(
        self,
        attributes: Dict[str, Any],
        coordinate: Optional[Coordinate] = None
    ) -> EngineResult:
        """
        Register a refugee and place them in the nearest eligible camp.

        Args:
            attributes: Refugee fields (name, age, gender, address, ...)
            coordinate: Resolved location; geocoded from the address when None

        Returns:
            EngineResult whose assignment has camp None when no camp could
            take the family. The refugee is persisted as Pending in that case.
        """
        with tracer.start_as_current_span("assignment.register_and_assign") as span:
            try:
                attributes = dict(attributes)
                if coordinate is None:
                    coordinate = self._resolve(attributes)
                refugee = self._build_refugee(attributes, coordinate)
            except ReliefError as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                return EngineResult.failed(e)

            self.refugees.create(refugee)
            span.set_attribute("refugee.id", refugee.id)

            try:
                assignment = self._assign(refugee)
            except (NoCampsAvailable, NoCapacitySufficient) as e:
                logger.info(
                    "Refugee registered but no available camps found",
                    extra={"refugee_id": refugee.id, "reason": e.kind.value}
                )
                span.set_attribute("assignment.pending_reason", e.kind.value)
                return EngineResult(success=True, assignment=AssignmentResult(refugee=refugee))
            except ReliefError as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                return EngineResult.failed(e)

            return EngineResult(success=True, assignment=assignment)

    def release(self, refugee_id: str) -> EngineResult:
        """
        Free a refugee's place and return them to Pending.

        Occupancy is decremented before the refugee is detached. If the
        detach finds the refugee already released by a concurrent call, the
        decrement is undone.
        """
        with tracer.start_as_current_span(
            "assignment.release", attributes={"refugee.id": refugee_id}
        ) as span:
            try:
                refugee = self.refugees.get(refugee_id)
                if refugee is None:
                    raise RefugeeNotFound(refugee_id)
                if not refugee.is_assigned():
                    raise RefugeeNotAssigned(f"Refugee {refugee_id} is not assigned to a camp")

                camp = self._decrement(refugee.assigned_camp, refugee.family_members)
                detached = self.refugees.detach(refugee.id, refugee.assigned_camp)
                if detached is None:
                    if camp is not None:
                        self._compensate(camp.id, refugee.family_members)
                    raise RefugeeNotAssigned(f"Refugee {refugee_id} was released concurrently")
            except ReliefError as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                return EngineResult.failed(e)

            logger.info(
                "Refugee released from camp",
                extra={"refugee_id": refugee_id, "camp_id": refugee.assigned_camp,
                       "family_members": refugee.family_members}
            )
            return EngineResult(success=True, assignment=AssignmentResult(refugee=detached, camp=camp))

    def nearest_camps(self, point: Coordinate, count: int = 5) -> EngineResult:
        """Nearest camps that accept intake and have at least one free place."""
        with tracer.start_as_current_span("assignment.nearest_camps"):
            candidates = self.camps.find_eligible(1)
            if not candidates:
                return EngineResult.failed(NoCampsAvailable("No available camps found"))
            return EngineResult(success=True, ranked=geo.top_n(point, candidates, count))

    # Internals

    def _eligible_camps(self, family_size: int) -> List[Camp]:
        if family_size < 1:
            raise InvalidInput("Family size must be at least 1")
        eligible = self.camps.find_eligible(family_size)
        if eligible:
            return eligible
        if self.camps.count_by_status(INTAKE_STATUSES) == 0:
            raise NoCampsAvailable("No available camps found")
        raise NoCapacitySufficient(
            f"No camps with sufficient capacity for {family_size} persons"
        )

    def _assign(self, refugee: Refugee) -> AssignmentResult:
        if refugee.is_assigned():
            raise AlreadyAssigned(f"Refugee {refugee.id} already assigned to a camp")

        remaining = self._eligible_camps(refugee.family_members)
        limit = len(remaining)
        if self.max_attempts:
            limit = min(limit, self.max_attempts)

        attempts = 0
        while remaining and attempts < limit:
            attempts += 1
            choice = geo.nearest(refugee.coordinate, remaining)
            candidate = choice.site
            try:
                reserved = self.camps.update_occupancy_conditional(
                    candidate.id, refugee.family_members, candidate.capacity, intake_only=True
                )
            except CapacityExceededConcurrently:
                logger.info(
                    "Camp filled or closed concurrently, trying next nearest",
                    extra={"refugee_id": refugee.id, "camp_id": candidate.id, "attempt": attempts}
                )
                remaining = [camp for camp in remaining if camp.id != candidate.id]
                continue

            placed = self._attach(refugee, reserved)
            camp = self._sync_status(reserved)
            logger.info(
                "Refugee successfully assigned to camp",
                extra={
                    "refugee_id": placed.id,
                    "camp_id": camp.id,
                    "distance_km": round(choice.distance_km, 2),
                    "family_members": placed.family_members,
                    "attempts": attempts
                }
            )
            return AssignmentResult(
                refugee=placed, camp=camp, distance_km=choice.distance_km, attempts=attempts
            )

        raise NoCapacitySufficient(
            f"No camps with sufficient capacity for {refugee.family_members} persons "
            f"after {attempts} attempts"
        )

    def _attach(self, refugee: Refugee, reserved: Camp) -> Refugee:
        """Record the placement, undoing the reservation if that fails."""
        try:
            placed = self.refugees.attach_if_unassigned(refugee.id, reserved.id)
        except Exception:
            self._compensate(reserved.id, -refugee.family_members)
            raise
        if placed is None:
            self._compensate(reserved.id, -refugee.family_members)
            if self.refugees.get(refugee.id) is None:
                raise RefugeeNotFound(refugee.id)
            raise AlreadyAssigned(f"Refugee {refugee.id} already assigned to a camp")
        return placed

    def _decrement(self, camp_id: str, family_size: int) -> Optional[Camp]:
        """Release places in a camp; None when the camp no longer exists."""
        camp = self.camps.get(camp_id)
        if camp is None:
            logger.warning(f"Assigned camp {camp_id} no longer exists; detaching only")
            return None
        try:
            released = self.camps.update_occupancy_conditional(camp_id, -family_size, camp.capacity)
        except CapacityExceededConcurrently:
            if self.camps.get(camp_id) is None:
                return None
            raise
        return self._sync_status(released)

    def _compensate(self, camp_id: str, delta: int) -> None:
        """Undo an occupancy change whose refugee-side write did not happen."""
        camp = self.camps.get(camp_id)
        if camp is None:
            return
        try:
            restored = self.camps.update_occupancy_conditional(camp_id, delta, camp.capacity)
        except CapacityExceededConcurrently:
            logger.error(
                "Failed to undo occupancy change",
                extra={"camp_id": camp_id, "delta": delta}
            )
            raise
        self._sync_status(restored)

    def _sync_status(self, camp: Camp) -> Camp:
        """Persist the status derived from the occupancy this camp snapshot holds."""
        status = derive_status(camp.current_occupancy, camp.capacity, camp.status)
        if status == camp.status:
            return camp
        if self.camps.set_status_if_occupancy(
            camp.id, status, camp.current_occupancy, expected_status=camp.status
        ):
            logger.info(
                f"Camp status changed to {status.value}",
                extra={"camp_id": camp.id, "occupancy": camp.current_occupancy, "capacity": camp.capacity}
            )
            return camp.model_copy(update={"status": status.value})
        # A newer occupancy change or operator edit owns the status now
        return camp

    def _resolve(self, attributes: Dict[str, Any]) -> Coordinate:
        if self.geocoder is None:
            raise GeocodeFailure("No coordinate given and no geocoder configured")
        resolved = self.geocoder.resolve(attributes.get('address', ''))
        if resolved.display_name:
            attributes['address'] = resolved.display_name
        return resolved.coordinate

    @staticmethod
    def _build_refugee(attributes: Dict[str, Any], coordinate: Coordinate) -> Refugee:
        for placement_field in ('assigned_camp', 'status', 'id', 'coordinate'):
            attributes.pop(placement_field, None)
        try:
            return Refugee(**attributes, coordinate=coordinate)
        except ValidationError as e:
            raise InvalidInput(
                "Invalid refugee attributes",
                details=[
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
            )
