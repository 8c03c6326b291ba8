# SPDX-License-Identifier: Apache-2.0

"""
In-process camp and refugee repositories for local development and tests.

Records are held as pydantic models and handed out as copies. Occupancy
changes take a per-camp lock across the capacity check and the increment.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..domain.errors import CapacityExceededConcurrently, InvalidInput
from ..domain.camps import filter_eligible
from ..domain.occupancy import can_accept_intake
from ..models.base import utcnow
from ..models.entities import Camp, Refugee
from .repositories import CampRepository, RefugeeRepository

logger = logging.getLogger(__name__)


class InMemoryCampRepository(CampRepository):
    """Camp repository kept in a dict, insertion ordered."""

    def __init__(self):
        self._camps: Dict[str, Camp] = {}
        self._lock = threading.RLock()
        self._camp_locks: Dict[str, threading.Lock] = {}
        logger.info("In-memory camp repository initialized")

    def _camp_lock(self, camp_id: str) -> threading.Lock:
        with self._lock:
            # Unknown ids get a throwaway lock; the camp check under _lock rejects them
            return self._camp_locks.get(camp_id) or threading.Lock()

    def _snapshot(self) -> List[Camp]:
        with self._lock:
            return [camp.model_copy(deep=True) for camp in self._camps.values()]

    def create(self, camp: Camp) -> Camp:
        with self._lock:
            if any(existing.name == camp.name for existing in self._camps.values()):
                raise InvalidInput(f"Camp with name '{camp.name}' already exists")
            self._camps[camp.id] = camp.model_copy(deep=True)
            self._camp_locks[camp.id] = threading.Lock()
        return camp

    def get(self, camp_id: str) -> Optional[Camp]:
        with self._lock:
            camp = self._camps.get(camp_id)
            return camp.model_copy(deep=True) if camp else None

    def list(self, statuses: Optional[Iterable[str]] = None, only_available: bool = False) -> List[Camp]:
        camps = self._snapshot()
        if statuses is not None:
            wanted = list(statuses)
            camps = [camp for camp in camps if camp.status in wanted]
        if only_available:
            camps = [camp for camp in camps if camp.available_capacity > 0]
        return camps

    def find_eligible(self, min_free: int) -> List[Camp]:
        return filter_eligible(self._snapshot(), min_free)

    def count_by_status(self, statuses: Iterable[str]) -> int:
        return len(self.list(statuses=statuses))

    def update_fields(self, camp_id: str, fields: Dict[str, Any],
                      max_occupancy: Optional[int] = None) -> Optional[Camp]:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
                if camp is None:
                    return None
                if max_occupancy is not None and camp.current_occupancy > max_occupancy:
                    return None
                new_name = fields.get('name')
                if new_name is not None and any(
                    other.name == new_name for other_id, other in self._camps.items() if other_id != camp_id
                ):
                    raise InvalidInput(f"Camp with name '{new_name}' already exists")
                updated = Camp.model_validate({
                    **camp.model_dump(),
                    **fields,
                    'updated_at': utcnow()
                })
                self._camps[camp_id] = updated
                return updated.model_copy(deep=True)

    def update_occupancy_conditional(self, camp_id: str, delta: int, capacity_ceiling: int,
                                     intake_only: bool = False) -> Camp:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
            if camp is None:
                raise CapacityExceededConcurrently(camp_id, delta)
            new_occupancy = camp.current_occupancy + delta
            if new_occupancy < 0 or new_occupancy > min(capacity_ceiling, camp.capacity):
                raise CapacityExceededConcurrently(camp_id, delta)
            if intake_only and not can_accept_intake(camp.status):
                raise CapacityExceededConcurrently(camp_id, delta)
            updated = camp.model_copy(update={'current_occupancy': new_occupancy, 'updated_at': utcnow()})
            with self._lock:
                self._camps[camp_id] = updated
            return updated.model_copy(deep=True)

    def set_status_if_occupancy(self, camp_id: str, status: str, expected_occupancy: int,
                                expected_status: Optional[str] = None) -> bool:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
                if camp is None or camp.current_occupancy != expected_occupancy:
                    return False
                if expected_status is not None and camp.status != expected_status:
                    return False
                self._camps[camp_id] = camp.model_copy(
                    update={'status': getattr(status, 'value', status), 'updated_at': utcnow()}
                )
                return True

    def add_connection(self, camp_id: str, other_id: str) -> bool:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
                if camp is None or other_id in camp.connected_camps:
                    return False
                self._camps[camp_id] = camp.model_copy(update={
                    'connected_camps': camp.connected_camps + [other_id],
                    'updated_at': utcnow()
                })
                return True

    def remove_connection(self, camp_id: str, other_id: str) -> bool:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
                if camp is None or other_id not in camp.connected_camps:
                    return False
                self._camps[camp_id] = camp.model_copy(update={
                    'connected_camps': [c for c in camp.connected_camps if c != other_id],
                    'updated_at': utcnow()
                })
                return True

    def remove_from_all_connections(self, camp_id: str) -> int:
        with self._lock:
            neighbours = [cid for cid, camp in self._camps.items() if camp_id in camp.connected_camps]
        return sum(1 for neighbour in neighbours if self.remove_connection(neighbour, camp_id))

    def delete_if_unoccupied(self, camp_id: str) -> bool:
        with self._camp_lock(camp_id):
            with self._lock:
                camp = self._camps.get(camp_id)
                if camp is None or camp.current_occupancy != 0:
                    return False
                del self._camps[camp_id]
                self._camp_locks.pop(camp_id, None)
                return True


class InMemoryRefugeeRepository(RefugeeRepository):
    """Refugee repository kept in a dict, insertion ordered."""

    def __init__(self):
        self._refugees: Dict[str, Refugee] = {}
        self._lock = threading.RLock()
        logger.info("In-memory refugee repository initialized")

    def create(self, refugee: Refugee) -> Refugee:
        with self._lock:
            self._refugees[refugee.id] = refugee.model_copy(deep=True)
        return refugee

    def get(self, refugee_id: str) -> Optional[Refugee]:
        with self._lock:
            refugee = self._refugees.get(refugee_id)
            return refugee.model_copy(deep=True) if refugee else None

    def list(self, status: Optional[str] = None, camp_id: Optional[str] = None) -> List[Refugee]:
        with self._lock:
            refugees = [refugee.model_copy(deep=True) for refugee in self._refugees.values()]
        if status is not None:
            refugees = [r for r in refugees if r.status == status]
        if camp_id is not None:
            refugees = [r for r in refugees if r.assigned_camp == camp_id]
        return refugees

    def count_by_camp(self, camp_id: str) -> int:
        return len(self.list(camp_id=camp_id))

    def update_fields(self, refugee_id: str, fields: Dict[str, Any],
                      unassigned_only: bool = False) -> Optional[Refugee]:
        with self._lock:
            refugee = self._refugees.get(refugee_id)
            if refugee is None or (unassigned_only and refugee.is_assigned()):
                return None
            updated = Refugee.model_validate({
                **refugee.model_dump(),
                **fields,
                'updated_at': utcnow()
            })
            self._refugees[refugee_id] = updated
            return updated.model_copy(deep=True)

    def attach_if_unassigned(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        with self._lock:
            refugee = self._refugees.get(refugee_id)
            if refugee is None or refugee.is_assigned():
                return None
            updated = refugee.assigned_to(camp_id)
            self._refugees[refugee_id] = updated
            return updated.model_copy(deep=True)

    def detach(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        with self._lock:
            refugee = self._refugees.get(refugee_id)
            if refugee is None or refugee.assigned_camp != camp_id:
                return None
            updated = refugee.detached()
            self._refugees[refugee_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, refugee_id: str, unassigned_only: bool = True) -> bool:
        with self._lock:
            refugee = self._refugees.get(refugee_id)
            if refugee is None or (unassigned_only and refugee.is_assigned()):
                return False
            del self._refugees[refugee_id]
            return True
