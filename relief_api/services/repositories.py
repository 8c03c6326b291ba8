# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Camp and refugee repositories.

The abstract classes define the storage contract the assignment engine and
camp graph rely on. The MongoDB implementations keep every occupancy change
a single conditional document update, so the capacity check and the
increment cannot be interleaved by a concurrent request.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from opentelemetry import trace
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from pydantic.alias_generators import to_camel

from ..domain.errors import CapacityExceededConcurrently, InvalidInput
from ..domain.occupancy import INTAKE_STATUSES
from ..models.base import utcnow
from ..models.entities import Camp, Refugee
from ..models.enums import RefugeeStatus
from .mongodb import MongoDBService, CAMPS, REFUGEES

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class CampRepository(ABC):
    """Storage contract for camps."""

    @abstractmethod
    def create(self, camp: Camp) -> Camp:
        """Insert a camp; raises InvalidInput on a duplicate name."""

    @abstractmethod
    def get(self, camp_id: str) -> Optional[Camp]:
        """Camp by ID, or None."""

    @abstractmethod
    def list(self, statuses: Optional[Iterable[str]] = None, only_available: bool = False) -> List[Camp]:
        """Camps in natural order, optionally filtered by status or free room."""

    @abstractmethod
    def find_eligible(self, min_free: int) -> List[Camp]:
        """Camps accepting intake with at least min_free places left."""

    @abstractmethod
    def count_by_status(self, statuses: Iterable[str]) -> int:
        """Number of camps in any of the given statuses."""

    @abstractmethod
    def update_fields(self, camp_id: str, fields: Dict[str, Any],
                      max_occupancy: Optional[int] = None) -> Optional[Camp]:
        """
        Set plain fields on a camp.

        When max_occupancy is given the write only applies while occupancy is
        at most that value. Returns the updated camp, or None when the camp is
        missing or the condition failed.
        """

    @abstractmethod
    def update_occupancy_conditional(self, camp_id: str, delta: int, capacity_ceiling: int,
                                     intake_only: bool = False) -> Camp:
        """
        Atomically add delta to occupancy.

        Applies only while the result stays within [0, capacity_ceiling] and
        within the stored capacity, and with intake_only, only while the camp
        is in an intake status. Raises CapacityExceededConcurrently otherwise.
        """

    @abstractmethod
    def set_status_if_occupancy(self, camp_id: str, status: str, expected_occupancy: int,
                                expected_status: Optional[str] = None) -> bool:
        """
        Write status only if occupancy still equals expected_occupancy and,
        when given, the stored status still equals expected_status.
        """

    @abstractmethod
    def add_connection(self, camp_id: str, other_id: str) -> bool:
        """Add other_id to the camp's connections; True if it was newly added."""

    @abstractmethod
    def remove_connection(self, camp_id: str, other_id: str) -> bool:
        """Remove other_id from the camp's connections; True if it was present."""

    @abstractmethod
    def remove_from_all_connections(self, camp_id: str) -> int:
        """Drop camp_id from every camp's connections; returns camps touched."""

    @abstractmethod
    def delete_if_unoccupied(self, camp_id: str) -> bool:
        """Delete the camp only while its occupancy is zero."""


class RefugeeRepository(ABC):
    """Storage contract for refugees."""

    @abstractmethod
    def create(self, refugee: Refugee) -> Refugee:
        """Insert a refugee."""

    @abstractmethod
    def get(self, refugee_id: str) -> Optional[Refugee]:
        """Refugee by ID, or None."""

    @abstractmethod
    def list(self, status: Optional[str] = None, camp_id: Optional[str] = None) -> List[Refugee]:
        """Refugees in natural order, optionally filtered."""

    @abstractmethod
    def count_by_camp(self, camp_id: str) -> int:
        """Number of refugees assigned to the camp."""

    @abstractmethod
    def update_fields(self, refugee_id: str, fields: Dict[str, Any],
                      unassigned_only: bool = False) -> Optional[Refugee]:
        """Set plain fields; None when missing or, if unassigned_only, assigned."""

    @abstractmethod
    def attach_if_unassigned(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        """Place an unassigned refugee in a camp; None if already placed or missing."""

    @abstractmethod
    def detach(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        """Return a refugee placed in camp_id to Pending; None if not placed there."""

    @abstractmethod
    def delete(self, refugee_id: str, unassigned_only: bool = True) -> bool:
        """Delete a refugee; by default only while unassigned."""


# Document mapping

def _field_to_document(name: str, value: Any) -> Dict[str, Any]:
    """Map a model field update to stored document keys."""
    if name == 'coordinate':
        return {
            'latitude': value.latitude,
            'longitude': value.longitude,
            'location': value.to_geojson()
        }
    if hasattr(value, 'model_dump'):
        value = value.model_dump()
    elif hasattr(value, 'value'):
        value = value.value
    return {to_camel(name): value}


def _updates_to_document(fields: Dict[str, Any]) -> Dict[str, Any]:
    document = {}
    for name, value in fields.items():
        document.update(_field_to_document(name, value))
    document['updatedAt'] = utcnow()
    return document


def entity_to_document(entity) -> Dict[str, Any]:
    """Serialize a camp or refugee for storage."""
    document = entity.model_dump(by_alias=True, exclude={'id', 'coordinate'})
    document['_id'] = MongoDBService.to_object_id(entity.id)
    document.update(_field_to_document('coordinate', entity.coordinate))
    return document


def _document_fields(document: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(document)
    data['id'] = str(data.pop('_id'))
    data['coordinate'] = {
        'latitude': data.pop('latitude'),
        'longitude': data.pop('longitude')
    }
    data.pop('location', None)
    return data


def camp_from_document(document: Dict[str, Any]) -> Camp:
    return Camp.model_validate(_document_fields(document))


def refugee_from_document(document: Dict[str, Any]) -> Refugee:
    return Refugee.model_validate(_document_fields(document))


def _intake_values() -> List[str]:
    return [status.value for status in INTAKE_STATUSES]


class MongoCampRepository(CampRepository):
    """Camp repository backed by the camps collection."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    @property
    def collection(self):
        return self.mongodb_service.get_collection(CAMPS)

    def create(self, camp: Camp) -> Camp:
        with tracer.start_as_current_span("db.camp.create"):
            try:
                self.collection.insert_one(entity_to_document(camp))
            except DuplicateKeyError:
                raise InvalidInput(f"Camp with name '{camp.name}' already exists")
            logger.info(f"Created camp {camp.id}", extra={"camp_id": camp.id, "camp_name": camp.name})
            return camp

    def get(self, camp_id: str) -> Optional[Camp]:
        object_id = MongoDBService.to_object_id(camp_id)
        if object_id is None:
            return None
        document = self.collection.find_one({"_id": object_id})
        return camp_from_document(document) if document else None

    def list(self, statuses: Optional[Iterable[str]] = None, only_available: bool = False) -> List[Camp]:
        query: Dict[str, Any] = {}
        if statuses is not None:
            query["status"] = {"$in": [getattr(s, 'value', s) for s in statuses]}
        if only_available:
            query["$expr"] = {"$lt": ["$currentOccupancy", "$capacity"]}
        return [camp_from_document(doc) for doc in self.collection.find(query).sort("_id", 1)]

    def find_eligible(self, min_free: int) -> List[Camp]:
        with tracer.start_as_current_span("db.camp.find_eligible") as span:
            span.set_attribute("camp.min_free", min_free)
            query = {
                "status": {"$in": _intake_values()},
                "$expr": {
                    "$gte": [{"$subtract": ["$capacity", "$currentOccupancy"]}, min_free]
                }
            }
            camps = [camp_from_document(doc) for doc in self.collection.find(query).sort("_id", 1)]
            span.set_attribute("camp.eligible_count", len(camps))
            return camps

    def count_by_status(self, statuses: Iterable[str]) -> int:
        return self.collection.count_documents(
            {"status": {"$in": [getattr(s, 'value', s) for s in statuses]}}
        )

    def update_fields(self, camp_id: str, fields: Dict[str, Any],
                      max_occupancy: Optional[int] = None) -> Optional[Camp]:
        object_id = MongoDBService.to_object_id(camp_id)
        if object_id is None:
            return None
        query: Dict[str, Any] = {"_id": object_id}
        if max_occupancy is not None:
            query["currentOccupancy"] = {"$lte": max_occupancy}
        try:
            document = self.collection.find_one_and_update(
                query,
                {"$set": _updates_to_document(fields)},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise InvalidInput(f"Camp with name '{fields.get('name')}' already exists")
        return camp_from_document(document) if document else None

    def update_occupancy_conditional(self, camp_id: str, delta: int, capacity_ceiling: int,
                                     intake_only: bool = False) -> Camp:
        with tracer.start_as_current_span("db.camp.update_occupancy") as span:
            span.set_attributes({"camp.id": camp_id, "occupancy.delta": delta})
            query = {
                "_id": MongoDBService.to_object_id(camp_id),
                "currentOccupancy": {"$gte": -delta, "$lte": capacity_ceiling - delta},
                "$expr": {"$lte": [{"$add": ["$currentOccupancy", delta]}, "$capacity"]}
            }
            if intake_only:
                query["status"] = {"$in": _intake_values()}
            document = self.collection.find_one_and_update(
                query,
                {"$inc": {"currentOccupancy": delta}, "$set": {"updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER
            )
            if document is None:
                span.set_attribute("occupancy.conflict", True)
                raise CapacityExceededConcurrently(camp_id, delta)
            return camp_from_document(document)

    def set_status_if_occupancy(self, camp_id: str, status: str, expected_occupancy: int,
                                expected_status: Optional[str] = None) -> bool:
        query = {"_id": MongoDBService.to_object_id(camp_id), "currentOccupancy": expected_occupancy}
        if expected_status is not None:
            query["status"] = getattr(expected_status, 'value', expected_status)
        result = self.collection.update_one(
            query,
            {"$set": {"status": getattr(status, 'value', status), "updatedAt": utcnow()}}
        )
        return result.matched_count > 0

    def add_connection(self, camp_id: str, other_id: str) -> bool:
        result = self.collection.update_one(
            {"_id": MongoDBService.to_object_id(camp_id), "connectedCamps": {"$ne": other_id}},
            {"$addToSet": {"connectedCamps": other_id}, "$set": {"updatedAt": utcnow()}}
        )
        return result.modified_count > 0

    def remove_connection(self, camp_id: str, other_id: str) -> bool:
        result = self.collection.update_one(
            {"_id": MongoDBService.to_object_id(camp_id), "connectedCamps": other_id},
            {"$pull": {"connectedCamps": other_id}, "$set": {"updatedAt": utcnow()}}
        )
        return result.modified_count > 0

    def remove_from_all_connections(self, camp_id: str) -> int:
        result = self.collection.update_many(
            {"connectedCamps": camp_id},
            {"$pull": {"connectedCamps": camp_id}, "$set": {"updatedAt": utcnow()}}
        )
        return result.modified_count

    def delete_if_unoccupied(self, camp_id: str) -> bool:
        object_id = MongoDBService.to_object_id(camp_id)
        if object_id is None:
            return False
        result = self.collection.delete_one({"_id": object_id, "currentOccupancy": 0})
        return result.deleted_count > 0


class MongoRefugeeRepository(RefugeeRepository):
    """Refugee repository backed by the refugees collection."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    @property
    def collection(self):
        return self.mongodb_service.get_collection(REFUGEES)

    def create(self, refugee: Refugee) -> Refugee:
        with tracer.start_as_current_span("db.refugee.create"):
            self.collection.insert_one(entity_to_document(refugee))
            logger.info(f"Created refugee {refugee.id}", extra={"refugee_id": refugee.id})
            return refugee

    def get(self, refugee_id: str) -> Optional[Refugee]:
        object_id = MongoDBService.to_object_id(refugee_id)
        if object_id is None:
            return None
        document = self.collection.find_one({"_id": object_id})
        return refugee_from_document(document) if document else None

    def list(self, status: Optional[str] = None, camp_id: Optional[str] = None) -> List[Refugee]:
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = getattr(status, 'value', status)
        if camp_id is not None:
            query["assignedCamp"] = camp_id
        return [refugee_from_document(doc) for doc in self.collection.find(query).sort("_id", 1)]

    def count_by_camp(self, camp_id: str) -> int:
        return self.collection.count_documents({"assignedCamp": camp_id})

    def update_fields(self, refugee_id: str, fields: Dict[str, Any],
                      unassigned_only: bool = False) -> Optional[Refugee]:
        object_id = MongoDBService.to_object_id(refugee_id)
        if object_id is None:
            return None
        query: Dict[str, Any] = {"_id": object_id}
        if unassigned_only:
            query["assignedCamp"] = None
        document = self.collection.find_one_and_update(
            query,
            {"$set": _updates_to_document(fields)},
            return_document=ReturnDocument.AFTER
        )
        return refugee_from_document(document) if document else None

    def attach_if_unassigned(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        document = self.collection.find_one_and_update(
            {"_id": MongoDBService.to_object_id(refugee_id), "assignedCamp": None},
            {"$set": {
                "assignedCamp": camp_id,
                "status": RefugeeStatus.ASSIGNED.value,
                "updatedAt": utcnow()
            }},
            return_document=ReturnDocument.AFTER
        )
        return refugee_from_document(document) if document else None

    def detach(self, refugee_id: str, camp_id: str) -> Optional[Refugee]:
        document = self.collection.find_one_and_update(
            {"_id": MongoDBService.to_object_id(refugee_id), "assignedCamp": camp_id},
            {"$set": {
                "assignedCamp": None,
                "status": RefugeeStatus.PENDING.value,
                "updatedAt": utcnow()
            }},
            return_document=ReturnDocument.AFTER
        )
        return refugee_from_document(document) if document else None

    def delete(self, refugee_id: str, unassigned_only: bool = True) -> bool:
        object_id = MongoDBService.to_object_id(refugee_id)
        if object_id is None:
            return False
        query: Dict[str, Any] = {"_id": object_id}
        if unassigned_only:
            query["assignedCamp"] = None
        return self.collection.delete_one(query).deleted_count > 0
