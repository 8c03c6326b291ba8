# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the MongoDB service layer and repositories.

The collections are mocks; the tests check the filters and updates sent to
MongoDB rather than the server's behaviour.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from relief_api.domain.errors import CapacityExceededConcurrently, InvalidInput
from relief_api.models.enums import RefugeeStatus
from relief_api.services.mongodb import MongoDBService, CAMPS, REFUGEES
from relief_api.services.repositories import (
    MongoCampRepository, MongoRefugeeRepository, camp_from_document, entity_to_document,
    refugee_from_document
)

from .factories import INDIA_GATE, make_camp, make_refugee


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def mongodb_service(collection):
    service = Mock(spec=MongoDBService)
    service.get_collection.return_value = collection
    return service


class TestMongoDBService:
    """Test MongoDB service functionality."""

    def test_to_object_id(self):
        object_id = ObjectId()

        assert MongoDBService.to_object_id(str(object_id)) == object_id
        assert MongoDBService.to_object_id("not-an-id") is None

    def test_settings_from_arguments(self):
        service = MongoDBService(
            "mongodb://db.example.com:27017", "relief_camps_test",
            max_pool_size=25, server_selection_timeout_ms=1500
        )

        assert service.database_name == "relief_camps_test"
        assert service.max_pool_size == 25
        assert service.server_selection_timeout_ms == 1500

    @patch('relief_api.services.mongodb.MongoClient')
    def test_health_check_healthy(self, mock_client_class):
        client = MagicMock()
        client.admin.command.return_value = {'ok': 1}
        client.server_info.return_value = {'version': '7.0.2'}
        mock_client_class.return_value = client

        health = MongoDBService("mongodb://localhost:27017", "relief_camps_test").health_check()

        assert health['status'] == 'healthy'
        assert health['ping'] is True
        assert health['version'] == '7.0.2'
        assert health['database'] == 'relief_camps_test'

    @patch('relief_api.services.mongodb.MongoClient')
    def test_health_check_unhealthy(self, mock_client_class):
        client = MagicMock()
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        mock_client_class.return_value = client

        health = MongoDBService("mongodb://localhost:27017", "relief_camps_test").health_check()

        assert health['status'] == 'unhealthy'
        assert 'no servers' in health['error']

    @patch('relief_api.services.mongodb.MongoClient')
    def test_create_indexes(self, mock_client_class):
        service = MongoDBService("mongodb://localhost:27017", "relief_camps_test")
        collections = {CAMPS: MagicMock(), REFUGEES: MagicMock()}
        service.get_collection = lambda name: collections[name]

        service.create_indexes()

        collections[CAMPS].create_index.assert_any_call("name", unique=True)
        collections[REFUGEES].create_index.assert_any_call("assignedCamp")


class TestDocumentMapping:
    """Test entity to document conversion."""

    def test_camp_document_layout(self):
        camp = make_camp("India Gate Shelter", INDIA_GATE, occupancy=5)

        document = entity_to_document(camp)

        assert document['_id'] == ObjectId(camp.id)
        assert document['currentOccupancy'] == 5
        assert document['latitude'] == 28.6129
        assert document['location'] == {"type": "Point", "coordinates": [77.2295, 28.6129]}
        assert 'coordinate' not in document
        assert 'id' not in document

    def test_camp_read_back(self):
        camp = make_camp("India Gate Shelter", INDIA_GATE, occupancy=5)

        restored = camp_from_document(entity_to_document(camp))

        assert restored.id == camp.id
        assert restored.coordinate == INDIA_GATE
        assert restored.current_occupancy == 5

    def test_refugee_read_back(self):
        refugee = make_refugee(family_members=4)

        restored = refugee_from_document(entity_to_document(refugee))

        assert restored.id == refugee.id
        assert restored.family_members == 4
        assert restored.status == RefugeeStatus.PENDING


class TestMongoCampRepository:
    """Test camp queries and conditional updates."""

    def test_duplicate_name(self, mongodb_service, collection):
        collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(InvalidInput, match="already exists"):
            MongoCampRepository(mongodb_service).create(make_camp("India Gate Shelter", INDIA_GATE))

    def test_get_malformed_id(self, mongodb_service, collection):
        assert MongoCampRepository(mongodb_service).get("not-an-id") is None
        collection.find_one.assert_not_called()

    def test_find_eligible_query(self, mongodb_service, collection):
        collection.find.return_value.sort.return_value = []

        MongoCampRepository(mongodb_service).find_eligible(3)

        query = collection.find.call_args[0][0]
        assert query["status"] == {"$in": ["Active", "Emergency"]}
        assert query["$expr"] == {"$gte": [{"$subtract": ["$capacity", "$currentOccupancy"]}, 3]}
        collection.find.return_value.sort.assert_called_once_with("_id", 1)

    def test_occupancy_update_is_conditional(self, mongodb_service, collection):
        camp = make_camp("India Gate Shelter", INDIA_GATE, capacity=10, occupancy=4)
        collection.find_one_and_update.return_value = entity_to_document(
            camp.model_copy(update={'current_occupancy': 6})
        )

        updated = MongoCampRepository(mongodb_service).update_occupancy_conditional(camp.id, 2, 10)

        query, update = collection.find_one_and_update.call_args[0]
        assert query["_id"] == ObjectId(camp.id)
        assert query["currentOccupancy"] == {"$gte": -2, "$lte": 8}
        assert update["$inc"] == {"currentOccupancy": 2}
        assert collection.find_one_and_update.call_args[1]["return_document"] == ReturnDocument.AFTER
        assert updated.current_occupancy == 6
        assert "status" not in query

    def test_reservation_requires_intake_status(self, mongodb_service, collection):
        camp = make_camp("India Gate Shelter", INDIA_GATE, capacity=10, occupancy=4)
        collection.find_one_and_update.return_value = entity_to_document(camp)

        MongoCampRepository(mongodb_service).update_occupancy_conditional(camp.id, 2, 10, intake_only=True)

        query = collection.find_one_and_update.call_args[0][0]
        assert query["status"] == {"$in": ["Active", "Emergency"]}

    def test_occupancy_update_conflict(self, mongodb_service, collection):
        collection.find_one_and_update.return_value = None
        camp_id = str(ObjectId())

        with pytest.raises(CapacityExceededConcurrently):
            MongoCampRepository(mongodb_service).update_occupancy_conditional(camp_id, 3, 10)

    def test_capacity_edit_conditioned_on_occupancy(self, mongodb_service, collection):
        collection.find_one_and_update.return_value = None
        camp_id = str(ObjectId())

        result = MongoCampRepository(mongodb_service).update_fields(
            camp_id, {"capacity": 50}, max_occupancy=50
        )

        query, update = collection.find_one_and_update.call_args[0]
        assert result is None
        assert query["currentOccupancy"] == {"$lte": 50}
        assert update["$set"]["capacity"] == 50

    def test_coordinate_edit_updates_location(self, mongodb_service, collection):
        collection.find_one_and_update.return_value = None

        MongoCampRepository(mongodb_service).update_fields(str(ObjectId()), {"coordinate": INDIA_GATE})

        update = collection.find_one_and_update.call_args[0][1]["$set"]
        assert update["latitude"] == 28.6129
        assert update["location"]["coordinates"] == [77.2295, 28.6129]

    def test_status_write_checks_occupancy(self, mongodb_service, collection):
        collection.update_one.return_value = Mock(matched_count=0)
        camp_id = str(ObjectId())

        assert not MongoCampRepository(mongodb_service).set_status_if_occupancy(camp_id, "Full", 10)

        query, update = collection.update_one.call_args[0]
        assert query == {"_id": ObjectId(camp_id), "currentOccupancy": 10}
        assert update["$set"]["status"] == "Full"

    def test_status_write_checks_prior_status(self, mongodb_service, collection):
        collection.update_one.return_value = Mock(matched_count=1)
        camp_id = str(ObjectId())

        assert MongoCampRepository(mongodb_service).set_status_if_occupancy(
            camp_id, "Active", 4, expected_status="Full"
        )

        query = collection.update_one.call_args[0][0]
        assert query == {"_id": ObjectId(camp_id), "currentOccupancy": 4, "status": "Full"}

    def test_delete_only_when_empty(self, mongodb_service, collection):
        collection.delete_one.return_value = Mock(deleted_count=1)
        camp_id = str(ObjectId())

        assert MongoCampRepository(mongodb_service).delete_if_unoccupied(camp_id)
        collection.delete_one.assert_called_once_with({"_id": ObjectId(camp_id), "currentOccupancy": 0})


class TestMongoRefugeeRepository:
    """Test refugee placement writes."""

    def test_attach_only_unassigned(self, mongodb_service, collection):
        refugee = make_refugee()
        camp_id = str(ObjectId())
        collection.find_one_and_update.return_value = entity_to_document(refugee.assigned_to(camp_id))

        placed = MongoRefugeeRepository(mongodb_service).attach_if_unassigned(refugee.id, camp_id)

        query, update = collection.find_one_and_update.call_args[0]
        assert query == {"_id": ObjectId(refugee.id), "assignedCamp": None}
        assert update["$set"]["status"] == "Assigned"
        assert placed.assigned_camp == camp_id

    def test_detach_requires_matching_camp(self, mongodb_service, collection):
        collection.find_one_and_update.return_value = None
        refugee_id = str(ObjectId())

        assert MongoRefugeeRepository(mongodb_service).detach(refugee_id, "other-camp") is None

        query = collection.find_one_and_update.call_args[0][0]
        assert query["assignedCamp"] == "other-camp"

    def test_list_filters(self, mongodb_service, collection):
        collection.find.return_value.sort.return_value = []

        MongoRefugeeRepository(mongodb_service).list(status=RefugeeStatus.PENDING, camp_id="c1")

        collection.find.assert_called_once_with({"status": "Pending", "assignedCamp": "c1"})

    def test_delete_unassigned_only(self, mongodb_service, collection):
        collection.delete_one.return_value = Mock(deleted_count=0)
        refugee_id = str(ObjectId())

        assert not MongoRefugeeRepository(mongodb_service).delete(refugee_id)
        collection.delete_one.assert_called_once_with({"_id": ObjectId(refugee_id), "assignedCamp": None})
