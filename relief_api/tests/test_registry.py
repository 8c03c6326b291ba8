# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for camp and refugee registration, editing and removal.
"""

import pytest

from relief_api.domain.errors import (
    AlreadyAssigned, CampHasAssignedRefugees, CampNotFound, GeocodeFailure,
    InvalidInput, RefugeeNotFound
)
from relief_api.models.enums import CampStatus, RefugeeStatus
from relief_api.models.requests import (
    CreateCampRequest, UpdateCampRequest, CreateRefugeeRequest, UpdateRefugeeRequest
)
from relief_api.services.registry import RefugeeRegistry

from .factories import CONNAUGHT_PLACE, INDIA_GATE, NOIDA

MISSING_ID = "64b000000000000000000099"


def camp_request(**overrides):
    data = {
        "name": "India Gate Shelter",
        "address": "Rajpath, New Delhi",
        "latitude": 28.6129,
        "longitude": 77.2295,
        "capacity": 100,
        "facilities": ["Water", "Medical"],
    }
    data.update(overrides)
    return CreateCampRequest.model_validate(data)


class TestCampRegistry:
    """Test camp lifecycle."""

    def test_create_camp(self, camp_registry, camp_repository):
        camp = camp_registry.create_camp(camp_request(managedBy="Delhi Civil Defence"))

        stored = camp_repository.get(camp.id)
        assert stored.coordinate == INDIA_GATE
        assert stored.current_occupancy == 0
        assert stored.status == CampStatus.ACTIVE
        assert stored.managed_by == "Delhi Civil Defence"

    def test_create_camp_default_manager(self, camp_registry):
        assert camp_registry.create_camp(camp_request()).managed_by == "Disaster Management Authority"

    def test_duplicate_name_rejected(self, camp_registry):
        camp_registry.create_camp(camp_request())

        with pytest.raises(InvalidInput, match="already exists"):
            camp_registry.create_camp(camp_request(latitude=28.5))

    def test_list_only_available(self, camp_registry, add_camp):
        add_camp("Open", INDIA_GATE)
        add_camp("Full", NOIDA, capacity=5, occupancy=5, status="Full")
        add_camp("Closed", NOIDA, status="Inactive")

        assert [c.name for c in camp_registry.list_camps(only_available=True)] == ["Open"]
        assert len(camp_registry.list_camps()) == 3

    def test_get_missing_camp(self, camp_registry):
        with pytest.raises(CampNotFound):
            camp_registry.get_camp(MISSING_ID)

    def test_update_fields(self, camp_registry, add_camp):
        camp = add_camp("India Gate Shelter", INDIA_GATE)

        updated = camp_registry.update_camp(
            camp.id, UpdateCampRequest(name="Rajpath Shelter", latitude=28.6, longitude=77.2)
        )

        assert updated.name == "Rajpath Shelter"
        assert updated.coordinate.latitude == 28.6

    def test_capacity_below_occupancy_rejected(self, camp_registry, add_camp, camp_repository):
        camp = add_camp("India Gate Shelter", INDIA_GATE, capacity=100, occupancy=60)

        with pytest.raises(InvalidInput) as exc_info:
            camp_registry.update_camp(camp.id, UpdateCampRequest(capacity=50))

        assert "Capacity cannot be lower than current occupancy" in exc_info.value.details[0]["message"]
        assert camp_repository.get(camp.id).capacity == 100

    def test_capacity_cut_to_occupancy_marks_full(self, camp_registry, add_camp):
        camp = add_camp("India Gate Shelter", INDIA_GATE, capacity=100, occupancy=60)

        updated = camp_registry.update_camp(camp.id, UpdateCampRequest(capacity=60))

        assert updated.status == CampStatus.FULL

    def test_capacity_raise_reopens_full_camp(self, camp_registry, add_camp, camp_repository):
        camp = add_camp("India Gate Shelter", INDIA_GATE, capacity=10, occupancy=10, status="Full")

        camp_registry.update_camp(camp.id, UpdateCampRequest(capacity=20))

        assert camp_repository.get(camp.id).status == CampStatus.ACTIVE

    def test_closing_full_camp_survives_release(self, camp_registry, engine, add_camp, add_refugee,
                                                camp_repository):
        """A camp closed by an operator while full stays closed as places free up."""
        camp = add_camp("India Gate Shelter", INDIA_GATE, capacity=2)
        first = add_refugee(family_members=1)
        second = add_refugee(family_members=1)
        engine.assign(first.id)
        engine.assign(second.id)
        assert camp_repository.get(camp.id).status == CampStatus.FULL

        closed = camp_registry.update_camp(camp.id, UpdateCampRequest(status="Inactive"))
        assert closed.status == CampStatus.INACTIVE

        engine.release(first.id)

        stored = camp_repository.get(camp.id)
        assert stored.status == CampStatus.INACTIVE
        assert stored.current_occupancy == 1
        assert not engine.assign(first.id).success

    def test_empty_update_returns_camp(self, camp_registry, add_camp):
        camp = add_camp("India Gate Shelter", INDIA_GATE)

        assert camp_registry.update_camp(camp.id, UpdateCampRequest()).id == camp.id

    def test_update_missing_camp(self, camp_registry):
        with pytest.raises(CampNotFound):
            camp_registry.update_camp(MISSING_ID, UpdateCampRequest(name="X"))

    def test_delete_empty_camp_detaches_neighbours(self, camp_registry, camp_graph, add_camp, camp_repository):
        camp = add_camp("India Gate Shelter", INDIA_GATE)
        neighbour = add_camp("Noida Sector 62", NOIDA)
        camp_graph.connect(camp.id, neighbour.id)

        camp_registry.delete_camp(camp.id)

        assert camp_repository.get(camp.id) is None
        assert camp_repository.get(neighbour.id).connected_camps == []
        assert camp.id not in camp_repository._camp_locks

    def test_delete_occupied_camp_rejected(self, camp_registry, engine, add_camp, add_refugee, camp_repository):
        camp = add_camp("India Gate Shelter", INDIA_GATE)
        engine.assign(add_refugee(family_members=2).id)

        with pytest.raises(CampHasAssignedRefugees):
            camp_registry.delete_camp(camp.id)

        assert camp_repository.get(camp.id).current_occupancy == 2

    def test_delete_missing_camp(self, camp_registry):
        with pytest.raises(CampNotFound):
            camp_registry.delete_camp(MISSING_ID)


class TestRefugeeRegistry:
    """Test refugee records."""

    def test_create_with_coordinates(self, refugee_registry):
        refugee = refugee_registry.create_refugee(CreateRefugeeRequest(
            name="Ravi Kumar", age=40, gender="Male", address="Connaught Place",
            latitude=28.6315, longitude=77.2167
        ))

        assert refugee.status == RefugeeStatus.PENDING
        assert refugee.coordinate == CONNAUGHT_PLACE

    def test_create_geocodes_address(self, refugee_repository, engine, geocoder_stub):
        registry = RefugeeRegistry(refugee_repository, engine, geocoder=geocoder_stub)

        refugee = registry.create_refugee(CreateRefugeeRequest(
            name="Ravi Kumar", age=40, gender="Male", address="CP, Delhi"
        ))

        geocoder_stub.resolve.assert_called_once_with("CP, Delhi")
        assert refugee.coordinate == CONNAUGHT_PLACE
        assert refugee.address == "CP, Delhi"

    def test_create_without_location_or_geocoder(self, refugee_registry):
        with pytest.raises(GeocodeFailure):
            refugee_registry.create_refugee(CreateRefugeeRequest(
                name="Ravi Kumar", age=40, gender="Male", address="CP, Delhi"
            ))

    def test_list_filters(self, refugee_registry, engine, add_camp, add_refugee):
        camp = add_camp("India Gate Shelter", INDIA_GATE)
        placed = add_refugee(name="Placed")
        add_refugee(name="Waiting")
        engine.assign(placed.id)

        assert [r.name for r in refugee_registry.list_refugees(status="Pending")] == ["Waiting"]
        assert [r.name for r in refugee_registry.list_refugees(camp_id=camp.id)] == ["Placed"]

    def test_get_missing_refugee(self, refugee_registry):
        with pytest.raises(RefugeeNotFound):
            refugee_registry.get_refugee(MISSING_ID)

    def test_update_contact_details(self, refugee_registry, add_refugee):
        refugee = add_refugee()

        updated = refugee_registry.update_refugee(
            refugee.id, UpdateRefugeeRequest(contactNumber="+91-98100-00000", medicalConditions="Asthma")
        )

        assert updated.contact_number == "+91-98100-00000"
        assert updated.medical_conditions == "Asthma"

    def test_assigned_family_size_frozen(self, refugee_registry, engine, add_camp, add_refugee):
        add_camp("India Gate Shelter", INDIA_GATE)
        refugee = add_refugee(family_members=2)
        engine.assign(refugee.id)

        with pytest.raises(InvalidInput):
            refugee_registry.update_refugee(refugee.id, UpdateRefugeeRequest(family_members=5))

    def test_pending_family_size_editable(self, refugee_registry, add_refugee):
        refugee = add_refugee(family_members=2)

        assert refugee_registry.update_refugee(
            refugee.id, UpdateRefugeeRequest(family_members=5)
        ).family_members == 5

    def test_delete_assigned_refugee_releases_place(self, refugee_registry, engine, add_camp,
                                                    add_refugee, camp_repository, refugee_repository):
        camp = add_camp("India Gate Shelter", INDIA_GATE)
        refugee = add_refugee(family_members=3)
        engine.assign(refugee.id)

        refugee_registry.delete_refugee(refugee.id)

        assert refugee_repository.get(refugee.id) is None
        assert camp_repository.get(camp.id).current_occupancy == 0

    def test_delete_pending_refugee(self, refugee_registry, add_refugee, refugee_repository):
        refugee = add_refugee()

        refugee_registry.delete_refugee(refugee.id)

        assert refugee_repository.get(refugee.id) is None

    def test_delete_missing_refugee(self, refugee_registry):
        with pytest.raises(RefugeeNotFound):
            refugee_registry.delete_refugee(MISSING_ID)

    def test_delete_refused_when_assigned_during_deletion(self, refugee_registry, add_refugee,
                                                          refugee_repository, monkeypatch):
        refugee = add_refugee()
        monkeypatch.setattr(refugee_repository, 'delete', lambda *args, **kwargs: False)

        with pytest.raises(AlreadyAssigned):
            refugee_registry.delete_refugee(refugee.id)
