# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest

from relief_api.config import Settings
from relief_api.models.entities import Camp, Coordinate, Refugee
from relief_api.services.assignment import AssignmentEngine
from relief_api.services.camp_graph import CampGraph
from relief_api.services.memory_store import InMemoryCampRepository, InMemoryRefugeeRepository
from relief_api.services.registry import CampRegistry, RefugeeRegistry

from .factories import CONNAUGHT_PLACE, make_camp, make_refugee

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'


@pytest.fixture
def camp_repository():
    return InMemoryCampRepository()


@pytest.fixture
def refugee_repository():
    return InMemoryRefugeeRepository()


@pytest.fixture
def engine(camp_repository, refugee_repository):
    return AssignmentEngine(camp_repository, refugee_repository)


@pytest.fixture
def camp_graph(camp_repository):
    return CampGraph(camp_repository)


@pytest.fixture
def camp_registry(camp_repository, refugee_repository, camp_graph):
    return CampRegistry(camp_repository, refugee_repository, camp_graph)


@pytest.fixture
def refugee_registry(refugee_repository, engine):
    return RefugeeRegistry(refugee_repository, engine)


@pytest.fixture
def add_camp(camp_repository):
    """Store a camp and return it."""
    def _add(name: str, coordinate: Coordinate, **kwargs) -> Camp:
        return camp_repository.create(make_camp(name, coordinate, **kwargs))
    return _add


@pytest.fixture
def add_refugee(refugee_repository):
    """Store a pending refugee and return it."""
    def _add(**kwargs) -> Refugee:
        return refugee_repository.create(make_refugee(**kwargs))
    return _add


@pytest.fixture
def test_settings():
    return Settings(
        environment='test',
        storage_backend='memory',
        base_url='https://api.example.com',
        otel_enabled=False
    )


@pytest.fixture
def geocoder_stub():
    """Geocoder double resolving every address to Connaught Place."""
    from unittest.mock import Mock
    from relief_api.services.geocoder import GeocodedAddress, NominatimGeocoder

    geocoder = Mock(spec=NominatimGeocoder)
    geocoder.resolve.return_value = GeocodedAddress(
        coordinate=CONNAUGHT_PLACE,
        display_name="Connaught Place, New Delhi, Delhi, India"
    )
    return geocoder


@pytest.fixture
def app(test_settings, geocoder_stub):
    from relief_api.app import create_app
    application = create_app(test_settings, geocoder=geocoder_stub)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()
