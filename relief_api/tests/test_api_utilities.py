# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for API utilities.
"""

import pytest
from flask import Flask

from relief_api.config import Settings
from relief_api.domain.errors import InvalidInput
from relief_api.models.requests import CreateCampRequest, NearestCampsRequest
from relief_api.utils.request import RequestParser


class TestRequestParser:
    """Test request parser functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.app = Flask(__name__)

    def test_get_pagination_params_defaults(self):
        """Test pagination parameters with defaults."""
        with self.app.test_request_context('/test'):
            params = RequestParser.get_pagination_params()

            assert params['page'] == 1
            assert params['page_size'] == 20

    def test_get_pagination_params_custom(self):
        """Test pagination parameters with custom values."""
        with self.app.test_request_context('/test?page=3&page_size=50'):
            params = RequestParser.get_pagination_params()

            assert params['page'] == 3
            assert params['page_size'] == 50

    def test_get_pagination_params_invalid(self):
        """Test pagination parameters with invalid values."""
        with self.app.test_request_context('/test?page=invalid&page_size=-5'):
            params = RequestParser.get_pagination_params()

            assert params['page'] == 1  # Default for invalid
            assert params['page_size'] == 1  # Clamped to minimum

    def test_get_pagination_params_max_limit(self):
        """Test pagination parameters respect max limit."""
        with self.app.test_request_context('/test?page_size=500'):
            assert RequestParser.get_pagination_params()['page_size'] == 100

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("1", True), ("YES", True), ("false", False), ("no", False)
    ])
    def test_get_bool_arg(self, value, expected):
        with self.app.test_request_context(f'/test?available={value}'):
            assert RequestParser.get_bool_arg('available') is expected

    def test_get_bool_arg_default(self):
        with self.app.test_request_context('/test'):
            assert RequestParser.get_bool_arg('available', default=True) is True

    def test_parse_json_body(self):
        with self.app.test_request_context('/test', method='POST', json={"address": "Noida"}):
            assert RequestParser.parse_json_body() == {"address": "Noida"}

    def test_parse_json_body_missing(self):
        with self.app.test_request_context('/test', method='POST'):
            with pytest.raises(InvalidInput):
                RequestParser.parse_json_body()
            assert RequestParser.parse_json_body(required=False) is None

    def test_parse_json_body_not_an_object(self):
        with self.app.test_request_context('/test', method='POST', json=[1, 2, 3]):
            with pytest.raises(InvalidInput, match="JSON object"):
                RequestParser.parse_json_body()

    def test_parse_json_body_malformed(self):
        with self.app.test_request_context(
            '/test', method='POST', data='{"address": ', content_type='application/json'
        ):
            with pytest.raises(InvalidInput):
                RequestParser.parse_json_body()

    def test_parse_model(self):
        body = {
            "name": "India Gate Shelter", "address": "Rajpath", "latitude": 28.6129,
            "longitude": 77.2295, "capacity": 200
        }
        with self.app.test_request_context('/test', method='POST', json=body):
            request = RequestParser.parse_model(CreateCampRequest)

            assert request.capacity == 200

    def test_parse_model_field_errors(self):
        body = {"name": "X", "address": "Y", "latitude": 95, "longitude": 0, "capacity": 0}
        with self.app.test_request_context('/test', method='POST', json=body):
            with pytest.raises(InvalidInput) as exc_info:
                RequestParser.parse_model(CreateCampRequest)

            fields = {detail['field'] for detail in exc_info.value.details}
            assert {'latitude', 'capacity'} <= fields

    def test_parse_model_cross_field_error(self):
        with self.app.test_request_context('/test', method='POST', json={"count": 3}):
            with pytest.raises(InvalidInput) as exc_info:
                RequestParser.parse_model(NearestCampsRequest)

            assert exc_info.value.details[0]['field'] == 'body'
            assert "coordinates or address" in exc_info.value.details[0]['message']


class TestSettings:
    """Test configuration loading."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('ENVIRONMENT', 'production')
        monkeypatch.setenv('STORAGE_BACKEND', 'memory')
        monkeypatch.setenv('MONGODB_URI', 'mongodb://db.internal:27017/relief')
        monkeypatch.setenv('ASSIGNMENT_MAX_ATTEMPTS', '3')
        monkeypatch.setenv('OTEL_ENABLED', 'false')

        settings = Settings.from_env()

        assert settings.environment == 'production'
        assert settings.storage_backend == 'memory'
        assert settings.mongodb_uri == 'mongodb://db.internal:27017/relief'
        assert settings.assignment_max_attempts == 3
        assert settings.otel_enabled is False

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            Settings(storage_backend='postgres')

    def test_flask_config(self):
        config = Settings(environment='development', storage_backend='memory').to_flask_config()

        assert config['ENVIRONMENT'] == 'development'
        assert config['STORAGE_BACKEND'] == 'memory'
        assert config['DEBUG'] is True
