# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware functionality.
"""

import pytest
from flask import Flask
from pydantic import BaseModel, Field, ValidationError

from relief_api.domain.errors import AlreadyAssigned, InvalidInput
from relief_api.middleware.cors import CORSMiddleware, configure_cors, parse_origins
from relief_api.middleware.error_handler import (
    ErrorHandlerMiddleware, pydantic_error_details, register_custom_error_handlers
)
from relief_api.services.hal import HalFormatter

BASE_URL = "https://api.example.com"


class CapacityModel(BaseModel):
    capacity: int = Field(..., ge=1)


def make_error_app(environment='test'):
    app = Flask(__name__)
    app.config['ENVIRONMENT'] = environment
    ErrorHandlerMiddleware(app, BASE_URL)
    register_custom_error_handlers(app, HalFormatter(BASE_URL))

    @app.route('/domain')
    def domain_error():
        raise AlreadyAssigned("Refugee r1 already assigned to a camp")

    @app.route('/invalid')
    def invalid_input():
        raise InvalidInput("Invalid camp payload", details=[{"field": "capacity", "message": "too small"}])

    @app.route('/model')
    def model_error():
        CapacityModel(capacity=0)

    @app.route('/boom')
    def boom():
        raise RuntimeError("database exploded")

    @app.route('/only-get')
    def only_get():
        return {}

    return app


class TestErrorHandlerMiddleware:
    """Test error handler middleware functionality."""

    def test_domain_error(self):
        response = make_error_app().test_client().get('/domain')

        assert response.status_code == 409
        data = response.get_json()
        assert data['type'] == "https://api.relief-camps.org/problems/already-assigned"
        assert data['kind'] == "AlreadyAssigned"
        assert data['instance'] == "/domain"
        assert data['detail'] == "Refugee r1 already assigned to a camp"

    def test_domain_error_logged_with_message(self, caplog):
        """Test domain errors are logged with their message as a structured field."""
        with caplog.at_level("WARNING", logger="relief_api.middleware.error_handler"):
            response = make_error_app().test_client().get('/domain')

        assert response.status_code == 409
        records = [r for r in caplog.records if r.getMessage() == "Domain error: AlreadyAssigned"]
        assert len(records) == 1
        assert records[0].error_message == "Refugee r1 already assigned to a camp"
        assert records[0].status_code == 409

    def test_invalid_input_details(self):
        response = make_error_app().test_client().get('/invalid')

        assert response.status_code == 400
        assert response.get_json()['errors'] == [{"field": "capacity", "message": "too small"}]

    def test_pydantic_validation_error(self):
        response = make_error_app().test_client().get('/model')

        assert response.status_code == 400
        data = response.get_json()
        assert data['kind'] == "ValidationError"
        assert data['errors'][0]['field'] == "capacity"

    def test_unknown_route(self):
        response = make_error_app().test_client().get('/nowhere')

        assert response.status_code == 404
        assert response.get_json()['type'].endswith("resource-not-found")

    def test_method_not_allowed(self):
        response = make_error_app().test_client().delete('/only-get')

        assert response.status_code == 405
        assert response.get_json()['type'].endswith("method-not-allowed")

    def test_unexpected_error_detail_outside_production(self):
        response = make_error_app().test_client().get('/boom')

        assert response.status_code == 500
        assert response.get_json()['detail'] == "RuntimeError: database exploded"

    def test_unexpected_error_hidden_in_production(self):
        response = make_error_app('production').test_client().get('/boom')

        assert response.status_code == 500
        assert response.get_json()['detail'] == "An unexpected error occurred"

    def test_pydantic_error_details(self):
        with pytest.raises(ValidationError) as exc_info:
            CapacityModel(capacity="lots")

        details = pydantic_error_details(exc_info.value)

        assert details[0]['field'] == "capacity"
        assert details[0]['type'] == "int_parsing"


class TestCORSMiddleware:
    """Test CORS middleware functionality."""

    def setup_method(self):
        self.app = Flask(__name__)
        self.cors = CORSMiddleware(self.app, allowed_origins=['https://dashboard.example.com'])

        @self.app.route('/api/camps', methods=['GET', 'POST'])
        def camps():
            return {"camps": []}

    def test_is_origin_allowed(self):
        assert self.cors.is_origin_allowed('https://dashboard.example.com')
        assert not self.cors.is_origin_allowed('https://evil.example.com')
        assert not self.cors.is_origin_allowed(None)

    def test_wildcard_prefix(self):
        cors = CORSMiddleware(Flask(__name__), allowed_origins=['https://*'])

        assert cors.is_origin_allowed('https://anything.example.org')
        assert not cors.is_origin_allowed('http://anything.example.org')

    def test_preflight_allowed(self):
        response = self.app.test_client().options(
            '/api/camps', headers={'Origin': 'https://dashboard.example.com'}
        )

        assert response.status_code == 204
        assert response.headers['Access-Control-Allow-Origin'] == 'https://dashboard.example.com'
        assert 'PUT' in response.headers['Access-Control-Allow-Methods']

    def test_preflight_rejected(self):
        response = self.app.test_client().options(
            '/api/camps', headers={'Origin': 'https://evil.example.com'}
        )

        assert response.status_code == 403

    def test_simple_request_headers(self):
        response = self.app.test_client().get(
            '/api/camps', headers={'Origin': 'https://dashboard.example.com'}
        )

        assert response.status_code == 200
        assert response.headers['Access-Control-Expose-Headers'] == 'Content-Length, Content-Type, X-Trace-Id'

    def test_no_headers_for_unknown_origin(self):
        response = self.app.test_client().get('/api/camps', headers={'Origin': 'https://evil.example.com'})

        assert 'Access-Control-Allow-Origin' not in response.headers

    def test_configure_cors(self):
        cors = configure_cors(Flask(__name__), allowed_origins=['*'], max_age=60)

        assert isinstance(cors, CORSMiddleware)
        assert cors.max_age == 60


class TestParseOrigins:
    """Test CORS origin configuration."""

    def test_development_adds_local_origins(self):
        origins = parse_origins('https://dashboard.example.com', 'development')

        assert origins[0] == 'https://dashboard.example.com'
        assert 'http://localhost:3000' in origins

    def test_production_uses_configured_only(self):
        assert parse_origins(' https://a.example.com , https://b.example.com ,', 'production') == [
            'https://a.example.com', 'https://b.example.com'
        ]

    def test_empty(self):
        assert parse_origins('', 'production') == []
