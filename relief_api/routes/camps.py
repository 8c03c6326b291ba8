# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Camp management endpoints.

Listing, registration, editing and removal of camps, plus the
camp-to-camp connections used for resource sharing.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..models.requests import CreateCampRequest, UpdateCampRequest, CampPath, CampConnectionPath
from ..utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

camps_tag = Tag(name="Camps", description="Relief camp management")
camps_bp = APIBlueprint(
    'camps',
    __name__,
    url_prefix='/api/camps',
    abp_tags=[camps_tag]
)


def _graph_response(result):
    """Render a camp graph result, raising its error on failure."""
    if not result.success:
        raise result.error
    formatter = current_app.hal_formatter
    return jsonify({
        'success': True,
        '_embedded': {'camps': [formatter.format_camp(camp) for camp in result.camps]}
    })


@camps_bp.get('')
def list_camps():
    """List camps; ?available=true keeps only camps accepting intake with free places."""
    pagination = RequestParser.get_pagination_params()
    only_available = RequestParser.get_bool_arg('available')
    camps = current_app.camp_registry.list_camps(only_available=only_available)
    return jsonify(current_app.hal_formatter.format_camp_collection(
        camps,
        pagination['page'],
        pagination['page_size'],
        query_params={'available': 'true'} if only_available else None
    ))


@camps_bp.get('/available')
def list_available_camps():
    """Camps that accept intake and have at least one free place."""
    pagination = RequestParser.get_pagination_params()
    camps = current_app.camp_registry.list_camps(only_available=True)
    return jsonify(current_app.hal_formatter.format_camp_collection(
        camps, pagination['page'], pagination['page_size'], collection_path="/api/camps/available"
    ))


@camps_bp.post('')
def create_camp():
    """Register a camp. New camps start empty."""
    camp_request = RequestParser.parse_model(CreateCampRequest)
    with tracer.start_as_current_span("route.camps.create"):
        camp = current_app.camp_registry.create_camp(camp_request)

    logger.info("Camp created", extra={"camp_id": camp.id, "camp_name": camp.name, "capacity": camp.capacity})
    response = jsonify(current_app.hal_formatter.format_camp(camp))
    response.status_code = 201
    response.headers['Location'] = f"/api/camps/{camp.id}"
    return response


@camps_bp.get('/<camp_id>')
def get_camp(path: CampPath):
    camp = current_app.camp_registry.get_camp(path.camp_id)
    return jsonify(current_app.hal_formatter.format_camp(camp))


@camps_bp.put('/<camp_id>')
def update_camp(path: CampPath):
    """Edit camp details. Occupancy and connections are not editable here."""
    update_request = RequestParser.parse_model(UpdateCampRequest)
    camp = current_app.camp_registry.update_camp(path.camp_id, update_request)
    return jsonify(current_app.hal_formatter.format_camp(camp))


@camps_bp.delete('/<camp_id>')
def delete_camp(path: CampPath):
    """Delete an empty camp. Camps with assigned refugees are kept."""
    current_app.camp_registry.delete_camp(path.camp_id)
    return '', 204


@camps_bp.get('/<camp_id>/connections')
def list_connected_camps(path: CampPath):
    return _graph_response(current_app.camp_graph.neighbours(path.camp_id))


@camps_bp.post('/<camp_id>/connect/<target_camp_id>')
def connect_camps(path: CampConnectionPath):
    """Connect two camps for resource sharing."""
    return _graph_response(current_app.camp_graph.connect(path.camp_id, path.target_camp_id))


@camps_bp.delete('/<camp_id>/connect/<target_camp_id>')
def disconnect_camps(path: CampConnectionPath):
    return _graph_response(current_app.camp_graph.disconnect(path.camp_id, path.target_camp_id))
