# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Assignment endpoints: geocoding, distance, nearest camps and refugee placement.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..domain import geo
from ..models.entities import Coordinate
from ..models.requests import (
    GeocodeRequest, DistanceRequest, NearestCampsRequest,
    AssignRefugeeRequest, CreateRefugeeRequest
)
from ..utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

assignment_tag = Tag(name="Assignment", description="Nearest-camp search and refugee placement")
assignment_bp = APIBlueprint(
    'assignment',
    __name__,
    url_prefix='/api/assignment',
    abp_tags=[assignment_tag]
)


def _assignment_response(result, status_code: int = 200):
    if not result.success:
        raise result.error
    assignment = result.assignment
    body = current_app.hal_formatter.format_assignment(
        assignment.refugee, assignment.camp, assignment.distance_km
    )
    body['success'] = True
    response = jsonify(body)
    response.status_code = status_code
    return response


@assignment_bp.post('/geocode')
def geocode_address():
    """Resolve an address to coordinates."""
    geocode_request = RequestParser.parse_model(GeocodeRequest)
    resolved = current_app.geocoder.resolve(geocode_request.address)
    return jsonify({
        'success': True,
        'latitude': resolved.coordinate.latitude,
        'longitude': resolved.coordinate.longitude,
        'displayName': resolved.display_name
    })


@assignment_bp.post('/calculate-distance')
def calculate_distance():
    """Great-circle distance in kilometres between two points."""
    distance_request = RequestParser.parse_model(DistanceRequest)
    point_a = Coordinate(latitude=distance_request.lat1, longitude=distance_request.lon1)
    point_b = Coordinate(latitude=distance_request.lat2, longitude=distance_request.lon2)
    return jsonify({'success': True, 'distanceKm': round(geo.distance(point_a, point_b), 2)})


@assignment_bp.post('/nearest-camps')
def nearest_camps():
    """Nearest camps with free places, from coordinates or an address."""
    nearest_request = RequestParser.parse_model(NearestCampsRequest)
    point = nearest_request.coordinate()
    if point is None:
        point = current_app.geocoder.resolve(nearest_request.address).coordinate

    result = current_app.assignment_engine.nearest_camps(point, nearest_request.count)
    if not result.success:
        raise result.error
    body = current_app.hal_formatter.format_ranked_camps(result.ranked)
    body['success'] = True
    return jsonify(body)


@assignment_bp.post('/assign-refugee')
def assign_refugee():
    """Assign a registered, pending refugee to the nearest camp with room."""
    assign_request = RequestParser.parse_model(AssignRefugeeRequest)
    with tracer.start_as_current_span("route.assignment.assign", attributes={"refugee.id": assign_request.refugee_id}):
        result = current_app.assignment_engine.assign(assign_request.refugee_id)
    return _assignment_response(result)


@assignment_bp.post('/register-and-assign')
def register_and_assign():
    """
    Register a refugee and assign the nearest camp with room.

    The refugee is kept as Pending when no camp can take the family; the
    response then has assigned=false.
    """
    refugee_request = RequestParser.parse_model(CreateRefugeeRequest)
    attributes = refugee_request.model_dump(exclude={'latitude', 'longitude'})
    result = current_app.assignment_engine.register_and_assign(attributes, refugee_request.coordinate())
    return _assignment_response(result, status_code=201)
