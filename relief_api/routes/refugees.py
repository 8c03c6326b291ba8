# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Refugee registration endpoints.
"""

from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..domain.errors import InvalidInput
from ..models.enums import RefugeeStatus
from ..models.requests import CreateRefugeeRequest, UpdateRefugeeRequest, RefugeePath
from ..utils.request import RequestParser

logger = logging.getLogger(__name__)

refugees_tag = Tag(name="Refugees", description="Refugee registration and release")
refugees_bp = APIBlueprint(
    'refugees',
    __name__,
    url_prefix='/api/refugees',
    abp_tags=[refugees_tag]
)


@refugees_bp.get('')
def list_refugees():
    """List refugees, optionally filtered by ?status= and ?camp_id=."""
    pagination = RequestParser.get_pagination_params()
    status = request.args.get('status')
    camp_id = request.args.get('camp_id')
    if status is not None and status not in [s.value for s in RefugeeStatus]:
        raise InvalidInput(
            f"Unknown refugee status '{status}'",
            details=[{"field": "status", "message": f"Must be one of {[s.value for s in RefugeeStatus]}"}]
        )

    refugees = current_app.refugee_registry.list_refugees(status=status, camp_id=camp_id)
    return jsonify(current_app.hal_formatter.format_refugee_collection(
        refugees,
        pagination['page'],
        pagination['page_size'],
        query_params={'status': status, 'camp_id': camp_id}
    ))


@refugees_bp.post('')
def create_refugee():
    """Register a refugee without assigning a camp; use register-and-assign for both."""
    refugee_request = RequestParser.parse_model(CreateRefugeeRequest)
    refugee = current_app.refugee_registry.create_refugee(refugee_request)
    logger.info("Refugee registered", extra={"refugee_id": refugee.id, "family_members": refugee.family_members})

    response = jsonify(current_app.hal_formatter.format_refugee(refugee))
    response.status_code = 201
    response.headers['Location'] = f"/api/refugees/{refugee.id}"
    return response


@refugees_bp.get('/<refugee_id>')
def get_refugee(path: RefugeePath):
    refugee = current_app.refugee_registry.get_refugee(path.refugee_id)
    return jsonify(current_app.hal_formatter.format_refugee(refugee))


@refugees_bp.put('/<refugee_id>')
def update_refugee(path: RefugeePath):
    update_request = RequestParser.parse_model(UpdateRefugeeRequest)
    refugee = current_app.refugee_registry.update_refugee(path.refugee_id, update_request)
    return jsonify(current_app.hal_formatter.format_refugee(refugee))


@refugees_bp.delete('/<refugee_id>')
def delete_refugee(path: RefugeePath):
    """Delete a refugee, releasing their camp place first."""
    current_app.refugee_registry.delete_refugee(path.refugee_id)
    return '', 204


@refugees_bp.post('/<refugee_id>/release')
def release_refugee(path: RefugeePath):
    """Free the refugee's camp place and return them to Pending."""
    result = current_app.assignment_engine.release(path.refugee_id)
    if not result.success:
        raise result.error

    assignment = result.assignment
    formatter = current_app.hal_formatter
    return jsonify({
        'success': True,
        'message': "Refugee released from camp",
        '_embedded': {
            'refugee': formatter.format_refugee(assignment.refugee),
            'camp': formatter.format_camp(assignment.camp) if assignment.camp else None
        }
    })
