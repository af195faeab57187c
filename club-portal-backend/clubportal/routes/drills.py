"""Drill and drill-template catalogue endpoints."""
import logging

from flask import Blueprint, jsonify, request

from clubportal.extensions import WRITE_RATE_LIMIT, limiter
from clubportal.services import drill_service
from clubportal.utils.errors import error_response
from clubportal.utils.request_scope import viewer_scope_from_request

logger = logging.getLogger(__name__)

drills_bp = Blueprint('drills', __name__)


@drills_bp.route('/clubs/<club_id>/drills', methods=['GET'])
def list_drills(club_id):
    """Drills visible at a scope.

    Query params:
    - age_group_id / team_id: viewer scope below the club
    - category: technical | tactical | physical | mental | mixed | all
    - search: substring over name, description and attributes
    """
    try:
        scope = viewer_scope_from_request(club_id)
        return jsonify(drill_service.list_drills_for_scope(
            scope,
            category=request.args.get('category'),
            search=request.args.get('search'),
        ))
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drills', methods=['POST'])
@limiter.limit(WRITE_RATE_LIMIT)
def create_drill():
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(drill_service.create_drill(data)), 201
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drills/<drill_id>', methods=['GET'])
def get_drill(drill_id):
    try:
        return jsonify(drill_service.get_drill(drill_id))
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drills/<drill_id>', methods=['PUT'])
@limiter.limit(WRITE_RATE_LIMIT)
def update_drill(drill_id):
    """Partial update; the drill's scope is fixed at creation."""
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(drill_service.update_drill(drill_id, data))
    except Exception as e:
        return error_response(e)


@drills_bp.route('/clubs/<club_id>/drill-templates', methods=['GET'])
def list_drill_templates(club_id):
    """Drill templates visible at a scope; ``attributes`` is a comma-separated all-of filter."""
    try:
        scope = viewer_scope_from_request(club_id)
        raw_attributes = request.args.get('attributes') or ''
        attributes = [a.strip() for a in raw_attributes.split(',') if a.strip()]
        return jsonify(drill_service.list_drill_templates_for_scope(
            scope,
            category=request.args.get('category'),
            search=request.args.get('search'),
            attributes=attributes,
        ))
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drill-templates', methods=['POST'])
@limiter.limit(WRITE_RATE_LIMIT)
def create_drill_template():
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(drill_service.create_drill_template(data)), 201
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drill-templates/<template_id>', methods=['GET'])
def get_drill_template(template_id):
    try:
        return jsonify(drill_service.get_drill_template(template_id))
    except Exception as e:
        return error_response(e)


@drills_bp.route('/drill-templates/<template_id>', methods=['PUT'])
@limiter.limit(WRITE_RATE_LIMIT)
def update_drill_template(template_id):
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(drill_service.update_drill_template(template_id, data))
    except Exception as e:
        return error_response(e)
