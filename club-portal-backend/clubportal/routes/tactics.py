"""Tactic endpoints.

Handles:
- Listing tactics visible at a club / age group / team, split into own and inherited
- Tactic detail with resolved positions and the override audit list
- Create / update / delete, including the confirmed formation reset
- Per-slot override merge and reset-to-inherited
"""
import logging

from flask import Blueprint, jsonify, request

from clubportal.extensions import WRITE_RATE_LIMIT, limiter
from clubportal.services import tactic_service
from clubportal.utils.errors import error_response
from clubportal.utils.request_scope import _truthy, viewer_scope_from_request

logger = logging.getLogger(__name__)

tactics_bp = Blueprint('tactics', __name__)


@tactics_bp.route('/clubs/<club_id>/tactics', methods=['GET'])
def list_tactics(club_id):
    """Tactics visible at a scope.

    Query params:
    - age_group_id: view from an age group
    - team_id: view from a team (requires age_group_id)
    """
    try:
        scope = viewer_scope_from_request(club_id)
        return jsonify(tactic_service.list_tactics_for_scope(scope))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics', methods=['POST'])
@limiter.limit(WRITE_RATE_LIMIT)
def create_tactic():
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(tactic_service.create_tactic(data)), 201
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>', methods=['GET'])
def get_tactic(tactic_id):
    try:
        return jsonify(tactic_service.get_tactic_detail(tactic_id))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>', methods=['PUT'])
@limiter.limit(WRITE_RATE_LIMIT)
def update_tactic(tactic_id):
    """Partial update.

    Changing ``parent_formation_id`` discards every override and relationship.
    Unless ``confirm_reset`` is passed (query arg or body field) the request is
    rejected with 409 and the counts that would be lost.
    """
    try:
        data = request.get_json(silent=True) or {}
        confirm = _truthy(request.args.get('confirm_reset')) or _truthy(data.get('confirm_reset'))
        return jsonify(tactic_service.update_tactic(tactic_id, data, confirm_reset=confirm))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>', methods=['DELETE'])
@limiter.limit(WRITE_RATE_LIMIT)
def delete_tactic(tactic_id):
    try:
        return jsonify(tactic_service.delete_tactic(tactic_id))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>/overrides', methods=['GET'])
def list_overrides(tactic_id):
    try:
        return jsonify(tactic_service.list_tactic_overrides(tactic_id))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>/formation-change', methods=['GET'])
def preview_formation_change(tactic_id):
    """What switching to ``?formation_id=`` would discard."""
    formation_id = (request.args.get('formation_id') or '').strip()
    if not formation_id:
        return jsonify({'error': 'formation_id is required'}), 400
    try:
        return jsonify(tactic_service.preview_formation_change(tactic_id, formation_id))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>/positions/<int:position_index>', methods=['PATCH'])
@limiter.limit(WRITE_RATE_LIMIT)
def merge_position_override(tactic_id, position_index):
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(tactic_service.merge_position_override(tactic_id, position_index, data))
    except Exception as e:
        return error_response(e)


@tactics_bp.route('/tactics/<tactic_id>/positions/<int:position_index>/overrides', methods=['DELETE'])
@tactics_bp.route('/tactics/<tactic_id>/positions/<int:position_index>/overrides/<field>', methods=['DELETE'])
@limiter.limit(WRITE_RATE_LIMIT)
def reset_override(tactic_id, position_index, field=None):
    """Reset one field, or the whole slot when no field is given, back to the inherited value."""
    try:
        return jsonify(tactic_service.reset_override(tactic_id, position_index, field))
    except Exception as e:
        return error_response(e)
