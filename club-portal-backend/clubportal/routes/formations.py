import logging

from flask import Blueprint, jsonify, request

from clubportal.models.club import db
from clubportal.models.formation import Formation
from clubportal.services import tactic_service
from clubportal.utils.errors import error_response

logger = logging.getLogger(__name__)

formations_bp = Blueprint('formations', __name__)


@formations_bp.route('/formations', methods=['GET'])
def list_formations():
    """Reference formations, optionally narrowed to one squad size (``?squad_size=7``)."""
    try:
        squad_size = request.args.get('squad_size', type=int)
        return jsonify(tactic_service.list_formations(squad_size=squad_size))
    except Exception as e:
        return error_response(e)


@formations_bp.route('/formations/<formation_id>', methods=['GET'])
def get_formation(formation_id):
    formation = db.session.get(Formation, formation_id)
    if not formation:
        return jsonify({'error': 'Formation not found'}), 404
    return jsonify(formation.to_dict())
