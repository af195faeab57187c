"""Viewer scope from request query parameters."""

from flask import request

from clubportal.services.errors import InvalidPayloadError
from clubportal.tactics.scope import scope_from_ids


def viewer_scope_from_request(club_id: str):
    """Build the viewer scope from ``club_id`` plus optional ``age_group_id`` / ``team_id`` args."""
    age_group_id = (request.args.get('age_group_id') or '').strip() or None
    team_id = (request.args.get('team_id') or '').strip() or None
    try:
        return scope_from_ids(club_id, age_group_id, team_id)
    except ValueError as exc:
        raise InvalidPayloadError(str(exc)) from exc


def _truthy(value) -> bool:
    return str(value or '').strip().lower() in ('1', 'true', 'yes', 'on')
