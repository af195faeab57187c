"""Shared helpers for turning exceptions into JSON error bodies."""

import logging
import os
from uuid import uuid4

from flask import jsonify
from pydantic import ValidationError

from clubportal.models.club import db
from clubportal.services.errors import (
    DrillNotFoundError,
    DrillTemplateNotFoundError,
    FormationChangeRequiresConfirmation,
    FormationNotFoundError,
    InvalidPayloadError,
    TacticNotFoundError,
)

logger = logging.getLogger(__name__)


def _is_production() -> bool:
    """Check if running in production environment."""
    env = (os.getenv('ENV') or os.getenv('FLASK_ENV') or os.getenv('APP_ENV') or '').strip().lower()
    return env in ('prod', 'production')


def _safe_error_payload(exc: Exception, fallback_message: str, include_detail: bool = False) -> dict[str, str]:
    """Return a sanitized error payload, hiding internal details in production."""
    payload = {'error': fallback_message}
    if include_detail or not _is_production():
        payload['detail'] = str(exc)
    else:
        reference = uuid4().hex[:8]
        payload['reference'] = reference
        logger.error('Error reference=%s: %s', reference, exc, exc_info=True)
    return payload


def _validation_payload(exc: ValidationError) -> dict:
    """Flatten pydantic errors into ``{'error': ..., 'details': [{'field', 'message'}]}``."""
    details = []
    for err in exc.errors():
        location = '.'.join(str(part) for part in err.get('loc', ()))
        details.append({'field': location, 'message': err.get('msg', 'Invalid value')})
    return {'error': 'Invalid request body', 'details': details}


def error_response(exc: Exception):
    """Map service and engine exceptions onto ``(json, status)`` responses."""
    if isinstance(exc, (TacticNotFoundError, FormationNotFoundError, DrillNotFoundError, DrillTemplateNotFoundError)):
        return jsonify({'error': str(exc)}), 404
    if isinstance(exc, ValidationError):
        return jsonify(_validation_payload(exc)), 400
    if isinstance(exc, InvalidPayloadError):
        db.session.rollback()
        return jsonify({'error': str(exc)}), 400
    if isinstance(exc, FormationChangeRequiresConfirmation):
        payload = {'error': str(exc), 'requires_confirmation': True}
        payload.update(exc.counts.to_dict())
        return jsonify(payload), 409

    db.session.rollback()
    logger.error("Unhandled error: %s", exc)
    return jsonify(_safe_error_payload(exc, 'An unexpected error occurred. Please try again later.')), 500
