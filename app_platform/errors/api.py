"""Central API error codes and registration helpers."""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import jsonify
from werkzeug.exceptions import HTTPException

from adapters.db.firestore.base import FirestoreError

logger = logging.getLogger(__name__)


ERRORS: Dict[str, int] = {
    'MISSING_FIELDS': 400,
    'INVALID_ARGUMENT': 400,
    'VALIDATION_ERROR': 400,
    'NOT_FOUND': 404,
    'METHOD_NOT_ALLOWED': 405,
    'PERMISSION_DENIED': 403,
    'DEVICE_LIMIT_REACHED': 403,
    'ALREADY_EXISTS': 409,
    'CONFLICT': 409,
    'FIRESTORE_ERROR': 502,
    'UNAVAILABLE': 503,
    'INTERNAL_ERROR': 500,
}

# Store error codes whose message is safe to echo back
_PASSTHROUGH_MESSAGES = {'VALIDATION_ERROR', 'NOT_FOUND', 'DEVICE_LIMIT_REACHED', 'ALREADY_EXISTS'}


def make_error(message: str, code: str) -> Any:
    """Make an error response."""

    status = ERRORS.get(code, 500)
    payload = {'error': message, 'code': code}

    return jsonify(payload), status


def error_for_store_exception(e: FirestoreError) -> Any:
    """Map a FirestoreError (or subclass) to its JSON response."""

    code = e.error_code if e.error_code in ERRORS else 'FIRESTORE_ERROR'

    if code in _PASSTHROUGH_MESSAGES:
        return make_error(str(e), code)
    if code == 'PERMISSION_DENIED':
        return make_error('Permission denied', code)
    if code == 'CONFLICT':
        return make_error('Resource was modified concurrently, retry the request', code)
    if code == 'UNAVAILABLE':
        return make_error('Store temporarily unavailable', code)

    return make_error('Firestore error', code)


def register_error_handlers(app) -> None:
    """Register error handlers."""

    @app.errorhandler(400)
    def _h_400(_e):
        """Handle malformed requests."""

        return make_error('Bad request', 'INVALID_ARGUMENT')

    @app.errorhandler(404)
    def _h_404(_e):
        """Handle 404 errors."""

        return make_error('Not found', 'NOT_FOUND')

    @app.errorhandler(405)
    def _h_405(_e):
        """Handle 405 errors."""

        return make_error('Method not allowed', 'METHOD_NOT_ALLOWED')

    @app.errorhandler(Exception)
    def _h_exc(e: Exception):
        """Handle all other errors."""

        if isinstance(e, HTTPException):
            code = 'INTERNAL_ERROR' if (e.code or 500) >= 500 else 'INVALID_ARGUMENT'
            return jsonify({'error': e.description or e.name, 'code': code}), e.code or 500
        if isinstance(e, FirestoreError):
            return error_for_store_exception(e)
        if isinstance(e, KeyError):
            return make_error('Missing required fields', 'MISSING_FIELDS')
        if isinstance(e, ValueError):
            return make_error('Invalid argument', 'INVALID_ARGUMENT')

        logger.exception("Unhandled error in request")

        return make_error('Internal server error', 'INTERNAL_ERROR')
