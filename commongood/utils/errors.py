"""Application errors and the global error handlers.

Routes raise ``AppError`` for anything the client caused (bad input,
missing resources, permission problems). Everything else is treated as a
programming or infrastructure error: the session is rolled back, the
traceback is logged and the client gets a generic 500.
"""

import logging

from flask import jsonify, request, current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException, NotFound

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Operational error with an HTTP status code."""

    def __init__(self, message, status_code=400, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = 'fail' if str(status_code).startswith('4') else 'error'
        self.details = details

    def to_dict(self):
        body = {'status': self.status, 'message': self.message}
        if self.details:
            body['details'] = self.details
        return body


def _error_response(message, status_code, details=None):
    return jsonify(AppError(message, status_code, details).to_dict()), status_code


def _rollback():
    from commongood import db
    try:
        db.session.rollback()
    except Exception as e:
        logger.error(f'Rollback failed: {e}')


def register_error_handlers(app):
    """Attach JSON error handlers to the Flask app."""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        _rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        _rollback()
        logger.warning(f'Integrity error: {error.orig}')
        return _error_response('Duplicate field value. Please use another value!', 400)

    @app.errorhandler(NotFound)
    def handle_not_found(error):
        if request.path.startswith('/api'):
            return _error_response(f"Can't find {request.path} on this server!", 404)
        return _error_response('Not found.', 404)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 413:
            return _error_response('Uploaded files are too large.', 413)
        if error.code == 429:
            return _error_response('Too many requests. Please try again later.', 429)
        return _error_response(error.description or error.name, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        _rollback()
        logger.exception(f'Unhandled error on {request.method} {request.path}')
        if current_app.config.get('ENV_NAME') == 'development':
            return _error_response(f'Something went very wrong! {error}', 500)
        return _error_response('Something went very wrong!', 500)
