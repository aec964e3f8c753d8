"""
Error types raised by the API handlers and the JSON error responses they map to.
"""
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from extensions import db

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors that carry an HTTP status and a client-facing message"""
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None, status_code=None, details=None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        payload = {'error': self.message}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class BadRequestError(APIError):
    status_code = 400
    message = 'Bad request'


class ValidationError(BadRequestError):
    message = 'Validation failed'


class AuthenticationError(APIError):
    status_code = 401
    message = 'Not authenticated'


class NotFoundError(APIError):
    status_code = 404
    message = 'Not found'


class ServiceError(APIError):
    """An outbound dependency (quote API, SMTP relay) failed"""
    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logger.error('%s %s failed: %s', request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception('Unhandled error on %s %s', request.method, request.path)
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500
