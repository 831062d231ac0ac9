"""Error taxonomy shared by services and blueprints.

Services raise these; the handlers registered in :func:`register_error_handlers`
turn them into ``{"error": message}`` JSON responses.
"""
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(MarketplaceError):
    status_code = 400
    default_message = 'Invalid request'


class Unauthorized(MarketplaceError):
    status_code = 401
    default_message = 'Not authorized'


class Forbidden(MarketplaceError):
    status_code = 403
    default_message = 'Not authorized to access this resource'


class NotFound(MarketplaceError):
    status_code = 404
    default_message = 'Resource not found'


class Conflict(MarketplaceError):
    status_code = 400
    default_message = 'Resource already exists'


class InsufficientStock(MarketplaceError):
    status_code = 400

    def __init__(self, product_name):
        self.product_name = product_name
        super().__init__(f'Not enough stock for {product_name}')


class InvalidToken(MarketplaceError):
    status_code = 400
    default_message = 'Invalid token'


class GatewayError(MarketplaceError):
    status_code = 502
    default_message = 'External service failed'


class InternalError(MarketplaceError):
    status_code = 500


# Raised by collaborators; services translate them.
class PaymentGatewayError(Exception):
    pass


class AssetStoreError(Exception):
    pass


class MailerError(Exception):
    pass


def register_error_handlers(app):

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(exc):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__,
                         request.method, request.path, exc.message)
        return jsonify({'error': exc.message}), exc.status_code

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({'error': f'Not Found - {request.path}'}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'error': exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("Unhandled error on %s %s",
                         request.method, request.path)
        return jsonify({'error': InternalError.default_message}), 500
