"""JSON error handlers for the application."""

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .core.types import APIResponse
from .errors import AppError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code):
    body: APIResponse = {"success": False, "message": message, "data": None}
    return jsonify(body), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors, logging server-side faults at error level."""
    if error.status_code >= 500:
        current_app.logger.error(
            f"{type(error).__name__}: {error.message}", exc_info=error
        )
    else:
        current_app.logger.warning(f"{type(error).__name__}: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_error(e):
    """Handles 404s for unknown routes, 405s and other HTTP errors."""
    return _error_response(e.description, e.code)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)
