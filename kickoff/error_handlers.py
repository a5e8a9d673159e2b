from flask import Blueprint, current_app, jsonify

from .errors import AppError, StoreFailureError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(error):
    return jsonify({"error": error.message, "code": error.code}), error.status_code


@error_handlers_bp.app_errorhandler(StoreFailureError)
def handle_store_failure(error):
    """Handles document store failures without exposing raw details."""
    current_app.logger.error(f"Store Failure: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles domain errors, keeping each error kind distinct for callers."""
    current_app.logger.warning(f"{type(error).__name__}: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(PermissionError)
def handle_permission_error(error):
    """Handles actions the caller is not allowed to perform."""
    current_app.logger.warning(f"Permission Error: {error}")
    return jsonify({"error": str(error), "code": "forbidden"}), 403


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"error": "Not found.", "code": "not_found"}), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with an unsupported method."""
    return jsonify({"error": "Method not allowed.", "code": "method_not_allowed"}), 405


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return (
        jsonify({"error": "An unexpected error occurred.", "code": "internal_error"}),
        500,
    )
