# shopapi/utils/error_handlers.py
"""
Centralized Flask error handlers.
Keeps routes.py files clean and guarantees consistent JSON responses.
"""
from flask import Flask, jsonify, Response
from werkzeug.exceptions import HTTPException

from shopapi.utils.logging import get_logger
from shopapi.utils.exceptions import ShopError, TransactionFailure

log = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(error: Exception) -> tuple[Response, int]:
        return jsonify(error="not_found"), 404

    @app.errorhandler(500)
    def internal_error(error: Exception) -> tuple[Response, int]:
        log.exception("Unhandled exception")
        return jsonify(error="internal_server_error"), 500

    @app.errorhandler(ShopError)
    def handle_shop_error(error: ShopError) -> tuple[Response, int]:
        if isinstance(error, TransactionFailure):
            log.error("TransactionFailure: %s | payload=%s", error, error.payload)
        else:
            log.warning("%s: %s | payload=%s", type(error).__name__, error, error.payload)
        response = {"error": error.message, "details": error.payload}
        return jsonify(response), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> tuple[Response, int]:
        return jsonify(error=error.name.lower().replace(" ", "_"), details=error.description), error.code or 500

    log.info("Error handlers registered")
