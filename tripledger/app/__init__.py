"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build as many
         isolated app instances as they need.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError → JSON, Exception → 500)
  5. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)

The app is stateless: every request carries the trip snapshot it needs.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from tripledger.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    sort_keys = False

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
}


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    _configure_logging(app)

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    app.logger.debug("Application created with %s config", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and the tripledger service loggers."""
    level = app.config.get("LOG_LEVEL", logging.INFO)
    app.logger.setLevel(level)

    package_logger = logging.getLogger("tripledger")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        # Share Flask's stderr handler so service logs land in the same stream.
        for handler in app.logger.handlers:
            package_logger.addHandler(handler)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource.
    """
    from tripledger.app.routes.balances import balances_bp
    from tripledger.app.routes.dashboard import dashboard_bp
    from tripledger.app.routes.settlements import settlements_bp
    from tripledger.app.routes.splits import splits_bp

    # splits_bp owns both /splits and /expenses/<id>/participants.
    app.register_blueprint(splits_bp,      url_prefix="/api/v1")
    app.register_blueprint(balances_bp,    url_prefix="/api/v1/trips")
    app.register_blueprint(settlements_bp, url_prefix="/api/v1/trips")
    app.register_blueprint(dashboard_bp,   url_prefix="/api/v1/users")

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"data": {"status": "ok"}, "warnings": []}), 200


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      HTTPException   → werkzeug errors (404 route, 405, 413, bad JSON) in the
                        same envelope
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from tripledger.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        if error.http_status >= 500:
            app.logger.error("%r", error)
        else:
            app.logger.info("Request rejected: %r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is reported. Nested messages (trip.members.0.user_id)
        are flattened into a dotted field path.

        The error code from the ValidationError message is used directly if it
        matches a known ErrorCode constant; otherwise INVALID_FIELD is used.
        """
        field, raw_message = _first_validation_message(error.messages)

        known_codes = vars(ErrorCode).values()
        if raw_message in known_codes:
            code = raw_message
        elif str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": raw_message if raw_message not in known_codes
                else _code_to_message(code),
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        app.logger.info("Validation failed: %s %s", code, field)
        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code is None or error.code < 400:
            return error  # routing redirects pass through untouched
        code = _HTTP_ERROR_CODES.get(error.code, ErrorCode.INTERNAL_ERROR)
        return jsonify({
            "error": {"code": code, "message": error.description},
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _first_validation_message(messages, prefix: str | None = None) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure depth-first and returns
    (dotted_field_path, message) for the first leaf message.

    "_schema" keys contribute no path segment.
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            if key == "_schema":
                path = prefix
            elif prefix is None:
                path = str(key)
            else:
                path = f"{prefix}.{key}"
            return _first_validation_message(value, path)
        return prefix, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return prefix, "Invalid value."
        first = messages[0]
        if isinstance(first, (dict, list)):
            return _first_validation_message(first, prefix)
        return prefix, str(first)
    return prefix, str(messages)


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled by CORS_ALLOW_ALL (on in development and testing) so a frontend
    served from another local port can call the API.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")

        if app.config.get("CORS_ALLOW_ALL"):
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_SPLIT_TYPE": "split_type must be one of Equal, Custom, Percentage, PaidFor.",
        "DUPLICATE_SPLIT_USER": "The same user_id appears more than once.",
    }
    return _messages.get(code, "Invalid input.")
