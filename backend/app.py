# Email Validator Backend - Email Verification API
# Flask API that validates emails via syntax + TLD + MX checks and reports Redis Cluster health

import json
import logging
import socket
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from functools import wraps

from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from cluster_health import ClusterHealthMonitor
from composite_validator import CompositeEmailValidator
from config import Config
from mx_validator import MxValidator
from syntax_validator import SyntaxValidator
from tld_validator import TldSource, TldValidator
from verification_service import EmailVerificationService, parse_emails

# Request ID context for structured logging
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


# Structured logging formatter
class StructuredFormatter(logging.Formatter):
    """Key=value structured logging formatter for readability on all consoles."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }

        # Add request ID if available
        req_id = request_id_ctx.get("")
        if req_id:
            log_data["request_id"] = req_id

        # Add extra fields from record
        extra_fields = [
            "domain",
            "node",
            "tld_source",
            "tld_count",
            "elapsed_ms",
            "email_count",
        ]
        for field in extra_fields:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Format as key=value for readability
        parts = [f"{k}={json.dumps(v) if isinstance(v, str) else v}" for k, v in log_data.items()]
        return " ".join(parts)


# Setup logging (root handler so validator modules share the format)
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(StructuredFormatter())
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, Config.LOG_LEVEL))
root_logger.addHandler(handler)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)

# Configure CORS - restrictive by default
cors_origins = Config.get_cors_origins()
if cors_origins:
    CORS(app, origins=cors_origins)
    logger.info(f"CORS enabled for origins: {cors_origins}")
else:
    CORS(app, origins=["http://localhost:3000", "http://localhost:5050", "http://127.0.0.1:5050"])
    logger.info("CORS enabled for localhost development only")


# ============================================================================
# Service wiring (lazy singletons, overridable in tests)
# ============================================================================

_verification_service: EmailVerificationService | None = None
_tld_validator: TldValidator | None = None
_health_monitor: ClusterHealthMonitor | None = None


def _tld_validator_is_stale(validator: TldValidator) -> bool:
    age = time.time() - validator.loaded_at
    if validator.source == TldSource.FALLBACK:
        return age > Config.TLD_FALLBACK_RETRY_SECONDS
    return age > Config.TLD_CACHE_TTL_SECONDS


def get_tld_validator() -> TldValidator:
    """
    Get the shared TLD validator.

    It is rebuilt once its list is older than the cache TTL, or after
    TLD_FALLBACK_RETRY_SECONDS when it only holds the embedded fallback list.
    """
    global _tld_validator, _verification_service
    if _tld_validator is None or _tld_validator_is_stale(_tld_validator):
        _tld_validator = TldValidator()
        # The pipeline holds the previous TLD validator
        _verification_service = None
    return _tld_validator


def get_verification_service() -> EmailVerificationService:
    """Get the shared verification service (default pipeline)."""
    global _verification_service
    tld_validator = get_tld_validator()
    if _verification_service is None:
        pipeline = CompositeEmailValidator(SyntaxValidator(), tld_validator, MxValidator())
        _verification_service = EmailVerificationService(pipeline)
    return _verification_service


def get_health_monitor() -> ClusterHealthMonitor:
    """Get the shared cluster health monitor."""
    global _health_monitor
    if _health_monitor is None:
        _health_monitor = ClusterHealthMonitor()
    return _health_monitor


def set_services(
    verification_service: EmailVerificationService | None = None,
    tld_validator: TldValidator | None = None,
    health_monitor: ClusterHealthMonitor | None = None,
) -> None:
    """Override service instances. Only for testing purposes."""
    global _verification_service, _tld_validator, _health_monitor
    _verification_service = verification_service
    _tld_validator = tld_validator
    _health_monitor = health_monitor


def reset_services() -> None:
    """Drop all service instances. Only for testing purposes."""
    set_services(None, None, None)


# Startup message
logger.info(f"Email validator started (version {Config.VERSION})")


# Request ID middleware
@app.before_request
def set_request_id() -> None:
    """Set request ID from header or generate new one."""
    req_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request_id_ctx.set(req_id)
    g.request_id = req_id


@app.after_request
def add_request_id_header(response: Response) -> Response:
    """Add request ID to response headers."""
    if hasattr(g, "request_id"):
        response.headers["X-Request-ID"] = g.request_id
    return response


# Exception handler
@app.errorhandler(Exception)
def handle_exception(e: Exception) -> tuple[Response, int] | HTTPException:
    """Log exceptions and return safe error response."""
    if isinstance(e, HTTPException):
        return e
    logger.exception("Unhandled exception", exc_info=e)
    return jsonify({"error": "Internal server error"}), 500


@app.errorhandler(404)
def handle_not_found(e: Exception) -> tuple[Response, int]:
    return error_response("NOT_FOUND", "Resource not found", status_code=404)


@app.errorhandler(405)
def handle_method_not_allowed(e: Exception) -> tuple[Response, int]:
    return error_response(
        code="METHOD_NOT_ALLOWED",
        message=f"Method {request.method} is not allowed for {request.path}",
        status_code=405,
    )


def error_response(
    code: str,
    message: str,
    details: dict | None = None,
    status_code: int = 400,
) -> tuple[Response, int]:
    """
    Create a structured error response.

    Args:
        code: Error code (e.g., "INVALID_INPUT", "TOO_MANY_EMAILS")
        message: Human-readable message
        details: Optional additional details
        status_code: HTTP status code
    """
    payload: dict = {
        "error": {
            "code": code,
            "message": message,
        },
        "request_id": g.get("request_id", "unknown"),
    }
    if details:
        payload["error"]["details"] = details

    return jsonify(payload), status_code


# ============================================================================
# API Key Authentication Decorator
# ============================================================================


def require_api_key(f):
    """
    Decorator to require API key for administrative endpoints.
    If APP_API_KEY is not set, allows all requests (dev mode).
    """

    @wraps(f)
    def decorated(*args, **kwargs):
        if not Config.APP_API_KEY:
            return f(*args, **kwargs)

        provided_key = request.headers.get("X-API-Key", "")
        if provided_key != Config.APP_API_KEY:
            logger.warning("Unauthorized API access attempt")
            return error_response(
                "UNAUTHORIZED",
                "Invalid or missing API key",
                {"hint": "Provide valid X-API-Key header"},
                401,
            )
        return f(*args, **kwargs)

    return decorated


def truncate_text(text: str, max_length: int = 100) -> str:
    """Shorten echoed input for responses."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


@app.route("/verify", methods=["POST"])
def verify() -> tuple[Response, int] | Response:
    """
    Validate every email address found in the submitted text.

    Body: {"text": "a@example.com, b@example.org"}
    Separators: newlines, commas, semicolons, whitespace.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
        return error_response("INVALID_INPUT", 'Field "text" is required and must be a string')

    text = payload["text"]
    text_length = len(text.strip())
    if text_length == 0:
        return error_response("EMPTY_INPUT", "Input text cannot be empty")

    if text_length > Config.MAX_TEXT_LENGTH:
        return error_response(
            "TEXT_TOO_LONG",
            f"Input text is too long. Maximum length is {Config.MAX_TEXT_LENGTH} characters",
            {"max_text_length": Config.MAX_TEXT_LENGTH, "text_length": text_length},
        )

    emails = parse_emails(text)
    if not emails:
        return error_response("EMPTY_INPUT", "No email addresses found in input text")

    if len(emails) > Config.MAX_EMAIL_COUNT:
        return error_response(
            "TOO_MANY_EMAILS",
            f"Too many email addresses. Maximum is {Config.MAX_EMAIL_COUNT}",
            {"max_email_count": Config.MAX_EMAIL_COUNT, "email_count": len(emails)},
        )

    start_time = time.time()
    results = get_verification_service().verify_for_api(emails)
    elapsed_ms = int((time.time() - start_time) * 1000)
    logger.info(
        "Verification completed",
        extra={"email_count": len(emails), "elapsed_ms": elapsed_ms},
    )

    return jsonify(
        {
            "success": True,
            "results": results,
            "total": len(results),
            "parsed_count": len(emails),
            "original_text": truncate_text(text),
        }
    )


@app.route("/health")
def health() -> Response:
    """Health check endpoint."""
    return jsonify({"status": "ok"})


@app.route("/status")
def status() -> Response:
    """
    Service status including Redis Cluster health.
    A failed node is always visible per node even when the quorum is met.
    """
    base = {
        "service": Config.SERVICE_NAME,
        "version": Config.VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "server": socket.gethostname(),
    }

    try:
        summary = get_health_monitor().get_summary()
    except Exception as e:
        logger.exception("Cluster health check failed", exc_info=e)
        return jsonify(
            {
                **base,
                "status": "error",
                "redis_cluster": "disconnected",
                "redis_details": {"cluster_status": "error", "error": str(e)},
            }
        )

    return jsonify(
        {
            **base,
            "status": "OK",
            "redis_cluster": "connected" if summary["quorum_met"] else "disconnected",
            "redis_details": summary,
        }
    )


# ============================================================================
# TLD Cache Administration
# ============================================================================


@app.route("/tld-cache")
def tld_cache_info() -> Response:
    """Describe the cached TLD list."""
    return jsonify(get_tld_validator().get_cache_info())


@app.route("/tld-cache/refresh", methods=["POST"])
@require_api_key
def tld_cache_refresh() -> tuple[Response, int] | Response:
    """Re-fetch the TLD list from IANA and store it in the cache."""
    validator = get_tld_validator()
    if not validator.force_refresh_cache():
        return error_response(
            "TLD_REFRESH_FAILED",
            "Could not fetch the TLD list from the authority",
            {"current_count": validator.tld_count, "source": validator.source.value},
            502,
        )

    logger.info("TLD cache refreshed", extra={"tld_count": validator.tld_count})
    return jsonify({"refreshed": True, "cache": validator.get_cache_info()})


@app.route("/tld-cache", methods=["DELETE"])
@require_api_key
def tld_cache_clear() -> Response:
    """Delete the cached TLD list and metadata."""
    cleared = get_tld_validator().clear_cache()
    return jsonify({"cleared": cleared})


if __name__ == "__main__":
    app.run(debug=Config.DEBUG, port=Config.PORT, host=Config.HOST)
