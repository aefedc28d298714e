"""
Error taxonomy for the ledger core and its HTTP rendering.

Every failure the core can surface is a LedgerError subclass carrying the
HTTP status it maps to, whether a client may retry, and the message that
is safe to show. Store faults are reported generically.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException
import structlog

logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base class for errors reported to callers."""
    status_code = 500
    retryable = False
    generic_message = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.generic_message or self.message


class ValidationError(LedgerError):
    """Bad input: merchant name, amount or card id."""
    status_code = 400


class NotFoundError(LedgerError):
    """Referenced card does not exist (or is not active)."""
    status_code = 404


class UnauthorizedError(LedgerError):
    """Caller was rejected by the authorization gate."""
    status_code = 401


class ConflictError(LedgerError):
    """Optimistic transaction could not commit within its retry budget."""
    status_code = 409
    retryable = True
    generic_message = "The ledger is busy, please retry"


class StoreUnavailableError(LedgerError):
    """Underlying document store could not be reached."""
    status_code = 503
    generic_message = "The ledger store is unavailable"


class TransactionConflict(Exception):
    """
    Raised by a store adapter when a transaction attempt lost a race.

    Only the retry loop in core.transactions handles this; callers see
    ConflictError once the budget is spent.
    """


def error_body(err: LedgerError) -> dict:
    return {"error": err.public_message, "retryable": err.retryable}


def register_error_handlers(app):
    """Render LedgerError and unexpected failures as JSON."""

    @app.errorhandler(LedgerError)
    def handle_ledger_error(err):
        if err.status_code >= 500:
            logger.warning("ledger_error", kind=type(err).__name__, detail=err.message)
        return jsonify(error_body(err)), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"error": err.description, "retryable": False}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.exception("unhandled_error", kind=type(err).__name__)
        return jsonify({"error": "There was a problem with the request", "retryable": False}), 500
