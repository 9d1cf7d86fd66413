"""
Flask surface for the donation ledger.

Thin by construction: each view parses its request type, hands it to the
LedgerHandler stored on the app, and jsonifies the result.  Kernel errors
are mapped to HTTP statuses in one error handler.
"""

from __future__ import annotations

from uuid import uuid4

from flask import Blueprint, Flask, current_app, g, jsonify, request
from sqlalchemy.exc import OperationalError

from donation_api.handlers import LedgerHandler
from donation_api.requests import (
    ChildHistoryRequest,
    CreateDonationRequest,
    DeleteDonationRequest,
    DeleteSessionRequest,
    DeliverGiftRequest,
    DonationHistoryRequest,
    ListDonationsRequest,
    ListSessionsRequest,
    Paging,
    RestockRequest,
    SetQuantityRequest,
    StockPositionRequest,
    StockSummaryRequest,
    SubmitSessionRequest,
)
from donation_config import LedgerSettings, get_active_settings
from donation_kernel.db.engine import create_tables, init_engine_from_url
from donation_kernel.domain.clock import Clock
from donation_kernel.exceptions import (
    DonationKernelError,
    GiftDeliveryError,
    NotFoundError,
    StockError,
    ValidationError,
)
from donation_kernel.logging_config import LogContext, configure_logging, get_logger

logger = get_logger("api.routes")

ledger_bp = Blueprint("ledger", __name__)

EXTENSION_KEY = "donation_ledger"


def _handler() -> LedgerHandler:
    return current_app.extensions[EXTENSION_KEY]


def _paging() -> Paging:
    return _handler().paging


def _body():
    return request.get_json(silent=True)


def status_for(exc: DonationKernelError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (StockError, GiftDeliveryError)):
        return 409
    return 500


@ledger_bp.before_app_request
def bind_log_context():
    g.correlation_id = request.headers.get("X-Correlation-Id") or str(uuid4())
    LogContext.set(
        correlation_id=g.correlation_id,
        actor_id=request.headers.get("X-Actor-Id"),
    )


@ledger_bp.after_app_request
def echo_correlation_id(response):
    correlation_id = g.get("correlation_id")
    if correlation_id:
        response.headers["X-Correlation-Id"] = correlation_id
    return response


@ledger_bp.teardown_app_request
def clear_log_context(exc):
    LogContext.clear()


@ledger_bp.app_errorhandler(DonationKernelError)
def handle_kernel_error(exc: DonationKernelError):
    status = status_for(exc)
    log = logger.warning if status < 500 else logger.error
    log("request_failed", extra={"path": request.path, "status": status, "error_code": exc.code})
    return jsonify({"error": exc.to_dict()}), status


@ledger_bp.app_errorhandler(OperationalError)
def handle_storage_error(exc: OperationalError):
    logger.error("storage_unavailable", extra={"path": request.path}, exc_info=exc)
    return jsonify({"error": {"kind": "unavailable", "message": "storage temporarily unavailable"}}), 503


# Sessions


@ledger_bp.route("/sessions", methods=["POST"])
def submit_session():
    result = _handler().handle(SubmitSessionRequest.from_payload(_body()))
    return jsonify(result), 201


@ledger_bp.route("/sessions/<session_id>", methods=["DELETE"])
def delete_session(session_id):
    result = _handler().handle(DeleteSessionRequest.from_path(session_id))
    return jsonify(result), 200


@ledger_bp.route("/sessions", methods=["GET"])
def list_sessions():
    result = _handler().handle(ListSessionsRequest.from_args(request.args.to_dict(), _paging()))
    return jsonify(result), 200


# Donations


@ledger_bp.route("/donations", methods=["POST"])
def create_donation():
    result = _handler().handle(CreateDonationRequest.from_payload(_body()))
    return jsonify(result), 201


@ledger_bp.route("/donations", methods=["GET"])
def list_donations():
    result = _handler().handle(ListDonationsRequest.from_args(request.args.to_dict(), _paging()))
    return jsonify(result), 200


@ledger_bp.route("/donations/<donation_id>/restock", methods=["POST"])
def restock_donation(donation_id):
    result = _handler().handle(RestockRequest.from_payload(donation_id, _body()))
    return jsonify(result), 200


@ledger_bp.route("/donations/<donation_id>/quantity", methods=["PUT"])
def set_donation_quantity(donation_id):
    result = _handler().handle(SetQuantityRequest.from_payload(donation_id, _body()))
    return jsonify(result), 200


@ledger_bp.route("/donations/<donation_id>", methods=["DELETE"])
def delete_donation(donation_id):
    result = _handler().handle(DeleteDonationRequest.from_path(donation_id))
    return jsonify(result), 200


@ledger_bp.route("/donations/<donation_id>/deliver", methods=["POST"])
def deliver_gift(donation_id):
    result = _handler().handle(DeliverGiftRequest.from_payload(donation_id, _body()))
    return jsonify(result), 201


@ledger_bp.route("/donations/<donation_id>/stock", methods=["GET"])
def donation_stock(donation_id):
    result = _handler().handle(StockPositionRequest.from_path(donation_id))
    return jsonify(result), 200


@ledger_bp.route("/donations/<donation_id>/history", methods=["GET"])
def donation_history(donation_id):
    result = _handler().handle(
        DonationHistoryRequest.from_args(donation_id, request.args.to_dict(), _paging())
    )
    return jsonify(result), 200


# Children and reports


@ledger_bp.route("/children/<child_id>/history", methods=["GET"])
def child_history(child_id):
    result = _handler().handle(
        ChildHistoryRequest.from_args(child_id, request.args.to_dict(), _paging())
    )
    return jsonify(result), 200


@ledger_bp.route("/stock-summary", methods=["GET"])
def stock_summary():
    result = _handler().handle(StockSummaryRequest())
    return jsonify(result), 200


def create_app(
    settings: LedgerSettings | None = None,
    clock: Clock | None = None,
    init_database: bool = True,
) -> Flask:
    """
    Build the Flask app.

    With init_database (the default) the engine is initialised from
    settings and missing tables are created.  Tests that manage the engine
    themselves pass init_database=False.
    """
    settings = settings or get_active_settings()
    configure_logging(level=settings.log_level_value)

    if init_database:
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo_sql,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            lock_timeout_ms=settings.lock_timeout_ms,
            statement_timeout_ms=settings.statement_timeout_ms,
        )
        create_tables()

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = LedgerHandler(
        clock=clock,
        paging=Paging(settings.default_page_size, settings.max_page_size),
        retry_attempts=settings.submission_retry_attempts,
    )
    app.register_blueprint(ledger_bp)
    return app
