"""
Dispatch composition routes (JSON).

Handles:
- /api/dispatch                  - Current session state
- /api/dispatch/toggle           - Manual pick/unpick of one serial
- /api/dispatch/scanner/*        - Arm, disarm and scan
- /api/dispatch/import           - Bulk import (file upload or pasted text)
- /api/dispatch/form             - Dealer / date / remarks / number override
- /api/dispatch/preview          - Derived dispatch number
- /api/dispatch/submit           - Create the dispatch
- /api/dispatch/reset            - Start over

The dispatch session is keyed by an id kept in the Flask session cookie.
"""

import uuid

import bleach
from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
    session,
)
from werkzeug.utils import secure_filename

from core.exceptions import (
    BulkImportError,
    DispatchConsoleError,
    DispatchSubmissionError,
    DispatchValidationError,
    StockNotReadyError,
    SubmissionInProgressError,
)
from models.stock import ProductCategory
from services.dispatch_service import DispatchSession
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

dispatch_bp = Blueprint("dispatch", __name__, url_prefix="/api/dispatch")

# Constants
MAX_DEALER_LENGTH = 120
MAX_REMARKS_LENGTH = 500
MAX_DISPATCH_NUMBER_LENGTH = 64
MAX_SERIAL_LENGTH = 64

MAX_DATE_LENGTH = 10

# Free text: markup stripped, truncated to the limit
FORM_TEXT_LIMITS = {
    "dealer": MAX_DEALER_LENGTH,
    "remarks": MAX_REMARKS_LENGTH,
}

# Identifiers: kept exactly as typed, rejected when too long
FORM_EXACT_FIELDS = {
    "dispatchDate": (MAX_DATE_LENGTH, "Dispatch date"),
    "dispatchNumber": (MAX_DISPATCH_NUMBER_LENGTH, "Dispatch number"),
}


def _sanitize_text(text: str, max_length: int = None) -> str:
    """Sanitize user input text."""
    if not text:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _exact_text(value, max_length: int, field: str, label: str) -> str:
    """
    Trim an identifier without altering it.

    Serials, dates and dispatch numbers are kept as typed. An over-long
    value is refused.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if len(text) > max_length:
        raise DispatchValidationError(
            f"{label} is too long (max {max_length} characters)", field=field
        )
    return text


def _allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    allowed = current_app.config.get("IMPORT_ALLOWED_EXTENSIONS", set())
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed


def _current_session() -> DispatchSession:
    """Dispatch session for the caller, opened on first use."""
    session_id = session.get("dispatch_session_id")
    if not session_id:
        session_id = str(uuid.uuid4())
        session["dispatch_session_id"] = session_id
        session.modified = True

    dispatch_service = current_app.config["DISPATCH_SERVICE"]
    return dispatch_service.session(session_id, operator_name=session.get("operator_name"))


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(e: DispatchConsoleError, status_code: int):
    return jsonify({"error": e.message, "details": e.details}), status_code


@dispatch_bp.errorhandler(DispatchValidationError)
def handle_validation_error(e):
    return _error(e, 400)


@dispatch_bp.errorhandler(BulkImportError)
def handle_import_error(e):
    return _error(e, 422)


@dispatch_bp.errorhandler(StockNotReadyError)
def handle_stock_not_ready(e):
    return _error(e, 503)


@dispatch_bp.errorhandler(DispatchSubmissionError)
def handle_submission_error(e):
    if isinstance(e, SubmissionInProgressError):
        return _error(e, 409)
    return _error(e, 502)


@dispatch_bp.route("", methods=["GET"])
def state():
    """Selection, scanner state, form and preview for the console."""
    return jsonify(_current_session().to_dict())


@dispatch_bp.route("/toggle", methods=["POST"])
def toggle():
    """Pick or unpick one serial from the available-stock list."""
    serial = _exact_text(
        _json_body().get("serial", ""), MAX_SERIAL_LENGTH, "serial", "Serial number"
    )
    if not serial:
        raise DispatchValidationError("Serial number is required", field="serial")

    dispatch_session = _current_session()
    outcome = dispatch_session.toggle(serial)
    return jsonify({
        "outcome": outcome.to_dict(),
        "count": len(dispatch_session.selection),
        "preview": dispatch_session.preview(),
    })


@dispatch_bp.route("/scanner/arm", methods=["POST"])
def arm_scanner():
    """
    Switch scanner mode on.

    Optional body {category, modelId} narrows what scans may match.
    """
    data = _json_body()
    dispatch_session = _current_session()
    scanner = dispatch_session.scanner

    if "category" in data:
        category = data.get("category")
        if category:
            try:
                scanner.category = ProductCategory(category)
            except ValueError:
                raise DispatchValidationError(
                    f"Unknown product category: {category}", field="category"
                )
        else:
            scanner.category = None

    if "modelId" in data:
        scanner.model_id = data.get("modelId") or None

    scanner.arm()
    return jsonify({"scanner": scanner.to_dict()})


@dispatch_bp.route("/scanner/disarm", methods=["POST"])
def disarm_scanner():
    """Switch scanner mode off."""
    scanner = _current_session().scanner
    scanner.disarm()
    return jsonify({"scanner": scanner.to_dict()})


@dispatch_bp.route("/scanner/scan", methods=["POST"])
def scan():
    """
    Validate one scanned token.

    Returns 204 when the token was ignored (scanner disarmed or blank token).
    """
    token = _exact_text(
        _json_body().get("token", ""), MAX_SERIAL_LENGTH, "token", "Scanned value"
    )

    dispatch_session = _current_session()
    outcome = dispatch_session.scan(token)
    if outcome is None:
        return "", 204

    return jsonify({
        "outcome": outcome.to_dict(),
        "count": len(dispatch_session.selection),
        "preview": dispatch_session.preview(),
    })


@dispatch_bp.route("/import", methods=["POST"])
def import_serials():
    """
    Bulk import serial numbers.

    Accepts a multipart upload in field 'file' (CSV, TXT or XLSX) or a JSON
    body {text} with one serial per line.
    """
    dispatch_session = _current_session()
    upload = request.files.get("file")

    if upload is not None:
        if upload.filename == "":
            raise BulkImportError("Please choose a file to import")

        filename = secure_filename(upload.filename)
        if not filename or not _allowed_file(filename):
            raise BulkImportError(
                "Unsupported file type. Please upload a CSV, TXT or XLSX file.",
                filename=upload.filename,
            )

        logger.info(f"Importing serials from {filename}")
        result = dispatch_session.import_file(filename, upload.read())
    else:
        text = _json_body().get("text", "")
        if not text or not str(text).strip():
            raise BulkImportError("Provide a file or pasted serial numbers")
        result = dispatch_session.import_text(str(text))

    return jsonify({
        "result": result.to_dict(),
        "count": len(dispatch_session.selection),
        "preview": dispatch_session.preview(),
    })


@dispatch_bp.route("/form", methods=["PATCH"])
def update_form():
    """Update any of dealer, dispatchDate, remarks, dispatchNumber."""
    data = _json_body()
    cleaned = {
        key: _sanitize_text(data[key], max_length=limit)
        for key, limit in FORM_TEXT_LIMITS.items()
        if key in data
    }
    cleaned.update({
        key: _exact_text(data[key], limit, key, label)
        for key, (limit, label) in FORM_EXACT_FIELDS.items()
        if key in data
    })

    dispatch_session = _current_session()
    dispatch_session.form.update(cleaned)
    return jsonify({
        "form": dispatch_session.form.to_dict(),
        "preview": dispatch_session.preview(),
    })


@dispatch_bp.route("/preview", methods=["GET"])
def preview():
    """Derived dispatch number for the current selection and date."""
    dispatch_session = _current_session()
    return jsonify({
        "dispatchNumber": dispatch_session.preview(),
        "prefix": dispatch_session.prefix,
        "count": len(dispatch_session.selection),
    })


@dispatch_bp.route("/submit", methods=["POST"])
def submit():
    """
    Create the dispatch.

    201 with the receipt on success; on any failure the selection and form
    are kept so the operator can retry.
    """
    dispatch_session = _current_session()
    receipt = dispatch_session.submit()

    logger.info(f"Dispatch {receipt.dispatch_number} submitted")
    return jsonify({
        "receipt": receipt.to_dict(),
        "message": receipt.message or f"Dispatch {receipt.dispatch_number} created",
    }), 201


@dispatch_bp.route("/reset", methods=["POST"])
def reset():
    """Clear selection, scanner and form."""
    dispatch_session = _current_session()
    dispatch_session.reset()
    return jsonify(dispatch_session.to_dict())
