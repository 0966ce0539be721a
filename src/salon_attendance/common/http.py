"""Flask helpers shared by the JSON controllers."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from ..assets.temporary import CandidateImage
from ..core.enums import RejectionReason, message_for
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CANDIDATE_FIELD = "live_picture"


def candidate_from_request(field: str = CANDIDATE_FIELD) -> Optional[CandidateImage]:
    """Read an uploaded image from the multipart body, or None if absent."""

    upload = request.files.get(field)
    if upload is None or not upload.filename:
        return None
    data = upload.read()
    if not data:
        return None
    return CandidateImage(data=data, mime_type=upload.mimetype or "", filename=upload.filename)


def form_value(name: str) -> str:
    if request.form and name in request.form:
        return request.form.get(name, "")
    body = request.get_json(silent=True) or {}
    value = body.get(name, "")
    return "" if value is None else str(value)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e):
        return jsonify({"success": False, "message": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return jsonify({"success": False, "message": str(e)}), 404

    @app.errorhandler(AuthorizationError)
    def _forbidden(e):
        return jsonify({"success": False, "message": str(e)}), 403

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(e):
        # Body over MAX_CONTENT_LENGTH; report it like any oversized picture.
        reason = RejectionReason.INVALID_FILE_SIZE
        return jsonify({"success": False, "accepted": False, "reason": reason.value, "message": message_for(reason)}), 400

    @app.errorhandler(HTTPException)
    def _http(e):
        return jsonify({"success": False, "message": e.description}), e.code

    @app.errorhandler(Exception)
    def _unexpected(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "message": "Internal server error"}), 500
