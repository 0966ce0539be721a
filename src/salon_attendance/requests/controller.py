from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import form_value
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.manual_request_service

    @app.route("/api/attendance/manual-requests", methods=["POST"], endpoint="manual_request_submit")
    def manual_request_submit():
        created = service.submit(
            subject_id=form_value("subject_id"),
            request_type=form_value("request_type"),
            requested_time=form_value("requested_time"),
            note=form_value("note"),
        )
        return jsonify({"success": True, "message": "Manual attendance request submitted", "data": created.to_dict()}), 201

    @app.route("/api/attendance/manual-requests/pending", methods=["GET"], endpoint="manual_request_pending")
    def manual_request_pending():
        return jsonify({"success": True, "data": [r.to_dict() for r in service.list_pending()]})

    @app.route(
        "/api/attendance/manual-requests/<int:request_id>/decision",
        methods=["POST"],
        endpoint="manual_request_decide",
    )
    def manual_request_decide(request_id: int):
        decision = service.decide(
            request_id,
            status=form_value("status"),
            decided_by=form_value("decided_by"),
            admin_notes=form_value("admin_notes"),
        )
        return jsonify({"success": True, "message": f"Request {decision.request.status.value}", "data": decision.to_dict()})
