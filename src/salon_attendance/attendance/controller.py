from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import candidate_from_request, form_value
from ..container import Container
from ..core.enums import TransitionType
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _optional_date(value: str):
        value = (value or "").strip()
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD")

    @app.route("/api/attendance/<transition>", methods=["POST"], endpoint="attendance_transition")
    def attendance_transition(transition: str):
        if transition not in {t.value for t in TransitionType}:
            return jsonify({"success": False, "message": "Unknown attendance action"}), 404

        result = service.transition(form_value("subject_id"), transition, candidate_from_request())
        return jsonify(result.to_dict()), 200 if result.accepted else 400

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    def attendance_list():
        records = service.list_records(
            work_date=_optional_date(request.args.get("date", "")),
            subject_id=(request.args.get("subject_id") or "").strip() or None,
            status=(request.args.get("status") or "").strip() or None,
        )
        return jsonify({"success": True, "data": [r.to_snapshot() for r in records]})

    @app.route("/api/attendance/mark-absent", methods=["POST"], endpoint="attendance_mark_absent")
    def attendance_mark_absent():
        sweep = service.mark_absent(_optional_date(form_value("date")))
        return jsonify({"success": True, "message": f"Marked {len(sweep.marked)} absent", "data": sweep.to_dict()})
