from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import candidate_from_request, form_value
from ..container import Container
from ..core.enums import SubjectKind
from ..core.exceptions import ValidationError
from .model import public_view
from .service import LoginResult, NewSubject, RegistrationResult


def _kind(value: str, *, required: bool) -> SubjectKind | None:
    value = (value or "").strip().lower()
    if not value:
        if required:
            raise ValidationError("kind is required")
        return None
    try:
        return SubjectKind(value)
    except ValueError:
        raise ValidationError("kind must be one of: employee, admin, manager, user")


def _registration_response(result: RegistrationResult, success_status: int):
    if not result.accepted:
        body = {"success": False, "message": result.message}
        if result.reason is not None:
            body["reason"] = result.reason.value
        return jsonify(body), 400
    return jsonify({"success": True, "message": result.message, "data": public_view(result.subject)}), success_status


def _login_response(result: LoginResult):
    body = {"success": result.accepted, "message": result.message, "similarity": round(result.similarity, 2)}
    if result.reason is not None:
        body["reason"] = result.reason.value
    if not result.accepted:
        return jsonify(body), 401
    body["data"] = public_view(result.subject)
    return jsonify(body), 200


def register(app: Flask, container: Container) -> None:
    subjects = container.subject_service
    logins = container.face_login_service

    @app.route("/api/subjects", methods=["POST"], endpoint="subject_register")
    def subject_register():
        new = NewSubject(
            kind=_kind(form_value("kind"), required=True),
            name=form_value("name"),
            email=form_value("email"),
            phone_number=form_value("phone_number"),
            id_card_number=form_value("id_card_number"),
            monthly_salary=form_value("monthly_salary"),
            role=form_value("role"),
            created_by=form_value("created_by"),
        )
        return _registration_response(subjects.register(new, candidate_from_request()), 201)

    @app.route("/api/subjects", methods=["GET"], endpoint="subject_list")
    def subject_list():
        kind = _kind(request.args.get("kind", ""), required=False)
        return jsonify({"success": True, "data": [public_view(s) for s in subjects.list_subjects(kind=kind)]})

    @app.route("/api/subjects/<subject_id>", methods=["GET"], endpoint="subject_detail")
    def subject_detail(subject_id: str):
        return jsonify({"success": True, "data": public_view(subjects.get(subject_id))})

    @app.route("/api/subjects/<subject_id>/reference-image", methods=["POST"], endpoint="subject_reference_image")
    def subject_reference_image(subject_id: str):
        return _registration_response(subjects.replace_reference_image(subject_id, candidate_from_request()), 200)

    @app.route("/api/auth/face-login", methods=["POST"], endpoint="face_login")
    def face_login():
        subject_id = form_value("subject_id").strip()
        image = candidate_from_request()
        if subject_id:
            return _login_response(logins.login(subject_id, image))
        return _login_response(logins.identify(image, kind=_kind(form_value("kind"), required=False)))
