from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import SubjectKind
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, load_json
from .model import Admin, AnySubject, Employee, GenericUser, Manager, Subject
from .repository import SubjectRepository

_COLUMNS = "subject_id, kind, name, email, phone_number, reference_image_location, is_active, profile"


def _to_subject(r: Dict[str, Any]) -> Subject:
    kind = SubjectKind(r["kind"])
    profile = load_json(r.get("profile"))
    common = dict(
        subject_id=r["subject_id"],
        name=r["name"],
        reference_image_location=r.get("reference_image_location") or None,
        is_active=bool(r.get("is_active", 1)),
    )

    if kind == SubjectKind.EMPLOYEE:
        return Employee(
            phone_number=r.get("phone_number") or "",
            id_card_number=str(profile.get("id_card_number", "")),
            monthly_salary=float(profile.get("monthly_salary") or 0),
            **common,
        )
    if kind == SubjectKind.ADMIN:
        return Admin(email=r.get("email") or "", phone_number=r.get("phone_number") or "", **common)
    if kind == SubjectKind.MANAGER:
        return Manager(email=r.get("email") or "", phone_number=r.get("phone_number") or "", **common)
    return GenericUser(role=str(profile.get("role", "employee")), created_by=profile.get("created_by"), **common)


def _profile_of(subject: AnySubject) -> Dict[str, Any]:
    if isinstance(subject, Employee):
        return {"id_card_number": subject.id_card_number, "monthly_salary": subject.monthly_salary}
    if isinstance(subject, GenericUser):
        return {"role": subject.role, "created_by": subject.created_by}
    return {}


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, subject_id: str) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM subjects WHERE subject_id=%s", (subject_id,))
            r = fetchone(cur)
            return _to_subject(r) if r else None

    def list_all(self, *, kind: Optional[SubjectKind] = None) -> Sequence[Subject]:
        sql = f"SELECT {_COLUMNS} FROM subjects"
        params: tuple = ()
        if kind is not None:
            sql += " WHERE kind=%s"
            params = (kind.value,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY created_at ASC", params)
            return [_to_subject(r) for r in fetchall(cur)]

    def list_with_reference(self, *, kind: Optional[SubjectKind] = None) -> Sequence[Subject]:
        clauses = ["reference_image_location IS NOT NULL", "reference_image_location <> ''"]
        params: list[object] = []
        if kind is not None:
            clauses.append("kind=%s")
            params.append(kind.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM subjects WHERE {' AND '.join(clauses)}", tuple(params))
            return [_to_subject(r) for r in fetchall(cur)]

    def create(self, subject: AnySubject) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO subjects(subject_id, kind, name, email, phone_number, reference_image_location, is_active, profile)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        subject.subject_id,
                        subject.kind.value,
                        subject.name,
                        getattr(subject, "email", None),
                        getattr(subject, "phone_number", None) or None,
                        subject.reference_image_location,
                        1 if subject.is_active else 0,
                        json.dumps(_profile_of(subject)),
                    ),
                )
        except IntegrityError as exc:
            if is_duplicate_key(exc):
                raise ValidationError("Account with the same id or phone number already exists") from exc
            raise

    def update_reference_image(self, subject_id: str, location: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE subjects SET reference_image_location=%s WHERE subject_id=%s",
                (location, subject_id),
            )
            return cur.rowcount > 0
