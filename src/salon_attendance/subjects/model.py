from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional, Protocol, Union

from ..core.enums import SubjectKind

ID_PREFIXES = {
    SubjectKind.EMPLOYEE: "EMP",
    SubjectKind.ADMIN: "ADM",
    SubjectKind.MANAGER: "MGR",
    SubjectKind.USER: "USR",
}


class Subject(Protocol):
    """Anything that can verify its identity with a face.

    Employees, admins, managers and generic users keep different profile
    fields, but verification only needs these.
    """

    subject_id: str
    name: str
    kind: SubjectKind
    reference_image_location: Optional[str]
    is_active: bool


@dataclass(frozen=True)
class Employee:
    subject_id: str
    name: str
    phone_number: str
    id_card_number: str
    monthly_salary: float
    reference_image_location: Optional[str] = None
    is_active: bool = True

    kind: ClassVar[SubjectKind] = SubjectKind.EMPLOYEE


@dataclass(frozen=True)
class Admin:
    subject_id: str
    name: str
    email: str
    phone_number: str
    reference_image_location: Optional[str] = None
    is_active: bool = True

    kind: ClassVar[SubjectKind] = SubjectKind.ADMIN


@dataclass(frozen=True)
class Manager:
    subject_id: str
    name: str
    email: str
    phone_number: str
    reference_image_location: Optional[str] = None
    is_active: bool = True

    kind: ClassVar[SubjectKind] = SubjectKind.MANAGER


@dataclass(frozen=True)
class GenericUser:
    subject_id: str
    name: str
    role: str = "employee"
    reference_image_location: Optional[str] = None
    created_by: Optional[str] = None
    is_active: bool = True

    kind: ClassVar[SubjectKind] = SubjectKind.USER


AnySubject = Union[Employee, Admin, Manager, GenericUser]


def generate_subject_id(kind: SubjectKind, *, now: Optional[datetime] = None) -> str:
    """``<PREFIX><year><4 digits>``, e.g. ``EMP20261234``."""
    year = (now or datetime.now()).year
    return f"{ID_PREFIXES[kind]}{year}{random.randint(1000, 9999)}"


def public_view(subject: Subject) -> dict:
    data = {
        "subject_id": subject.subject_id,
        "name": subject.name,
        "kind": subject.kind.value,
        "reference_image_location": subject.reference_image_location,
        "is_active": subject.is_active,
    }
    for attr in ("email", "phone_number", "role"):
        if hasattr(subject, attr):
            data[attr] = getattr(subject, attr)
    return data
