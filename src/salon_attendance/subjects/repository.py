from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import SubjectKind
from .model import AnySubject, Subject


class SubjectRepository(Protocol):
    """Repository interface over every account collection.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, subject_id: str) -> Optional[Subject]:
        raise NotImplementedError

    def list_all(self, *, kind: Optional[SubjectKind] = None) -> Sequence[Subject]:
        raise NotImplementedError

    def list_with_reference(self, *, kind: Optional[SubjectKind] = None) -> Sequence[Subject]:
        raise NotImplementedError

    def create(self, subject: AnySubject) -> None:
        """Persist a new subject; raises ValidationError on duplicate id/phone."""

        raise NotImplementedError

    def update_reference_image(self, subject_id: str, location: str) -> bool:
        raise NotImplementedError
