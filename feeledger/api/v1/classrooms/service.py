"""Classroom directory client and classId resolution for fee rows."""

import logging
from typing import List, Optional, Sequence

import httpx

from feeledger.core import endpoints
from feeledger.core.exceptions import ClassResolutionError
from feeledger.core.http import json_body, parse_model, send

from .schemas import Classroom, ClassroomListResponse

logger = logging.getLogger(__name__)


def _norm(value: Optional[str]) -> str:
    return " ".join((value or "").split()).lower()


class ClassroomService:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def get_classes_by_school_id(self, school_id: str) -> List[Classroom]:
        """Fetch all classes for a school in one call (no pagination)."""
        path = endpoints.build_path(endpoints.CLASSROOM_GET_CLASSES, schoolId=school_id)
        response = await send(self.client, "GET", path, "Failed to fetch classrooms")
        body = json_body(response, "Failed to fetch classrooms")
        if not isinstance(body, dict) or not isinstance(body.get("classes"), list):
            return []
        return parse_model(ClassroomListResponse, body, "Failed to fetch classrooms").classes


def resolve_class_id(
    class_id: Optional[str],
    class_name: str,
    division: Optional[str],
    classrooms: Sequence[Classroom],
) -> str:
    """
    Return the classId payments for a row are keyed by.
    A classId carried on the row wins; otherwise (className, division) must match exactly one classroom.
    """
    if class_id:
        return class_id
    matches = [
        c for c in classrooms
        if _norm(c.class_name) == _norm(class_name) and _norm(c.division) == _norm(division)
    ]
    label = f"{class_name} {division or ''}".strip()
    if not matches:
        logger.warning("No classroom matches %r", label)
        raise ClassResolutionError(f"Class {label} not found for this school")
    if len(matches) > 1:
        logger.warning("%d classrooms match %r", len(matches), label)
        raise ClassResolutionError(f"Class {label} is ambiguous for this school")
    return matches[0].class_id
