from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from feeledger.core.schemas import Money, WireModel


class Classroom(WireModel):
    school_id: str = ""
    class_id: str
    class_name: str
    division: str = ""
    teacher_id: Optional[str] = None
    class_teacher: Optional[str] = None
    fee_amount: Money = Decimal("0")
    is_template: bool = False


class ClassroomListResponse(WireModel):
    school_id: str = ""
    classes: List[Classroom] = Field(default_factory=list)
