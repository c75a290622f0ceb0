from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from registrar.core.enums import EntityType, ErrorKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Payload(BaseModel):
    """Base for write payloads: trims every string value before type coercion."""

    @field_validator("*", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# --- Student ---------------------------------------------------------------


class StudentCreate(_Payload):
    Student_ID: int
    Last_Name: str
    First_Name: str
    Middle_Initial: Optional[str] = None
    City: Optional[str] = None
    Province: Optional[str] = None
    Postal_Code: Optional[str] = None
    Phone_Number: Optional[str] = None

    @field_validator("Middle_Initial")
    @classmethod
    def upper_initial(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v


class StudentUpdate(_Payload):
    Student_ID: Optional[int] = None
    Last_Name: Optional[str] = None
    First_Name: Optional[str] = None
    Middle_Initial: Optional[str] = None
    City: Optional[str] = None
    Province: Optional[str] = None
    Postal_Code: Optional[str] = None
    Phone_Number: Optional[str] = None

    @field_validator("Middle_Initial")
    @classmethod
    def upper_initial(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v


# --- Course ----------------------------------------------------------------


class CourseCreate(_Payload):
    Course_ID: int
    Name: str
    Department: str


class CourseUpdate(_Payload):
    Course_ID: Optional[int] = None
    Name: Optional[str] = None
    Department: Optional[str] = None


# --- Subject ---------------------------------------------------------------


class SubjectCreate(_Payload):
    Subject_Code: str
    Name: str
    Units: int
    FK_Course_ID: str = Field(..., description="Internal identity of the owning Course")

    @field_validator("Subject_Code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v


class SubjectUpdate(_Payload):
    Subject_Code: Optional[str] = None
    Name: Optional[str] = None
    Units: Optional[int] = None
    FK_Course_ID: Optional[str] = None

    @field_validator("Subject_Code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v


# --- Enrollment ------------------------------------------------------------


class EnrollmentCreate(_Payload):
    Enrollment_ID: int
    Date_Enrolled: datetime = Field(default_factory=_utcnow)
    Year_Level: int
    FK_Course_ID: str = Field(..., description="Internal identity of the Course")
    FK_Student_ID: str = Field(..., description="Internal identity of the Student")


class EnrollmentUpdate(_Payload):
    Enrollment_ID: Optional[int] = None
    Date_Enrolled: Optional[datetime] = None
    Year_Level: Optional[int] = None
    FK_Course_ID: Optional[str] = None
    FK_Student_ID: Optional[str] = None


# --- StudentSchedule -------------------------------------------------------


class StudentScheduleCreate(_Payload):
    Schedule_ID: int
    FK_Enrollment_ID: str = Field(..., description="Internal identity of the Enrollment")
    FK_Subject_Code: str = Field(..., description="Internal identity of the Subject")
    Room: Optional[str] = None
    Class_Schedule: Optional[str] = None


class StudentScheduleUpdate(_Payload):
    Schedule_ID: Optional[int] = None
    FK_Enrollment_ID: Optional[str] = None
    FK_Subject_Code: Optional[str] = None
    Room: Optional[str] = None
    Class_Schedule: Optional[str] = None


# --- Results ---------------------------------------------------------------


class EntityKey(BaseModel):
    """Pairs the store-assigned identity with the human-chosen business key."""

    identity: str
    business_id: Union[int, str]

    class Config:
        frozen = True


class Violation(BaseModel):
    kind: ErrorKind
    entity_type: EntityType
    fields: List[str] = Field(default_factory=list)
    identity: Optional[str] = Field(None, description="Identity that was looked up and not found")
    referenced_type: Optional[EntityType] = None
    conflicting_identity: Optional[str] = None
    message: str


class ReferenceBroken(BaseModel):
    """Placed in a joined view where the referenced record no longer exists."""

    kind: ErrorKind = ErrorKind.REFERENCE_BROKEN
    field: str
    referenced_type: EntityType
    identity: str


class OperationResult(BaseModel):
    entity_type: EntityType
    identity: Optional[str] = None
    key: Optional[EntityKey] = None
    data: Optional[Any] = None
    errors: List[Violation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_kinds(self) -> List[ErrorKind]:
        return [e.kind for e in self.errors]


def not_found(entity_type: EntityType, identity: str) -> Violation:
    return Violation(
        kind=ErrorKind.NOT_FOUND,
        entity_type=entity_type,
        identity=identity,
        message=f"{entity_type.value} '{identity}' not found",
    )
