"""Relationship catalog: the five record types, their keys and their foreign-key edges.

Built once by `build_catalog()` and shared read-only by the constraint engine,
the composition resolver and the mutation coordinator.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel

from registrar.composition.plan import Join, join
from registrar.core.enums import EntityType
from registrar.core.exceptions import UnknownEntityTypeError
from registrar.records import schemas


@dataclass(frozen=True)
class EntitySpec:
    entity_type: EntityType
    business_key: str
    unique_together: Tuple[Tuple[str, ...], ...]
    foreign_keys: Mapping[str, EntityType]
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    default_sort: Tuple[str, ...] = ()
    default_plan: Tuple[Join, ...] = ()
    # Plan for a populated single-record read; falls back to default_plan.
    detail_plan: Tuple[Join, ...] = ()
    derive: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = field(default=None, compare=False)

    def referenced_type(self, fk_field: str) -> Optional[EntityType]:
        return self.foreign_keys.get(fk_field)

    @property
    def required_fields(self) -> Tuple[str, ...]:
        """Fields an update may not clear: the business key and every foreign key."""
        return (self.business_key,) + tuple(self.foreign_keys)


class Catalog:
    def __init__(self, specs: Iterable[EntitySpec]) -> None:
        self._specs: Mapping[EntityType, EntitySpec] = MappingProxyType({s.entity_type: s for s in specs})

    def spec(self, entity_type: Any) -> EntitySpec:
        try:
            return self._specs[EntityType(entity_type)]
        except (KeyError, ValueError):
            raise UnknownEntityTypeError(entity_type) from None

    def entity_types(self) -> List[EntityType]:
        return list(self._specs)

    def dependents_of(self, entity_type: Any) -> List[Tuple[EntityType, str]]:
        """Inbound edges: (dependent type, FK field) pairs that point at `entity_type`."""
        target = self.spec(entity_type).entity_type
        return [
            (s.entity_type, fk_field)
            for s in self._specs.values()
            for fk_field, ref in s.foreign_keys.items()
            if ref == target
        ]


# Projections applied when a populated view is requested without an explicit plan.
STUDENT_BRIEF = ("First_Name", "Last_Name", "Student_ID")
STUDENT_CONTACT = STUDENT_BRIEF + ("Phone_Number",)
COURSE_BRIEF = ("Name", "Department")
SUBJECT_BRIEF = ("Subject_Code", "Name", "Units")


def student_display_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    first, last = record.get("First_Name"), record.get("Last_Name")
    if first is not None and last is not None:
        initial = record.get("Middle_Initial")
        middle = f" {initial}." if initial else ""
        record["full_name"] = f"{first}{middle} {last}"
    parts = [record.get(k) for k in ("City", "Province", "Postal_Code")]
    if any(parts):
        record["full_address"] = ", ".join(p for p in parts if p)
    return record


def build_catalog() -> Catalog:
    return Catalog([
        EntitySpec(
            entity_type=EntityType.STUDENT,
            business_key="Student_ID",
            unique_together=(("Student_ID",),),
            foreign_keys=MappingProxyType({}),
            create_schema=schemas.StudentCreate,
            update_schema=schemas.StudentUpdate,
            default_sort=("Last_Name", "First_Name"),
            derive=student_display_fields,
        ),
        EntitySpec(
            entity_type=EntityType.COURSE,
            business_key="Course_ID",
            unique_together=(("Course_ID",), ("Name",)),
            foreign_keys=MappingProxyType({}),
            create_schema=schemas.CourseCreate,
            update_schema=schemas.CourseUpdate,
            default_sort=("Name",),
        ),
        EntitySpec(
            entity_type=EntityType.SUBJECT,
            business_key="Subject_Code",
            unique_together=(("Subject_Code",),),
            foreign_keys=MappingProxyType({"FK_Course_ID": EntityType.COURSE}),
            create_schema=schemas.SubjectCreate,
            update_schema=schemas.SubjectUpdate,
            default_sort=("Subject_Code",),
            default_plan=(join("FK_Course_ID", select=COURSE_BRIEF),),
        ),
        EntitySpec(
            entity_type=EntityType.ENROLLMENT,
            business_key="Enrollment_ID",
            unique_together=(("Enrollment_ID",),),
            foreign_keys=MappingProxyType({
                "FK_Course_ID": EntityType.COURSE,
                "FK_Student_ID": EntityType.STUDENT,
            }),
            create_schema=schemas.EnrollmentCreate,
            update_schema=schemas.EnrollmentUpdate,
            default_sort=("-Date_Enrolled",),
            default_plan=(
                join("FK_Student_ID", select=STUDENT_BRIEF),
                join("FK_Course_ID", select=COURSE_BRIEF),
            ),
            detail_plan=(
                join("FK_Student_ID", select=STUDENT_CONTACT),
                join("FK_Course_ID", select=COURSE_BRIEF),
            ),
        ),
        EntitySpec(
            entity_type=EntityType.STUDENT_SCHEDULE,
            business_key="Schedule_ID",
            # One schedule row per subject within an enrollment.
            unique_together=(("Schedule_ID",), ("FK_Enrollment_ID", "FK_Subject_Code")),
            foreign_keys=MappingProxyType({
                "FK_Enrollment_ID": EntityType.ENROLLMENT,
                "FK_Subject_Code": EntityType.SUBJECT,
            }),
            create_schema=schemas.StudentScheduleCreate,
            update_schema=schemas.StudentScheduleUpdate,
            default_sort=("Schedule_ID",),
            default_plan=(
                join(
                    "FK_Enrollment_ID",
                    join("FK_Student_ID", select=STUDENT_BRIEF),
                    join("FK_Course_ID", select=COURSE_BRIEF),
                ),
                join("FK_Subject_Code", select=SUBJECT_BRIEF),
            ),
        ),
    ])


CATALOG = build_catalog()
