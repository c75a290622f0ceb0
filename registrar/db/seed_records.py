"""
Seed script to populate the document store with sample enrollment records.

This script:
1. Inserts students and courses
2. Inserts subjects (IT course) and enrollments, wiring foreign keys by internal identity
3. Inserts the class schedule of enrollment 61

Every insert goes through the mutation coordinator, so all constraints apply.
Records whose business key already exists are reused rather than duplicated.

Run: python -m registrar.db.seed_records
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from registrar.core.catalog import CATALOG
from registrar.core.enums import EntityType
from registrar.core.exceptions import ServiceError
from registrar.core.logging import setup_logging
from registrar.db.session import AsyncSessionLocal, create_tables
from registrar.records import service as records
from registrar.store.service import EntityStore, SQLAlchemyEntityStore

logger = logging.getLogger(__name__)


# (Student_ID, Last_Name, First_Name, Middle_Initial, City, Province, Postal_Code, Phone_Number)
STUDENTS: List[Tuple[int, str, str, str, str, str, str, str]] = [
    (1, "Aranas", "Bennedict", "S", "Malaybalay", "Bukidnon", "8700", "09325462145"),
    (2, "Bautista", "David", "A", "Valencia", "Bukidnon", "9000", "09937783823"),
    (3, "Corales", "John", "D", "Malaybalay", "Bukidnon", "8700", "09058073523"),
    (4, "Dag-um", "Christopher", "K", "Cagayan de oro", "Misamis oriental", "5600", "09974415219"),
    (5, "Esteban", "Cedric", "O", "Tarlac", "Tarlac", "7200", "09694183691"),
]

# (Course_ID, Name, Department)
COURSES: List[Tuple[int, str, str]] = [
    (101, "Nursing", "Nursing"),
    (102, "Information Technology", "Technology"),
    (103, "Computer Science", "Technology"),
    (107, "Secondary Education Major in Mathematics", "Education"),
]

# (Subject_Code, Name, Units, Course_ID)
SUBJECTS: List[Tuple[str, str, int, int]] = [
    ("T125", "Intro To Computing", 3, 102),
    ("TE256", "Human Computer Interaction", 3, 102),
    ("GE340", "Mathematics in the modern World", 2, 102),
    ("T255", "Computer Programming", 3, 102),
    ("T254", "Information Management", 3, 102),
]

# (Enrollment_ID, Date_Enrolled, Year_Level, Course_ID, Student_ID)
ENROLLMENTS: List[Tuple[int, str, int, int, int]] = [
    (61, "2025-08-19", 1, 101, 1),
    (71, "2025-08-23", 1, 107, 2),
    (62, "2025-08-23", 2, 102, 3),
    (63, "2025-08-24", 4, 102, 4),
    (64, "2025-08-25", 3, 103, 5),
]

# (Schedule_ID, Enrollment_ID, Subject_Code, Room, Class_Schedule)
SCHEDULES: List[Tuple[int, int, str, str, str]] = [
    (1, 61, "T125", "1", "7:30-9"),
    (2, 61, "TE256", "2", "9:30-12"),
    (3, 61, "GE340", "3", "1:30-3"),
    (4, 61, "T255", "4", "3:30-5"),
    (5, 61, "T254", "5", "5:30-7"),
]


def _enrolled_on(day: str) -> datetime:
    return datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)


async def _ensure(store: EntityStore, entity_type: EntityType, payload: Dict[str, Any], counts: Dict[str, int]) -> str:
    """Create the record unless its business key already exists; return its identity."""
    business_key = CATALOG.spec(entity_type).business_key
    existing = await records.get_record_by_key(store, entity_type, payload[business_key])
    if existing.ok:
        counts["skipped"] += 1
        return existing.identity
    result = await records.create_record(store, entity_type, payload)
    if not result.ok:
        raise ServiceError(f"Seeding {entity_type.value} failed: {[e.message for e in result.errors]}")
    counts["created"] += 1
    return result.identity


async def seed_records(store: EntityStore) -> Dict[str, int]:
    """Insert the sample dataset. Returns created/skipped counts."""
    counts = {"created": 0, "skipped": 0}

    students: Dict[int, str] = {}
    for student_id, last, first, initial, city, province, postal, phone in STUDENTS:
        students[student_id] = await _ensure(store, EntityType.STUDENT, {
            "Student_ID": student_id,
            "Last_Name": last,
            "First_Name": first,
            "Middle_Initial": initial,
            "City": city,
            "Province": province,
            "Postal_Code": postal,
            "Phone_Number": phone,
        }, counts)

    courses: Dict[int, str] = {}
    for course_id, name, department in COURSES:
        courses[course_id] = await _ensure(store, EntityType.COURSE, {
            "Course_ID": course_id,
            "Name": name,
            "Department": department,
        }, counts)

    subjects: Dict[str, str] = {}
    for code, name, units, course_id in SUBJECTS:
        subjects[code] = await _ensure(store, EntityType.SUBJECT, {
            "Subject_Code": code,
            "Name": name,
            "Units": units,
            "FK_Course_ID": courses[course_id],
        }, counts)

    enrollments: Dict[int, str] = {}
    for enrollment_id, day, year_level, course_id, student_id in ENROLLMENTS:
        enrollments[enrollment_id] = await _ensure(store, EntityType.ENROLLMENT, {
            "Enrollment_ID": enrollment_id,
            "Date_Enrolled": _enrolled_on(day),
            "Year_Level": year_level,
            "FK_Course_ID": courses[course_id],
            "FK_Student_ID": students[student_id],
        }, counts)

    for schedule_id, enrollment_id, code, room, class_schedule in SCHEDULES:
        await _ensure(store, EntityType.STUDENT_SCHEDULE, {
            "Schedule_ID": schedule_id,
            "FK_Enrollment_ID": enrollments[enrollment_id],
            "FK_Subject_Code": subjects[code],
            "Room": room,
            "Class_Schedule": class_schedule,
        }, counts)

    logger.info("Seeding finished: %d created, %d already present", counts["created"], counts["skipped"])
    return counts


async def main() -> None:
    setup_logging()
    await create_tables()
    async with AsyncSessionLocal() as session:
        await seed_records(SQLAlchemyEntityStore(session))


if __name__ == "__main__":
    asyncio.run(main())
