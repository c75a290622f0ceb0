"""Unit tests for foreign-key and uniqueness validation."""

from typing import Dict

from registrar.constraints.service import validate_for_insert, validate_for_update
from registrar.core.catalog import CATALOG
from registrar.core.enums import EntityType, ErrorKind
from registrar.store.service import SQLAlchemyEntityStore


async def test_insert_with_no_conflicts_passes(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    candidate = {"Schedule_ID": 1, "FK_Enrollment_ID": graph["enrollment"], "FK_Subject_Code": graph["subject"]}
    assert await validate_for_insert(store, CATALOG, EntityType.STUDENT_SCHEDULE, candidate) == []


async def test_dangling_reference_for_each_missing_fk(store: SQLAlchemyEntityStore) -> None:
    candidate = {"Enrollment_ID": 1, "Year_Level": 1, "FK_Course_ID": "ghost-course", "FK_Student_ID": "ghost-student"}
    violations = await validate_for_insert(store, CATALOG, EntityType.ENROLLMENT, candidate)
    assert [v.kind for v in violations] == [ErrorKind.DANGLING_REFERENCE, ErrorKind.DANGLING_REFERENCE]
    by_field = {v.fields[0]: v for v in violations}
    assert by_field["FK_Course_ID"].referenced_type is EntityType.COURSE
    assert by_field["FK_Course_ID"].identity == "ghost-course"
    assert by_field["FK_Student_ID"].referenced_type is EntityType.STUDENT


async def test_reference_to_wrong_entity_type_is_dangling(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    # A Student identity in a Course slot.
    candidate = {"Subject_Code": "X1", "Name": "X", "Units": 1, "FK_Course_ID": graph["student"]}
    violations = await validate_for_insert(store, CATALOG, EntityType.SUBJECT, candidate)
    assert len(violations) == 1
    assert violations[0].kind is ErrorKind.DANGLING_REFERENCE
    assert violations[0].fields == ["FK_Course_ID"]


async def test_duplicate_business_key(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    candidate = {"Student_ID": 1, "Last_Name": "Other", "First_Name": "Person"}
    violations = await validate_for_insert(store, CATALOG, EntityType.STUDENT, candidate)
    assert len(violations) == 1
    assert violations[0].kind is ErrorKind.DUPLICATE_KEY
    assert violations[0].fields == ["Student_ID"]
    assert violations[0].conflicting_identity == graph["student"]


async def test_compound_uniqueness_on_schedule(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    await store.put(
        EntityType.STUDENT_SCHEDULE,
        {"Schedule_ID": 1, "FK_Enrollment_ID": graph["enrollment"], "FK_Subject_Code": graph["subject"]},
    )
    candidate = {"Schedule_ID": 2, "FK_Enrollment_ID": graph["enrollment"], "FK_Subject_Code": graph["subject"]}
    violations = await validate_for_insert(store, CATALOG, EntityType.STUDENT_SCHEDULE, candidate)
    assert len(violations) == 1
    assert violations[0].fields == ["FK_Enrollment_ID", "FK_Subject_Code"]


async def test_violations_accumulate(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    # Duplicate Course_ID, duplicate Name: both reported.
    candidate = {"Course_ID": 101, "Name": "Information Technology", "Department": "X"}
    violations = await validate_for_insert(store, CATALOG, EntityType.COURSE, candidate)
    assert {tuple(v.fields) for v in violations} == {("Course_ID",), ("Name",)}
    assert {v.conflicting_identity for v in violations} == {graph["nursing"], graph["it"]}

    candidate = {"Enrollment_ID": 61, "Year_Level": 2, "FK_Course_ID": "gone", "FK_Student_ID": graph["student"]}
    violations = await validate_for_insert(store, CATALOG, EntityType.ENROLLMENT, candidate)
    assert sorted(v.kind.value for v in violations) == ["DanglingReference", "DuplicateKey"]


async def test_update_excludes_own_identity(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    violations = await validate_for_update(store, CATALOG, EntityType.STUDENT, graph["student"], {"Student_ID": 1})
    assert violations == []


async def test_update_detects_conflict_on_merged_record(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    violations = await validate_for_update(store, CATALOG, EntityType.COURSE, graph["it"], {"Name": "Nursing"})
    assert len(violations) == 1
    assert violations[0].kind is ErrorKind.DUPLICATE_KEY
    assert violations[0].conflicting_identity == graph["nursing"]


async def test_update_compound_key_uses_unchanged_field(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    other_subject = await store.put(EntityType.SUBJECT, {"Subject_Code": "TE256", "Name": "HCI", "Units": 3, "FK_Course_ID": graph["it"]})
    await store.put(
        EntityType.STUDENT_SCHEDULE,
        {"Schedule_ID": 1, "FK_Enrollment_ID": graph["enrollment"], "FK_Subject_Code": graph["subject"]},
    )
    second = await store.put(
        EntityType.STUDENT_SCHEDULE,
        {"Schedule_ID": 2, "FK_Enrollment_ID": graph["enrollment"], "FK_Subject_Code": other_subject},
    )
    violations = await validate_for_update(
        store, CATALOG, EntityType.STUDENT_SCHEDULE, second, {"FK_Subject_Code": graph["subject"]}
    )
    assert [v.fields for v in violations] == [["FK_Enrollment_ID", "FK_Subject_Code"]]


async def test_update_rechecks_changed_foreign_key(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    violations = await validate_for_update(
        store, CATALOG, EntityType.ENROLLMENT, graph["enrollment"], {"FK_Student_ID": "missing"}
    )
    assert len(violations) == 1
    assert violations[0].kind is ErrorKind.DANGLING_REFERENCE
    assert violations[0].fields == ["FK_Student_ID"]


async def test_update_of_missing_record_is_not_found(store: SQLAlchemyEntityStore) -> None:
    violations = await validate_for_update(store, CATALOG, EntityType.COURSE, "missing", {"Name": "X"})
    assert [v.kind for v in violations] == [ErrorKind.NOT_FOUND]


async def test_update_clearing_required_fields(store: SQLAlchemyEntityStore, graph: Dict[str, str]) -> None:
    violations = await validate_for_update(
        store,
        CATALOG,
        EntityType.ENROLLMENT,
        graph["enrollment"],
        {"Enrollment_ID": None, "FK_Course_ID": None, "Year_Level": None},
    )
    assert [v.kind for v in violations] == [ErrorKind.REQUIRED_FIELD, ErrorKind.REQUIRED_FIELD]
    assert [v.fields for v in violations] == [["Enrollment_ID"], ["FK_Course_ID"]]
    assert violations[1].referenced_type is EntityType.COURSE
