from enum import Enum


class EntityType(str, Enum):
    STUDENT = "Student"
    COURSE = "Course"
    SUBJECT = "Subject"
    ENROLLMENT = "Enrollment"
    STUDENT_SCHEDULE = "StudentSchedule"


class ErrorKind(str, Enum):
    DANGLING_REFERENCE = "DanglingReference"
    DUPLICATE_KEY = "DuplicateKey"
    NOT_FOUND = "NotFound"
    REFERENCE_BROKEN = "ReferenceBroken"
    REQUIRED_FIELD = "RequiredField"
