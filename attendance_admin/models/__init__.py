"""Pydantic models for records in the tree store and request bodies."""
from attendance_admin.models.branch import Branch, BranchCreate, BranchUpdate, Semester, SemesterInput
from attendance_admin.models.lecture import CounterRef, CounterAdjust, LectureCounter, SubjectRow
from attendance_admin.models.teacher import (
    AssignmentSelection,
    AssignmentsUpdate,
    Teacher,
    TeacherCreate,
    TeacherSubjectAssignment,
)
from attendance_admin.models.user import AttendanceEvent, EnrollmentCreate, PendingEnrollment, User

__all__ = [
    "Branch",
    "BranchCreate",
    "BranchUpdate",
    "Semester",
    "SemesterInput",
    "CounterRef",
    "CounterAdjust",
    "LectureCounter",
    "SubjectRow",
    "AssignmentSelection",
    "AssignmentsUpdate",
    "Teacher",
    "TeacherCreate",
    "TeacherSubjectAssignment",
    "AttendanceEvent",
    "EnrollmentCreate",
    "PendingEnrollment",
    "User",
]
