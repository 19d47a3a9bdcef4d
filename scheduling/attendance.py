"""
Attendance changes that follow a class status edit.

Existing attendance rows always take the class status. The first time a
class becomes Done, every enrolled student without a row gets one marked as
attended; teachers then correct absences by hand.
"""

import dataclasses
from typing import Iterable, List

from .types import (
    AttendanceChanges,
    AttendanceRecord,
    AttendanceStatus,
    ClassSession,
    ClassStatus,
    EnrollmentWindow,
    LateType,
    attendance_id_for,
)


ATTENDANCE_STATUS_BY_CLASS_STATUS = {
    ClassStatus.PENDING: AttendanceStatus.PENDING,
    ClassStatus.DONE: AttendanceStatus.COMPLETED,
    ClassStatus.CANCELLED: AttendanceStatus.ANNULLED,
}


def attendance_status_for(class_status) -> AttendanceStatus:
    """Attendance status mirroring a class status."""
    return ATTENDANCE_STATUS_BY_CLASS_STATUS[ClassStatus(class_status)]


def on_session_status_change(
    session: ClassSession,
    enrollments: Iterable[EnrollmentWindow],
    existing_records: Iterable[AttendanceRecord]
) -> AttendanceChanges:
    """
    Compute the attendance rows to write after a class status edit.

    Args:
        session: The class session with its new status
        enrollments: Enrollments to consider (other courses are ignored)
        existing_records: Attendance rows already stored for this session

    Returns:
        AttendanceChanges; ``mark_initialized`` tells the caller to persist
        the session's attendance_initialized flag
    """
    status = ClassStatus(session.status)
    new_status = attendance_status_for(status)
    existing = list(existing_records)

    to_update = [dataclasses.replace(record, status=new_status) for record in existing]

    first_completion = status is ClassStatus.DONE and not session.attendance_initialized
    if not first_completion:
        return AttendanceChanges(to_create=[], to_update=to_update, mark_initialized=False)

    return AttendanceChanges(
        to_create=_default_records(session, enrollments, existing),
        to_update=to_update,
        mark_initialized=True,
    )


def _default_records(
    session: ClassSession,
    enrollments: Iterable[EnrollmentWindow],
    existing: List[AttendanceRecord]
) -> List[AttendanceRecord]:
    seen_students = {record.student_id for record in existing}
    created = []
    for enrollment in enrollments:
        if not _covers_session(enrollment, session):
            continue
        if enrollment.student_id in seen_students:
            continue
        seen_students.add(enrollment.student_id)
        created.append(AttendanceRecord(
            id=attendance_id_for(enrollment.student_id, session.id),
            session_id=session.id,
            student_id=enrollment.student_id,
            attended=True,
            late=LateType.NO,
            absence_justified=False,
            homework_done=False,
            comments='',
            status=AttendanceStatus.COMPLETED,
        ))
    return created


def _covers_session(enrollment: EnrollmentWindow, session: ClassSession) -> bool:
    if enrollment.course_id != session.course_id or not enrollment.is_active:
        return False
    if session.date < enrollment.enrollment_date:
        return False
    if enrollment.cancellation_date and session.date > enrollment.cancellation_date:
        return False
    return True
