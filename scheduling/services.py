"""
Service layer for class calendar business logic.

Services load rows, convert them to the values in ``types``, call the pure
calendar core (generator, reconciler, attendance) and write the results back
inside a transaction.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from django.db import DatabaseError, transaction

from . import attendance, generator, reconciler
from .exceptions import (
    ClassAlreadyExists,
    InvalidClassStatus,
    InvalidDateRange,
    ReconciliationInProgress,
)
from .models import (
    AttendanceRecord,
    Classroom,
    Course,
    CourseClass,
    Enrollment,
    Holiday,
    WeekSchedule,
)
from .types import (
    AttendanceChanges,
    ClassSession,
    ClassStatus,
    CourseClassUpdateData,
    CourseUpdateData,
    ReconciliationPlan,
    session_id_for,
)

log = logging.getLogger(__name__)


def generate_classes_for_course(
    course: Course,
    today: Optional[date] = None
) -> List[ClassSession]:
    """
    Generate the classes a course's configuration implies.

    Args:
        course: Course instance
        today: Reference date for the Done/Pending split (default: UTC today)

    Returns:
        List of ClassSession ordered by date

    Raises:
        MalformedCourseWindow: If the course dates cannot be parsed
    """
    slots, holidays, classrooms = _reference_data(course)
    return generator.generate_course_classes(
        course.to_value(), slots, holidays, classrooms, today=today
    )


def preview_course_reconciliation(
    course: Course,
    today: Optional[date] = None
) -> ReconciliationPlan:
    """
    Compute which classes an update of the course calendar would delete and add.

    Nothing is written; the plan is meant to be confirmed by the user.
    """
    _, plan = _plan_for_course(course, today)
    return plan


@transaction.atomic
def apply_course_reconciliation(
    course: Course,
    today: Optional[date] = None
) -> ReconciliationPlan:
    """
    Bring the stored classes of a course in line with its configuration.

    Classes no longer implied are deleted, newly implied classes are created
    and every other class is left as it is.

    Args:
        course: Course instance
        today: Reference date for the Done/Pending split of new classes

    Returns:
        The ReconciliationPlan that was applied

    Raises:
        ReconciliationInProgress: If another update holds the course lock
        MalformedCourseWindow: If the course dates cannot be parsed
    """
    _lock_course(course)
    ideal, plan = _plan_for_course(course, today)

    if plan.is_in_sync:
        log.info("Course %s classes already up to date", course.pk)
        return plan

    if plan.to_delete:
        CourseClass.objects.filter(pk__in=[s.id for s in plan.to_delete]).delete()
    if plan.to_add:
        CourseClass.objects.bulk_create([CourseClass.from_value(s) for s in plan.to_add])
    _store_classes_count(course, len(ideal))

    log.info(
        "Course %s classes updated: %d deleted, %d added",
        course.pk, len(plan.to_delete), len(plan.to_add)
    )
    return plan


def refresh_classes_count(course: Course) -> int:
    """Recompute and store how many classes the course configuration implies."""
    slots, holidays, classrooms = _reference_data(course)
    count = generator.count_course_classes(
        course.to_value(), slots, holidays, classrooms, fallback=course.classes_count
    )
    _store_classes_count(course, count)
    return count


@transaction.atomic
def create_course(
    name: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    schedule_ids: Optional[List[int]] = None,
    classroom_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    description: str = '',
    generate_classes: bool = True,
    today: Optional[date] = None
) -> Tuple[Course, int]:
    """
    Create a course and optionally generate its classes.

    Returns:
        Tuple of (created Course, number of classes created)
    """
    course = Course.objects.create(
        name=name,
        description=description,
        start_date=start_date,
        end_date=end_date,
        classroom_id=classroom_id,
        teacher_id=teacher_id,
    )
    if schedule_ids:
        course.schedules.set(schedule_ids)

    if not generate_classes:
        refresh_classes_count(course)
        return course, 0

    plan = apply_course_reconciliation(course, today=today)
    return course, len(plan.to_add)


@transaction.atomic
def update_course(course: Course, update_data: CourseUpdateData) -> Course:
    """
    Update a course and its cached class count.

    Stored classes are not touched; use the reconciliation preview and
    apply_course_reconciliation to update the calendar.
    """
    fields_to_update = {
        'name': update_data.name,
        'description': update_data.description,
        'teacher_id': update_data.teacher_id,
        'classroom_id': update_data.classroom_id,
        'start_date': update_data.start_date,
        'end_date': update_data.end_date,
    }
    _apply_field_updates(course, fields_to_update)
    for field_name in update_data.cleared_fields:
        setattr(course, field_name, None)
    course.save()

    if update_data.schedule_ids is not None:
        course.schedules.set(update_data.schedule_ids)

    refresh_classes_count(course)
    return course


@transaction.atomic
def update_course_class(
    course_class: CourseClass,
    update_data: CourseClassUpdateData
) -> CourseClass:
    """
    Update a class.

    Changing the date reschedules the class; it keeps its id, so
    reconciliation still treats it as the class of its original date.
    Attendance follows only when the status actually changes; editing
    comments, teacher or times leaves attendance alone.

    Raises:
        InvalidClassStatus: If the status is not a known class status
        ValidationError: If the class would end before it starts
    """
    fields_to_update = {
        'date': update_data.date,
        'teacher_id': update_data.teacher_id,
        'is_substitution': update_data.is_substitution,
        'start_time': update_data.start_time,
        'end_time': update_data.end_time,
        'internal_comment': update_data.internal_comment,
        'public_comment': update_data.public_comment,
    }
    _apply_field_updates(course_class, fields_to_update)
    course_class.save()

    if update_data.status is not None:
        change_course_class_status(course_class, update_data.status)

    return course_class


@transaction.atomic
def change_course_class_status(course_class: CourseClass, new_status) -> AttendanceChanges:
    """
    Set the status of a class and propagate it to attendance.

    Args:
        course_class: CourseClass instance
        new_status: ClassStatus or its value

    Returns:
        The AttendanceChanges that were written (empty if the status is unchanged)

    Raises:
        InvalidClassStatus: If the status is not a known class status
    """
    try:
        status = ClassStatus(new_status)
    except ValueError as exc:
        raise InvalidClassStatus(new_status) from exc
    if course_class.status == status.value:
        return AttendanceChanges()

    course_class.status = status.value
    course_class.save()
    return _sync_attendance(course_class)


@transaction.atomic
def create_course_class(
    course: Course,
    class_date: date,
    start_time,
    end_time,
    teacher_id: Optional[int] = None,
    is_substitution: bool = False,
    internal_comment: str = '',
    public_comment: str = ''
) -> CourseClass:
    """
    Add a one-off class to a course by hand.

    The class gets the id a generated class on that date would have. If the
    date is implied by the course schedule, reconciliation keeps it;
    otherwise the next reconciliation lists it for deletion.

    Args:
        course: Course instance
        class_date: Date of the class
        start_time: Start time (time or "HH:MM")
        end_time: End time (time or "HH:MM")
        teacher_id: Teacher of the class (default: the course teacher)

    Returns:
        The created CourseClass

    Raises:
        ClassAlreadyExists: If the course already has a class with that id
        ValidationError: If the class would end before it starts
    """
    class_id = session_id_for(course.pk, class_date)
    if CourseClass.objects.filter(pk=class_id).exists():
        raise ClassAlreadyExists(class_id)

    course_class = CourseClass(
        id=class_id,
        course=course,
        date=class_date,
        start_time=start_time,
        end_time=end_time,
        teacher_id=teacher_id if teacher_id is not None else course.teacher_id,
        is_substitution=is_substitution,
        internal_comment=internal_comment,
        public_comment=public_comment,
    )
    course_class.save(force_insert=True)

    log.info("Class %s added to course %s by hand", class_id, course.pk)
    return course_class


@transaction.atomic
def delete_course_classes(class_ids: List[str]) -> int:
    """
    Delete classes and their attendance rows.

    Returns:
        Number of classes deleted
    """
    _, deleted = CourseClass.objects.filter(pk__in=class_ids).delete()
    count = deleted.get(CourseClass._meta.label, 0)

    log.info("Deleted %d class(es)", count)
    return count


def get_course_classes_in_range(
    start_date: date,
    end_date: date,
    status: Optional[str] = None
) -> List[CourseClass]:
    """
    Get classes within a date range.

    Raises:
        InvalidDateRange: If start_date > end_date
    """
    if start_date > end_date:
        raise InvalidDateRange(start_date, end_date)

    queryset = CourseClass.objects.in_range(start_date, end_date)

    if status:
        queryset = queryset.filter(status=status)

    return list(queryset)


def _reference_data(course: Course):
    # Slots are consulted in creation order; the last slot on a weekday wins.
    slots = [s.to_value() for s in WeekSchedule.objects.filter(courses=course).order_by('id')]
    classrooms = [c.to_value() for c in Classroom.objects.filter(pk=course.classroom_id)]
    location = classrooms[0].location if classrooms else None
    holidays = [h.to_value() for h in Holiday.objects.for_location(location)]
    return slots, holidays, classrooms


def _plan_for_course(
    course: Course,
    today: Optional[date]
) -> Tuple[List[ClassSession], ReconciliationPlan]:
    ideal = generate_classes_for_course(course, today=today)
    persisted = [c.to_value() for c in CourseClass.objects.for_course(course)]
    return ideal, reconciler.reconcile(ideal, persisted)


def _lock_course(course: Course) -> None:
    """Hold the course row until the transaction ends; fail fast if taken."""
    try:
        Course.objects.select_for_update(nowait=True).get(pk=course.pk)
    except DatabaseError as exc:
        raise ReconciliationInProgress(course.pk) from exc


def _sync_attendance(course_class: CourseClass) -> AttendanceChanges:
    enrollments = [e.to_value() for e in Enrollment.objects.for_course(course_class.course_id)]
    existing = [r.to_value() for r in AttendanceRecord.objects.for_class(course_class)]

    changes = attendance.on_session_status_change(course_class.to_value(), enrollments, existing)

    if changes.to_update:
        AttendanceRecord.objects.bulk_update(
            [AttendanceRecord.from_value(r) for r in changes.to_update],
            ['status']
        )
    if changes.to_create:
        AttendanceRecord.objects.bulk_create(
            [AttendanceRecord.from_value(r) for r in changes.to_create]
        )
    if changes.mark_initialized:
        course_class.attendance_initialized = True
        course_class.save(update_fields=['attendance_initialized', 'updated_at'])

    log.debug(
        "Class %s attendance: %d created, %d updated",
        course_class.pk, len(changes.to_create), len(changes.to_update)
    )
    return changes


def _store_classes_count(course: Course, count: int) -> None:
    Course.objects.filter(pk=course.pk).update(classes_count=count)
    course.classes_count = count


def _apply_field_updates(obj, fields: dict) -> None:
    """Apply field updates to object if values are not None (DRY helper)."""
    for field_name, value in fields.items():
        if value is not None:
            setattr(obj, field_name, value)
