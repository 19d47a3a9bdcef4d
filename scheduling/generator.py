"""
Class session generation from a course window.

Walks the course date range one day at a time, keeps the days whose weekday
has an assigned schedule slot and that no holiday excludes, and emits one
ClassSession per kept day. The output is ordered by date.
"""

import logging
import warnings
from datetime import date
from typing import Dict, Iterable, List, Optional

from .dates import iter_days, parse_date, utc_today
from .exceptions import MalformedCourseWindow, ValidationWarning
from .holidays import is_excluded, usable_rules
from .types import (
    ClassSession,
    ClassStatus,
    Classroom,
    CourseWindow,
    HolidayRule,
    ScheduleSlot,
    Weekday,
    session_id_for,
)

log = logging.getLogger(__name__)


def generate_course_classes(
    course: CourseWindow,
    schedule_slots: Iterable[ScheduleSlot],
    holiday_rules: Iterable[HolidayRule],
    classrooms: Iterable[Classroom],
    today: Optional[date] = None
) -> List[ClassSession]:
    """
    Generate the ideal class sessions of a course.

    Args:
        course: Course window (dates, schedule ids, classroom, teacher)
        schedule_slots: All known schedule slots
        holiday_rules: All known holiday rules
        classrooms: All known classrooms
        today: Reference date for the Done/Pending split (default: UTC today)

    Returns:
        List of ClassSession ordered by date; empty if the course has no
        dates or no schedule

    Raises:
        MalformedCourseWindow: If start_date or end_date cannot be parsed
    """
    if not course.start_date or not course.end_date or not course.schedule_ids:
        return []

    start = _parse_window_date(course, 'start_date')
    end = _parse_window_date(course, 'end_date')

    slots_by_weekday = _map_slots_by_weekday(course, schedule_slots)
    if not slots_by_weekday:
        return []

    location = _course_location(course, classrooms)
    rules = usable_rules(holiday_rules)
    reference_day = today or utc_today()

    sessions = []
    for day in iter_days(start, end):
        slot = slots_by_weekday.get(Weekday(day.weekday()))
        if slot is None or is_excluded(day, rules, location):
            continue
        sessions.append(ClassSession(
            id=session_id_for(course.id, day),
            course_id=course.id,
            date=day,
            start_time=slot.start_time,
            end_time=slot.end_time,
            teacher_id=course.teacher_id,
            is_substitution=False,
            status=ClassStatus.DONE if day < reference_day else ClassStatus.PENDING,
        ))

    log.debug("Generated %d classes for course %s", len(sessions), course.id)
    return sessions


def count_course_classes(
    course: CourseWindow,
    schedule_slots: Iterable[ScheduleSlot],
    holiday_rules: Iterable[HolidayRule],
    classrooms: Iterable[Classroom],
    fallback: int = 0
) -> int:
    """Number of classes a course generates, or ``fallback`` without a window."""
    if not course.start_date or not course.end_date or not course.schedule_ids:
        return fallback
    return len(generate_course_classes(course, schedule_slots, holiday_rules, classrooms))


def _parse_window_date(course: CourseWindow, field_name: str) -> date:
    value = getattr(course, field_name)
    try:
        return parse_date(value)
    except ValueError as exc:
        raise MalformedCourseWindow(field_name, value) from exc


def _map_slots_by_weekday(
    course: CourseWindow,
    schedule_slots: Iterable[ScheduleSlot]
) -> Dict[Weekday, ScheduleSlot]:
    """Map weekday to slot; a later slot on the same weekday replaces the earlier one."""
    assigned = set(course.schedule_ids)
    by_weekday: Dict[Weekday, ScheduleSlot] = {}
    for slot in schedule_slots:
        if slot.id not in assigned:
            continue
        weekday = Weekday.parse(slot.weekday)
        if weekday is None:
            log.warning("Schedule slot %s has unknown weekday %r", slot.id, slot.weekday)
            continue
        previous = by_weekday.get(weekday)
        if previous is not None:
            message = (
                f"Course {course.id}: schedule slots {previous.id} and {slot.id} "
                f"share {weekday.name.title()}; using slot {slot.id}"
            )
            log.warning(message)
            warnings.warn(message, ValidationWarning, stacklevel=3)
        by_weekday[weekday] = slot
    return by_weekday


def _course_location(course: CourseWindow, classrooms: Iterable[Classroom]) -> Optional[str]:
    for classroom in classrooms:
        if classroom.id == course.classroom_id:
            return classroom.location
    return None
