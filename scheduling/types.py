"""
Data types and constants for the class calendar.

This module contains:
- Value types consumed and produced by the calendar core (no Django imports)
- DTOs for service layer update operations
- Constants used across the application
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple, Union


DateLike = Union[date, str]


class Weekday(Enum):
    """Day of week, numbered like ``date.weekday()`` (0=Monday, 6=Sunday)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value) -> Optional['Weekday']:
        """
        Resolve a weekday from an enum, an int or a day name.

        Spanish names stored by the academy ("Lunes", "Miércoles") and
        English names are both accepted. Unknown values return None.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            return WEEKDAY_NAMES.get(value.strip().lower())
        return None


WEEKDAY_NAMES = {
    'monday': Weekday.MONDAY,
    'tuesday': Weekday.TUESDAY,
    'wednesday': Weekday.WEDNESDAY,
    'thursday': Weekday.THURSDAY,
    'friday': Weekday.FRIDAY,
    'saturday': Weekday.SATURDAY,
    'sunday': Weekday.SUNDAY,
    'lunes': Weekday.MONDAY,
    'martes': Weekday.TUESDAY,
    'miércoles': Weekday.WEDNESDAY,
    'miercoles': Weekday.WEDNESDAY,
    'jueves': Weekday.THURSDAY,
    'viernes': Weekday.FRIDAY,
    'sábado': Weekday.SATURDAY,
    'sabado': Weekday.SATURDAY,
    'domingo': Weekday.SUNDAY,
}


class HolidayDateType(str, Enum):
    SPECIFIC = 'specific'
    RECURRING = 'recurring'
    RANGE = 'range'


class ClassStatus(str, Enum):
    """Status of a class session."""
    PENDING = 'pending'
    DONE = 'done'
    CANCELLED = 'cancelled'


class AttendanceStatus(str, Enum):
    """Status of an attendance record, mirroring its class session."""
    PENDING = 'pending'
    COMPLETED = 'completed'
    ANNULLED = 'annulled'


class LateType(str, Enum):
    NO = 'no'
    MIN_5 = '5_min'
    MIN_10 = '10_min'
    MIN_15 = '15_min'
    MIN_20 = '20_min'
    MIN_25 = '25_min'
    MIN_30_PLUS = '30_plus_min'


CLASS_STATUS_CHOICES = [
    (ClassStatus.PENDING.value, 'Pending'),
    (ClassStatus.DONE.value, 'Done'),
    (ClassStatus.CANCELLED.value, 'Cancelled'),
]

ATTENDANCE_STATUS_CHOICES = [
    (AttendanceStatus.PENDING.value, 'Pending'),
    (AttendanceStatus.COMPLETED.value, 'Completed'),
    (AttendanceStatus.ANNULLED.value, 'Annulled'),
]

LATE_CHOICES = [
    (LateType.NO.value, 'No'),
    (LateType.MIN_5.value, '5 minutes late'),
    (LateType.MIN_10.value, '10 minutes late'),
    (LateType.MIN_15.value, '15 minutes late'),
    (LateType.MIN_20.value, '20 minutes late'),
    (LateType.MIN_25.value, '25 minutes late'),
    (LateType.MIN_30_PLUS.value, '30 or more minutes late'),
]

HOLIDAY_TYPE_CHOICES = [
    (HolidayDateType.SPECIFIC.value, 'Specific day'),
    (HolidayDateType.RECURRING.value, 'Every year'),
    (HolidayDateType.RANGE.value, 'Date range'),
]


@dataclass(frozen=True)
class ScheduleSlot:
    """One weekly recurring time window ("HH:MM" wall-clock times)."""
    id: int
    weekday: Weekday
    start_time: str
    end_time: str


@dataclass(frozen=True)
class HolidayDate:
    """When a holiday falls; required fields depend on ``type``."""
    type: HolidayDateType
    day: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None


@dataclass(frozen=True)
class HolidayRule:
    """A date exclusion rule, global when ``location`` is None."""
    id: int
    name: str
    date: HolidayDate
    location: Optional[str] = None


@dataclass(frozen=True)
class Classroom:
    id: int
    name: str
    location: Optional[str] = None


@dataclass(frozen=True)
class CourseWindow:
    """The fields of a course the calendar core needs."""
    id: int
    start_date: Optional[DateLike]
    end_date: Optional[DateLike]
    schedule_ids: Tuple[int, ...] = ()
    classroom_id: Optional[int] = None
    teacher_id: Optional[int] = None


@dataclass(frozen=True)
class ClassSession:
    """One concrete class occurrence of a course on a calendar date."""
    id: str
    course_id: int
    date: date
    start_time: str
    end_time: str
    teacher_id: Optional[int] = None
    is_substitution: bool = False
    status: ClassStatus = ClassStatus.PENDING
    internal_comment: str = ''
    public_comment: str = ''
    attendance_initialized: bool = False


@dataclass(frozen=True)
class EnrollmentWindow:
    student_id: int
    course_id: int
    enrollment_date: date
    is_active: bool = True
    cancellation_date: Optional[date] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Attendance of one student at one class session."""
    id: str
    session_id: str
    student_id: int
    attended: bool = False
    late: LateType = LateType.NO
    absence_justified: bool = False
    homework_done: bool = False
    comments: str = ''
    status: AttendanceStatus = AttendanceStatus.PENDING


@dataclass(frozen=True)
class ReconciliationPlan:
    """Sessions to remove and to insert so storage matches the ideal list."""
    to_delete: List[ClassSession] = field(default_factory=list)
    to_add: List[ClassSession] = field(default_factory=list)

    @property
    def is_in_sync(self) -> bool:
        return not self.to_delete and not self.to_add


@dataclass(frozen=True)
class AttendanceChanges:
    """Attendance rows to write after a class status edit."""
    to_create: List[AttendanceRecord] = field(default_factory=list)
    to_update: List[AttendanceRecord] = field(default_factory=list)
    mark_initialized: bool = False


# Course fields an update may set back to null
CLEARABLE_COURSE_FIELDS = ('teacher_id', 'classroom_id', 'start_date', 'end_date')


@dataclass
class CourseUpdateData:
    """DTO for course update operations."""
    name: Optional[str] = None
    description: Optional[str] = None
    teacher_id: Optional[int] = None
    classroom_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule_ids: Optional[List[int]] = None
    # Fields explicitly set to null; None elsewhere means "leave unchanged"
    cleared_fields: Tuple[str, ...] = ()


@dataclass
class CourseClassUpdateData:
    """DTO for class session update operations."""
    status: Optional[str] = None
    date: Optional[date] = None
    teacher_id: Optional[int] = None
    is_substitution: Optional[bool] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    internal_comment: Optional[str] = None
    public_comment: Optional[str] = None


def session_id_for(course_id, day: date) -> str:
    """Deterministic class session id: one session per course per date."""
    return f"{course_id}-{day.isoformat()}"


def attendance_id_for(student_id, session_id: str) -> str:
    return f"{student_id}-{session_id}"
