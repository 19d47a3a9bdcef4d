"""
Models for the academy class calendar.

This implementation materializes class sessions:
- WeekSchedule, Holiday and Classroom are reference data maintained by admins
- Course stores the window (dates + weekly schedules) classes are generated from
- CourseClass stores ALL generated class sessions, keyed by "{course_id}-{date}"
- AttendanceRecord stores one row per student per class, keyed by "{student_id}-{class_id}"

Rows convert to the framework-agnostic values in ``types`` via ``to_value()``.
"""

from datetime import datetime

from django.db import models
from django.core.exceptions import ValidationError

from .managers import (
    AttendanceRecordManager,
    CourseClassManager,
    EnrollmentManager,
    HolidayManager,
)
from .types import (
    ATTENDANCE_STATUS_CHOICES,
    CLASS_STATUS_CHOICES,
    HOLIDAY_TYPE_CHOICES,
    LATE_CHOICES,
    AttendanceStatus,
    ClassStatus,
    HolidayDateType,
    LateType,
    Weekday,
)
from . import types


def _hhmm(value):
    return value.strftime('%H:%M') if value else ''


def _time(value):
    if isinstance(value, str):
        return datetime.strptime(value, '%H:%M').time()
    return value


class WeekSchedule(models.Model):
    """
    A weekly recurring time window (e.g., "Monday 16:00-17:30").

    Courses reference one or more of these to define when they meet.
    """

    WEEKDAY_CHOICES = [
        (0, 'Monday'),
        (1, 'Tuesday'),
        (2, 'Wednesday'),
        (3, 'Thursday'),
        (4, 'Friday'),
        (5, 'Saturday'),
        (6, 'Sunday'),
    ]

    name = models.CharField(max_length=100, blank=True, default='')
    weekday = models.IntegerField(
        choices=WEEKDAY_CHOICES,
        help_text="Day of week (0=Monday, 6=Sunday)"
    )
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        ordering = ['weekday', 'start_time']

    def __str__(self):
        return self.name or f"{self.weekday_name} {_hhmm(self.start_time)}-{_hhmm(self.end_time)}"

    @property
    def weekday_name(self):
        """Get human-readable weekday name."""
        return dict(self.WEEKDAY_CHOICES).get(self.weekday, 'Unknown')

    def clean(self):
        super().clean()

        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError({
                'end_time': 'End time must be after start time.'
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_value(self) -> types.ScheduleSlot:
        return types.ScheduleSlot(
            id=self.pk,
            weekday=Weekday(self.weekday),
            start_time=_hhmm(self.start_time),
            end_time=_hhmm(self.end_time),
        )


class Holiday(models.Model):
    """
    A date on which no classes are generated.

    Depending on ``date_type`` the rule is a specific day (day/month/year),
    a yearly day (day/month) or an inclusive date range. An empty location
    makes the holiday apply to every classroom.
    """

    name = models.CharField(max_length=200)
    date_type = models.CharField(max_length=20, choices=HOLIDAY_TYPE_CHOICES)
    day = models.PositiveSmallIntegerField(null=True, blank=True)
    month = models.PositiveSmallIntegerField(null=True, blank=True)
    year = models.PositiveIntegerField(null=True, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    location = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Only classrooms at this location are affected (blank = everywhere)"
    )

    objects = HolidayManager()

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def clean(self):
        """Require the fields the holiday type needs."""
        super().clean()

        errors = {}
        if self.date_type == HolidayDateType.SPECIFIC.value:
            required = ['day', 'month', 'year']
        elif self.date_type == HolidayDateType.RECURRING.value:
            required = ['day', 'month']
        else:
            required = ['start_date', 'end_date']
        for field_name in required:
            if getattr(self, field_name) is None:
                errors[field_name] = f'Required for {self.get_date_type_display().lower()} holidays.'

        if self.start_date and self.end_date and self.end_date < self.start_date:
            errors['end_date'] = 'End date must not be before start date.'
        if self.month is not None and not 1 <= self.month <= 12:
            errors['month'] = 'Month must be between 1 and 12.'
        if self.day is not None and not 1 <= self.day <= 31:
            errors['day'] = 'Day must be between 1 and 31.'

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_value(self) -> types.HolidayRule:
        return types.HolidayRule(
            id=self.pk,
            name=self.name,
            date=types.HolidayDate(
                type=self.date_type,
                day=self.day,
                month=self.month,
                year=self.year,
                start_date=self.start_date,
                end_date=self.end_date,
            ),
            location=self.location or None,
        )


class Classroom(models.Model):
    name = models.CharField(max_length=100)
    location = models.CharField(max_length=200, blank=True, default='')
    capacity = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.location})" if self.location else self.name

    def to_value(self) -> types.Classroom:
        return types.Classroom(id=self.pk, name=self.name, location=self.location or None)


class Course(models.Model):
    """
    A course and the window its classes are generated from.

    Classes are materialized in CourseClass; ``classes_count`` caches how
    many the current configuration implies.
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    teacher_id = models.PositiveIntegerField(null=True, blank=True)
    classroom = models.ForeignKey(
        Classroom,
        on_delete=models.SET_NULL,
        related_name='courses',
        null=True,
        blank=True
    )
    schedules = models.ManyToManyField(WeekSchedule, related_name='courses', blank=True)

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    classes_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()

        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({
                'end_date': 'End date must not be before start date.'
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_value(self) -> types.CourseWindow:
        schedule_ids = tuple(self.schedules.values_list('id', flat=True)) if self.pk else ()
        return types.CourseWindow(
            id=self.pk,
            start_date=self.start_date,
            end_date=self.end_date,
            schedule_ids=schedule_ids,
            classroom_id=self.classroom_id,
            teacher_id=self.teacher_id,
        )


class Enrollment(models.Model):
    """A student's enrollment in a course."""

    student_id = models.PositiveIntegerField()
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='enrollments')
    enrollment_date = models.DateField()
    is_active = models.BooleanField(default=True)
    cancellation_date = models.DateField(null=True, blank=True)

    objects = EnrollmentManager()

    class Meta:
        ordering = ['enrollment_date']
        indexes = [
            models.Index(fields=['course', 'is_active'], name='enrollment_course_active_idx'),
        ]

    def __str__(self):
        return f"Student {self.student_id} in {self.course_id}"

    def to_value(self) -> types.EnrollmentWindow:
        return types.EnrollmentWindow(
            student_id=self.student_id,
            course_id=self.course_id,
            enrollment_date=self.enrollment_date,
            is_active=self.is_active,
            cancellation_date=self.cancellation_date,
        )


class CourseClass(models.Model):
    """
    A materialized class session of a course.

    The primary key is "{course_id}-{YYYY-MM-DD}", so a course has at most
    one class per date. Reconciliation adds and deletes rows but never
    rewrites existing ones, keeping manual edits.
    """

    id = models.CharField(max_length=64, primary_key=True)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='classes')
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    teacher_id = models.PositiveIntegerField(null=True, blank=True)
    is_substitution = models.BooleanField(default=False)

    status = models.CharField(
        max_length=20,
        choices=CLASS_STATUS_CHOICES,
        default=ClassStatus.PENDING.value
    )
    internal_comment = models.TextField(blank=True, default='')
    public_comment = models.TextField(blank=True, default='')
    attendance_initialized = models.BooleanField(
        default=False,
        help_text="Set the first time the class is marked done and default attendance is created"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CourseClassManager()

    class Meta:
        ordering = ['date', 'start_time']
        indexes = [
            models.Index(fields=['course', 'date'], name='course_class_course_date_idx'),
            models.Index(fields=['date', 'status'], name='course_class_date_status_idx'),
        ]

    def __str__(self):
        status_str = f" [{self.status}]" if self.status != ClassStatus.PENDING.value else ""
        return f"{self.course_id} - {self.date.isoformat()} {_hhmm(self.start_time)}{status_str}"

    def clean(self):
        super().clean()

        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError({
                'end_time': 'End time must be after start time.'
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_value(self) -> types.ClassSession:
        return types.ClassSession(
            id=self.pk,
            course_id=self.course_id,
            date=self.date,
            start_time=_hhmm(self.start_time),
            end_time=_hhmm(self.end_time),
            teacher_id=self.teacher_id,
            is_substitution=self.is_substitution,
            status=ClassStatus(self.status),
            internal_comment=self.internal_comment,
            public_comment=self.public_comment,
            attendance_initialized=self.attendance_initialized,
        )

    @classmethod
    def from_value(cls, session: types.ClassSession) -> 'CourseClass':
        """Build an unsaved row from a generated session."""
        return cls(
            id=session.id,
            course_id=session.course_id,
            date=session.date,
            start_time=_time(session.start_time),
            end_time=_time(session.end_time),
            teacher_id=session.teacher_id,
            is_substitution=session.is_substitution,
            status=ClassStatus(session.status).value,
            internal_comment=session.internal_comment,
            public_comment=session.public_comment,
            attendance_initialized=session.attendance_initialized,
        )


class AttendanceRecord(models.Model):
    """Attendance of one student at one class."""

    id = models.CharField(max_length=96, primary_key=True)
    course_class = models.ForeignKey(
        CourseClass,
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )
    student_id = models.PositiveIntegerField()
    attended = models.BooleanField(default=False)
    late = models.CharField(max_length=20, choices=LATE_CHOICES, default=LateType.NO.value)
    absence_justified = models.BooleanField(default=False)
    homework_done = models.BooleanField(default=False)
    comments = models.TextField(blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=ATTENDANCE_STATUS_CHOICES,
        default=AttendanceStatus.PENDING.value
    )

    objects = AttendanceRecordManager()

    class Meta:
        ordering = ['course_class', 'student_id']
        constraints = [
            models.UniqueConstraint(
                fields=['course_class', 'student_id'],
                name='unique_attendance_per_student_class'
            ),
        ]

    def __str__(self):
        return f"Student {self.student_id} at {self.course_class_id} [{self.status}]"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def to_value(self) -> types.AttendanceRecord:
        return types.AttendanceRecord(
            id=self.pk,
            session_id=self.course_class_id,
            student_id=self.student_id,
            attended=self.attended,
            late=LateType(self.late),
            absence_justified=self.absence_justified,
            homework_done=self.homework_done,
            comments=self.comments,
            status=AttendanceStatus(self.status),
        )

    @classmethod
    def from_value(cls, record: types.AttendanceRecord) -> 'AttendanceRecord':
        return cls(
            id=record.id,
            course_class_id=record.session_id,
            student_id=record.student_id,
            attended=record.attended,
            late=LateType(record.late).value,
            absence_justified=record.absence_justified,
            homework_done=record.homework_done,
            comments=record.comments,
            status=AttendanceStatus(record.status).value,
        )
