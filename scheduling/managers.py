"""
Custom managers and querysets for scheduling models.

QuerySets define chainable query methods.
Managers use QuerySets to enable method chaining.
No business logic should be here - only query operations.
"""

from django.db import models

from .types import ClassStatus


class HolidayQuerySet(models.QuerySet):
    """Custom queryset for Holiday model with chainable methods."""

    def global_only(self):
        """Get holidays that apply to every location."""
        return self.filter(location='')

    def for_location(self, location):
        """
        Get holidays that apply to a location (global ones included).

        Args:
            location: location string of a classroom
        """
        return self.filter(models.Q(location='') | models.Q(location=location))


class EnrollmentQuerySet(models.QuerySet):
    """Custom queryset for Enrollment model with chainable methods."""

    def active(self):
        """Get enrollments that are not cancelled."""
        return self.filter(is_active=True)

    def for_course(self, course):
        """
        Get enrollments of a course.

        Args:
            course: Course instance or primary key
        """
        return self.filter(course=course)


class CourseClassQuerySet(models.QuerySet):
    """Custom queryset for CourseClass model with chainable methods."""

    def for_course(self, course):
        """
        Get all classes of a course.

        Args:
            course: Course instance or primary key
        """
        return self.filter(course=course)

    def pending(self):
        return self.filter(status=ClassStatus.PENDING.value)

    def done(self):
        return self.filter(status=ClassStatus.DONE.value)

    def cancelled(self):
        return self.filter(status=ClassStatus.CANCELLED.value)

    def in_range(self, start_date, end_date):
        """
        Get classes within a date range (inclusive).

        Args:
            start_date: date object
            end_date: date object
        """
        return self.filter(date__gte=start_date, date__lte=end_date)


class AttendanceRecordQuerySet(models.QuerySet):
    """Custom queryset for AttendanceRecord model with chainable methods."""

    def for_class(self, course_class):
        """
        Get attendance rows of a class.

        Args:
            course_class: CourseClass instance or primary key
        """
        return self.filter(course_class=course_class)

    def for_student(self, student_id):
        return self.filter(student_id=student_id)


class HolidayManager(models.Manager):
    """Custom manager for Holiday model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return HolidayQuerySet(self.model, using=self._db)

    def global_only(self):
        """Get holidays that apply to every location."""
        return self.get_queryset().global_only()

    def for_location(self, location):
        return self.get_queryset().for_location(location)


class EnrollmentManager(models.Manager):
    """Custom manager for Enrollment model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return EnrollmentQuerySet(self.model, using=self._db)

    def active(self):
        """Get enrollments that are not cancelled."""
        return self.get_queryset().active()

    def for_course(self, course):
        return self.get_queryset().for_course(course)


class CourseClassManager(models.Manager):
    """Custom manager for CourseClass model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return CourseClassQuerySet(self.model, using=self._db)

    def for_course(self, course):
        return self.get_queryset().for_course(course)

    def pending(self):
        return self.get_queryset().pending()

    def done(self):
        return self.get_queryset().done()

    def cancelled(self):
        return self.get_queryset().cancelled()

    def in_range(self, start_date, end_date):
        """
        Get classes within a date range (inclusive).

        Args:
            start_date: date object
            end_date: date object
        """
        return self.get_queryset().in_range(start_date, end_date)


class AttendanceRecordManager(models.Manager):
    """Custom manager for AttendanceRecord model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return AttendanceRecordQuerySet(self.model, using=self._db)

    def for_class(self, course_class):
        return self.get_queryset().for_class(course_class)

    def for_student(self, student_id):
        return self.get_queryset().for_student(student_id)
