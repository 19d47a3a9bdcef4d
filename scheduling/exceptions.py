"""
Errors and warnings raised by the class calendar.
"""


class SchedulingError(Exception):
    """Base class for class calendar errors."""
    code = 'scheduling_error'


class MalformedCourseWindow(SchedulingError, ValueError):
    """A course start or end date is missing or cannot be parsed."""
    code = 'malformed_course_window'

    def __init__(self, field_name, value):
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Course {field_name} must be an ISO date (YYYY-MM-DD), got: {value!r}"
        )


class ReconciliationInProgress(SchedulingError):
    """Another reconciliation holds the lock for the same course."""
    code = 'reconciliation_in_progress'

    def __init__(self, course_id):
        self.course_id = course_id
        super().__init__(
            f"A class calendar update for course {course_id} is already in progress."
        )


class InvalidClassStatus(SchedulingError, ValueError):
    """A class status that is not one of the known statuses."""
    code = 'invalid_class_status'

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown class status: {value!r}")


class InvalidDateRange(SchedulingError, ValueError):
    """A date range whose start is after its end."""
    code = 'invalid_date_range'

    def __init__(self, start_date, end_date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Start date {start_date} must not be after end date {end_date}")


class ClassAlreadyExists(SchedulingError):
    """A course already has a stored class with the same id."""
    code = 'class_already_exists'

    def __init__(self, class_id):
        self.class_id = class_id
        super().__init__(f"Class {class_id} already exists.")


class ValidationWarning(UserWarning):
    """Ambiguous but usable configuration, e.g. two slots on one weekday."""
