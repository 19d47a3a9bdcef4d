"""
Tests for the academy class calendar.

Tests cover:
- Holiday matching (specific, recurring, range, location filter, malformed rules)
- Class generation from a course window
- Reconciliation of generated classes against stored ones
- Attendance changes after a class status edit
- Adding, rescheduling and deleting classes by hand
- Models, service layer and API endpoints
- Management commands
"""

from datetime import date, time
from io import StringIO
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from . import services
from .attendance import attendance_status_for, on_session_status_change
from .exception_handlers import api_exception_handler
from .exceptions import (
    ClassAlreadyExists,
    InvalidClassStatus,
    InvalidDateRange,
    MalformedCourseWindow,
    ReconciliationInProgress,
    ValidationWarning,
)
from .generator import count_course_classes, generate_course_classes
from .holidays import holiday_problem, is_excluded, matching_rule, usable_rules
from .models import AttendanceRecord, Classroom, Course, CourseClass, Enrollment, Holiday, WeekSchedule
from .reconciler import reconcile
from .types import (
    AttendanceRecord as AttendanceValue,
    AttendanceStatus,
    ClassSession,
    ClassStatus,
    Classroom as ClassroomValue,
    CourseClassUpdateData,
    CourseUpdateData,
    CourseWindow,
    EnrollmentWindow,
    HolidayDate,
    HolidayDateType,
    HolidayRule,
    LateType,
    ScheduleSlot,
    Weekday,
)


MONDAY_SLOT = ScheduleSlot(id=1, weekday=Weekday.MONDAY, start_time='16:00', end_time='17:30')
WEDNESDAY_SLOT = ScheduleSlot(id=2, weekday=Weekday.WEDNESDAY, start_time='18:00', end_time='19:00')

OCTOBER_COURSE = CourseWindow(
    id=5,
    start_date='2024-10-01',
    end_date='2024-10-31',
    schedule_ids=(1,),
    classroom_id=None,
    teacher_id=7,
)


def range_holiday(start, end, location=None, rule_id=1):
    return HolidayRule(
        id=rule_id,
        name='Closure',
        date=HolidayDate(type=HolidayDateType.RANGE, start_date=start, end_date=end),
        location=location,
    )


def session(day, status=ClassStatus.PENDING, course_id=5, initialized=False):
    return ClassSession(
        id=f"{course_id}-{day.isoformat()}",
        course_id=course_id,
        date=day,
        start_time='16:00',
        end_time='17:30',
        teacher_id=7,
        status=status,
        attendance_initialized=initialized,
    )


class HolidayMatcherTests(SimpleTestCase):
    """Test holiday matching."""

    def test_specific_holiday_matches_exact_date_only(self):
        rule = HolidayRule(1, 'Election day', HolidayDate(HolidayDateType.SPECIFIC, day=6, month=11, year=2024))

        self.assertTrue(is_excluded(date(2024, 11, 6), [rule]))
        self.assertFalse(is_excluded(date(2025, 11, 6), [rule]))
        self.assertFalse(is_excluded(date(2024, 11, 7), [rule]))

    def test_recurring_holiday_ignores_year(self):
        rule = HolidayRule(1, 'Christmas', HolidayDate(HolidayDateType.RECURRING, day=25, month=12))

        self.assertTrue(is_excluded(date(2024, 12, 25), [rule]))
        self.assertTrue(is_excluded(date(2031, 12, 25), [rule]))
        self.assertFalse(is_excluded(date(2024, 12, 24), [rule]))

    def test_range_holiday_is_inclusive(self):
        rule = range_holiday('2024-12-23', '2025-01-06')

        self.assertTrue(is_excluded(date(2024, 12, 23), [rule]))
        self.assertTrue(is_excluded(date(2025, 1, 1), [rule]))
        self.assertTrue(is_excluded(date(2025, 1, 6), [rule]))
        self.assertFalse(is_excluded(date(2024, 12, 22), [rule]))
        self.assertFalse(is_excluded(date(2025, 1, 7), [rule]))

    def test_range_holiday_accepts_date_objects(self):
        rule = range_holiday(date(2024, 10, 14), date(2024, 10, 14))
        self.assertTrue(is_excluded(date(2024, 10, 14), [rule]))

    def test_location_filter(self):
        """A located holiday only applies to courses at that location."""
        rule = range_holiday('2024-10-14', '2024-10-14', location='North campus')
        day = date(2024, 10, 14)

        self.assertTrue(is_excluded(day, [rule], 'North campus'))
        self.assertFalse(is_excluded(day, [rule], 'South campus'))
        self.assertFalse(is_excluded(day, [rule], None))

    def test_global_holiday_applies_everywhere(self):
        rule = range_holiday('2024-10-14', '2024-10-14')

        self.assertTrue(is_excluded(date(2024, 10, 14), [rule], 'South campus'))
        self.assertTrue(is_excluded(date(2024, 10, 14), [rule], None))

    def test_first_matching_rule_is_returned(self):
        first = range_holiday('2024-10-01', '2024-10-31', rule_id=1)
        second = range_holiday('2024-10-14', '2024-10-14', rule_id=2)

        self.assertEqual(matching_rule(date(2024, 10, 14), [first, second]), first)
        self.assertIsNone(matching_rule(date(2024, 11, 14), [first, second]))

    def test_malformed_rules_never_match(self):
        rules = [
            HolidayRule(1, 'No end', HolidayDate(HolidayDateType.RANGE, start_date='2024-10-14')),
            HolidayRule(2, 'No year', HolidayDate(HolidayDateType.SPECIFIC, day=14, month=10)),
            HolidayRule(3, 'Bad bounds', HolidayDate(HolidayDateType.RANGE, start_date='soon', end_date='later')),
            HolidayRule(4, 'Bad type', HolidayDate('weekly', day=14, month=10)),
        ]

        self.assertFalse(is_excluded(date(2024, 10, 14), rules))

    def test_holiday_problem_describes_malformed_rule(self):
        rule = HolidayRule(1, 'No end', HolidayDate(HolidayDateType.RANGE, start_date='2024-10-14'))

        self.assertIn('end_date', holiday_problem(rule))
        self.assertIsNone(holiday_problem(range_holiday('2024-10-14', '2024-10-15')))

    def test_usable_rules_drops_and_logs_malformed(self):
        good = range_holiday('2024-10-14', '2024-10-14')
        bad = HolidayRule(2, 'No day', HolidayDate(HolidayDateType.RECURRING, month=10))

        with self.assertLogs('scheduling.holidays', level='WARNING') as logs:
            rules = usable_rules([good, bad])

        self.assertEqual(rules, [good])
        self.assertIn('No day', logs.output[0])


class ClassGeneratorTests(SimpleTestCase):
    """Test class generation from a course window."""

    def test_october_mondays_minus_holiday(self):
        """Mondays of October 2024 without the 14th."""
        classes = generate_course_classes(
            OCTOBER_COURSE,
            [MONDAY_SLOT],
            [range_holiday('2024-10-14', '2024-10-14')],
            [],
            today=date(2024, 1, 1)
        )

        self.assertEqual(
            [c.id for c in classes],
            ['5-2024-10-07', '5-2024-10-21', '5-2024-10-28']
        )
        first = classes[0]
        self.assertEqual(first.course_id, 5)
        self.assertEqual(first.date, date(2024, 10, 7))
        self.assertEqual((first.start_time, first.end_time), ('16:00', '17:30'))
        self.assertEqual(first.teacher_id, 7)
        self.assertFalse(first.is_substitution)
        self.assertEqual(first.status, ClassStatus.PENDING)

    def test_status_split_on_reference_day(self):
        """Classes strictly before today are done; today and later are pending."""
        classes = generate_course_classes(
            OCTOBER_COURSE, [MONDAY_SLOT], [], [], today=date(2024, 10, 14)
        )

        statuses = {c.date.day: c.status for c in classes}
        self.assertEqual(statuses[7], ClassStatus.DONE)
        self.assertEqual(statuses[14], ClassStatus.PENDING)
        self.assertEqual(statuses[28], ClassStatus.PENDING)

    def test_single_day_window(self):
        one_day = CourseWindow(id=5, start_date='2024-10-07', end_date='2024-10-07', schedule_ids=(1,))
        classes = generate_course_classes(one_day, [MONDAY_SLOT], [], [], today=date(2024, 1, 1))
        self.assertEqual(len(classes), 1)

    def test_window_bounds_shifted_off_the_weekday(self):
        tuesday_only = CourseWindow(id=5, start_date='2024-10-08', end_date='2024-10-08', schedule_ids=(1,))
        sunday_only = CourseWindow(id=5, start_date='2024-10-06', end_date='2024-10-06', schedule_ids=(1,))

        self.assertEqual(generate_course_classes(tuesday_only, [MONDAY_SLOT], [], []), [])
        self.assertEqual(generate_course_classes(sunday_only, [MONDAY_SLOT], [], []), [])

    def test_range_holiday_removes_only_that_class(self):
        without = generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], [], today=date(2024, 1, 1))
        with_holiday = generate_course_classes(
            OCTOBER_COURSE, [MONDAY_SLOT], [range_holiday('2024-10-21', '2024-10-21')], [],
            today=date(2024, 1, 1)
        )

        self.assertEqual(len(without), 4)
        self.assertEqual([c for c in without if c.date != date(2024, 10, 21)], with_holiday)

    def test_missing_window_returns_empty(self):
        no_start = CourseWindow(id=5, start_date=None, end_date='2024-10-31', schedule_ids=(1,))
        no_end = CourseWindow(id=5, start_date='2024-10-01', end_date=None, schedule_ids=(1,))
        no_slots = CourseWindow(id=5, start_date='2024-10-01', end_date='2024-10-31', schedule_ids=())
        unknown_slots = CourseWindow(id=5, start_date='2024-10-01', end_date='2024-10-31', schedule_ids=(99,))

        for course in (no_start, no_end, no_slots, unknown_slots):
            self.assertEqual(generate_course_classes(course, [MONDAY_SLOT], [], []), [])

    def test_end_before_start_returns_empty(self):
        backwards = CourseWindow(id=5, start_date='2024-10-31', end_date='2024-10-01', schedule_ids=(1,))
        self.assertEqual(generate_course_classes(backwards, [MONDAY_SLOT], [], []), [])

    def test_unparsable_dates_raise(self):
        bad_start = CourseWindow(id=5, start_date='2024-13-40', end_date='2024-10-31', schedule_ids=(1,))
        bad_end = CourseWindow(id=5, start_date='2024-10-01', end_date='end of term', schedule_ids=(1,))

        with self.assertRaises(MalformedCourseWindow) as ctx:
            generate_course_classes(bad_start, [MONDAY_SLOT], [], [])
        self.assertEqual(ctx.exception.field_name, 'start_date')

        with self.assertRaises(MalformedCourseWindow) as ctx:
            generate_course_classes(bad_end, [MONDAY_SLOT], [], [])
        self.assertEqual(ctx.exception.field_name, 'end_date')

    def test_two_slots_same_weekday_last_wins(self):
        """Two slots on one weekday: a warning, and the later slot is used."""
        early = ScheduleSlot(id=1, weekday=Weekday.MONDAY, start_time='10:00', end_time='11:00')
        late = ScheduleSlot(id=3, weekday=Weekday.MONDAY, start_time='18:00', end_time='19:00')
        course = CourseWindow(id=5, start_date='2024-10-01', end_date='2024-10-31', schedule_ids=(1, 3))

        with self.assertWarns(ValidationWarning):
            classes = generate_course_classes(course, [early, late], [], [])

        self.assertEqual(len(classes), 4)
        self.assertTrue(all(c.start_time == '18:00' for c in classes))

    def test_weekday_names_are_accepted(self):
        lunes = ScheduleSlot(id=1, weekday='Lunes', start_time='16:00', end_time='17:30')
        classes = generate_course_classes(OCTOBER_COURSE, [lunes], [], [])
        self.assertEqual(len(classes), 4)

    def test_location_holiday_needs_matching_classroom(self):
        located = range_holiday('2024-10-14', '2024-10-14', location='North campus')
        at_north = CourseWindow(id=5, start_date='2024-10-01', end_date='2024-10-31', schedule_ids=(1,), classroom_id=3)
        classrooms = [ClassroomValue(id=3, name='Lab', location='North campus')]

        self.assertEqual(len(generate_course_classes(at_north, [MONDAY_SLOT], [located], classrooms)), 3)
        self.assertEqual(len(generate_course_classes(at_north, [MONDAY_SLOT], [located], [])), 4)
        self.assertEqual(len(generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [located], classrooms)), 4)

    def test_two_weekdays_are_ordered_by_date(self):
        course = CourseWindow(id=5, start_date='2024-10-01', end_date='2024-10-31', schedule_ids=(1, 2))
        classes = generate_course_classes(course, [WEDNESDAY_SLOT, MONDAY_SLOT], [], [])

        self.assertEqual(len(classes), 9)
        self.assertEqual([c.date for c in classes], sorted(c.date for c in classes))

    def test_generation_is_deterministic(self):
        args = (OCTOBER_COURSE, [MONDAY_SLOT], [range_holiday('2024-10-14', '2024-10-14')], [])
        self.assertEqual(
            generate_course_classes(*args, today=date(2024, 10, 15)),
            generate_course_classes(*args, today=date(2024, 10, 15))
        )

    def test_count_course_classes(self):
        no_window = CourseWindow(id=5, start_date=None, end_date=None)

        self.assertEqual(count_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], []), 4)
        self.assertEqual(count_course_classes(no_window, [MONDAY_SLOT], [], [], fallback=12), 12)


class ReconcilerTests(SimpleTestCase):
    """Test reconciliation of generated classes against stored ones."""

    def test_stale_and_missing_classes(self):
        persisted = [session(date(2024, 10, 7)), session(date(2024, 10, 14)), session(date(2024, 10, 21))]
        ideal = [session(date(2024, 10, 7)), session(date(2024, 10, 21)), session(date(2024, 10, 28))]

        plan = reconcile(ideal, persisted)

        self.assertEqual([s.id for s in plan.to_delete], ['5-2024-10-14'])
        self.assertEqual([s.id for s in plan.to_add], ['5-2024-10-28'])
        self.assertFalse(plan.is_in_sync)

    def test_reconcile_against_itself_is_empty(self):
        generated = generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], [])

        plan = reconcile(generated, generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], []))

        self.assertEqual(plan.to_add, [])
        self.assertEqual(plan.to_delete, [])
        self.assertTrue(plan.is_in_sync)

    def test_edited_class_is_left_alone(self):
        ideal = generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], [], today=date(2024, 1, 1))
        persisted = list(ideal)
        persisted[1] = session(persisted[1].date, status=ClassStatus.DONE)

        plan = reconcile(ideal, persisted)

        self.assertTrue(plan.is_in_sync)
        self.assertEqual(persisted[1].status, ClassStatus.DONE)

    def test_first_generation_adds_everything(self):
        ideal = generate_course_classes(OCTOBER_COURSE, [MONDAY_SLOT], [], [])

        plan = reconcile(ideal, [])

        self.assertEqual(plan.to_add, ideal)
        self.assertEqual(plan.to_delete, [])


class AttendanceHookTests(SimpleTestCase):
    """Test attendance changes after a class status edit."""

    def setUp(self):
        self.day = date(2024, 10, 21)
        self.enrollments = [
            EnrollmentWindow(student_id=1, course_id=5, enrollment_date=date(2024, 10, 1)),
            EnrollmentWindow(student_id=2, course_id=5, enrollment_date=self.day),
            EnrollmentWindow(student_id=3, course_id=5, enrollment_date=date(2024, 10, 22)),
            EnrollmentWindow(student_id=4, course_id=5, enrollment_date=date(2024, 10, 1), is_active=False),
            EnrollmentWindow(student_id=5, course_id=6, enrollment_date=date(2024, 10, 1)),
            EnrollmentWindow(student_id=6, course_id=5, enrollment_date=date(2024, 9, 1),
                             cancellation_date=date(2024, 10, 15)),
        ]

    def test_status_mapping(self):
        self.assertEqual(attendance_status_for(ClassStatus.DONE), AttendanceStatus.COMPLETED)
        self.assertEqual(attendance_status_for(ClassStatus.CANCELLED), AttendanceStatus.ANNULLED)
        self.assertEqual(attendance_status_for('pending'), AttendanceStatus.PENDING)

    def test_first_done_creates_default_attendance(self):
        """Only active enrollments of the course that started by the class date."""
        changes = on_session_status_change(session(self.day, ClassStatus.DONE), self.enrollments, [])

        self.assertEqual([r.student_id for r in changes.to_create], [1, 2])
        self.assertTrue(changes.mark_initialized)
        record = changes.to_create[0]
        self.assertEqual(record.id, '1-5-2024-10-21')
        self.assertEqual(record.session_id, '5-2024-10-21')
        self.assertTrue(record.attended)
        self.assertEqual(record.late, LateType.NO)
        self.assertFalse(record.absence_justified)
        self.assertFalse(record.homework_done)
        self.assertEqual(record.status, AttendanceStatus.COMPLETED)

    def test_existing_records_get_status_only(self):
        existing = [AttendanceValue(
            id='1-5-2024-10-21', session_id='5-2024-10-21', student_id=1,
            attended=False, late=LateType.MIN_10, comments='Arrived late',
            status=AttendanceStatus.PENDING,
        )]

        changes = on_session_status_change(session(self.day, ClassStatus.DONE), self.enrollments, existing)

        self.assertEqual([r.student_id for r in changes.to_create], [2])
        updated = changes.to_update[0]
        self.assertEqual(updated.status, AttendanceStatus.COMPLETED)
        self.assertFalse(updated.attended)
        self.assertEqual(updated.late, LateType.MIN_10)
        self.assertEqual(updated.comments, 'Arrived late')

    def test_second_done_does_not_create_again(self):
        first = on_session_status_change(session(self.day, ClassStatus.DONE), self.enrollments, [])

        again = on_session_status_change(
            session(self.day, ClassStatus.DONE, initialized=first.mark_initialized),
            self.enrollments,
            first.to_create
        )

        self.assertEqual(again.to_create, [])
        self.assertEqual(len(again.to_update), 2)
        self.assertFalse(again.mark_initialized)

    def test_cancel_and_reopen(self):
        """Cancel annuls rows; reopening an initialized class never recreates defaults."""
        existing = on_session_status_change(
            session(self.day, ClassStatus.DONE), self.enrollments, []
        ).to_create

        cancelled = on_session_status_change(
            session(self.day, ClassStatus.CANCELLED, initialized=True), self.enrollments, existing
        )
        self.assertEqual({r.status for r in cancelled.to_update}, {AttendanceStatus.ANNULLED})
        self.assertEqual(cancelled.to_create, [])

        late_enrollment = EnrollmentWindow(student_id=9, course_id=5, enrollment_date=date(2024, 10, 1))
        reopened = on_session_status_change(
            session(self.day, ClassStatus.DONE, initialized=True),
            self.enrollments + [late_enrollment],
            cancelled.to_update
        )
        self.assertEqual(reopened.to_create, [])
        self.assertEqual({r.status for r in reopened.to_update}, {AttendanceStatus.COMPLETED})

    def test_pending_does_not_create(self):
        changes = on_session_status_change(session(self.day, ClassStatus.PENDING), self.enrollments, [])

        self.assertEqual(changes.to_create, [])
        self.assertEqual(changes.to_update, [])
        self.assertFalse(changes.mark_initialized)

    def test_no_enrollments(self):
        changes = on_session_status_change(session(self.day, ClassStatus.DONE, course_id=42), self.enrollments, [])

        self.assertEqual(changes.to_create, [])
        self.assertEqual(changes.to_update, [])


class ModelTests(TestCase):
    """Test model validation and conversion."""

    def test_holiday_requires_fields_for_its_type(self):
        with self.assertRaises(ValidationError):
            Holiday.objects.create(name='Half range', date_type='range', start_date=date(2024, 10, 14))
        with self.assertRaises(ValidationError):
            Holiday.objects.create(name='No year', date_type='specific', day=1, month=5)

    def test_holiday_to_value(self):
        holiday = Holiday.objects.create(
            name='Local fair', date_type='recurring', day=15, month=8, location='North campus'
        )

        rule = holiday.to_value()

        self.assertEqual(rule.location, 'North campus')
        self.assertTrue(is_excluded(date(2030, 8, 15), [rule], 'North campus'))

    def test_week_schedule_end_after_start(self):
        with self.assertRaises(ValidationError):
            WeekSchedule.objects.create(weekday=0, start_time=time(17, 0), end_time=time(16, 0))

    def test_course_end_not_before_start(self):
        with self.assertRaises(ValidationError):
            Course.objects.create(name='Backwards', start_date=date(2024, 10, 31), end_date=date(2024, 10, 1))

    def test_course_to_value(self):
        slot = WeekSchedule.objects.create(weekday=0, start_time=time(16, 0), end_time=time(17, 30))
        course = Course.objects.create(
            name='Robotics', start_date=date(2024, 10, 1), end_date=date(2024, 10, 31), teacher_id=7
        )
        course.schedules.add(slot)

        window = course.to_value()

        self.assertEqual(window.schedule_ids, (slot.pk,))
        self.assertEqual(window.teacher_id, 7)
        self.assertEqual(slot.to_value().start_time, '16:00')


class ManagerTests(TestCase):
    """Test custom manager methods."""

    def setUp(self):
        self.course = Course.objects.create(name='Robotics')
        for day, class_status in [(7, 'done'), (14, 'cancelled'), (21, 'pending'), (28, 'pending')]:
            CourseClass.objects.create(
                id=f'{self.course.pk}-2024-10-{day:02d}',
                course=self.course,
                date=date(2024, 10, day),
                start_time=time(16, 0),
                end_time=time(17, 30),
                status=class_status,
            )
        Holiday.objects.create(name='Global', date_type='recurring', day=1, month=1)
        Holiday.objects.create(name='North', date_type='recurring', day=2, month=1, location='North campus')
        Holiday.objects.create(name='South', date_type='recurring', day=3, month=1, location='South campus')

    def test_class_status_filters(self):
        self.assertEqual(CourseClass.objects.pending().count(), 2)
        self.assertEqual(CourseClass.objects.done().count(), 1)
        self.assertEqual(CourseClass.objects.cancelled().count(), 1)

    def test_class_range_filter_is_inclusive(self):
        in_range = CourseClass.objects.for_course(self.course).in_range(date(2024, 10, 7), date(2024, 10, 21))
        self.assertEqual(in_range.count(), 3)
        self.assertEqual(in_range.pending().count(), 1)

    def test_holiday_location_filters(self):
        self.assertEqual(list(Holiday.objects.global_only().values_list('name', flat=True)), ['Global'])
        self.assertEqual(
            list(Holiday.objects.for_location('North campus').values_list('name', flat=True)),
            ['Global', 'North']
        )
        self.assertEqual(Holiday.objects.for_location(None).count(), 1)

    def test_enrollment_and_attendance_filters(self):
        Enrollment.objects.create(student_id=1, course=self.course, enrollment_date=date(2024, 9, 1))
        Enrollment.objects.create(
            student_id=2, course=self.course, enrollment_date=date(2024, 9, 1), is_active=False
        )
        AttendanceRecord.objects.create(
            id=f'1-{self.course.pk}-2024-10-07',
            course_class_id=f'{self.course.pk}-2024-10-07',
            student_id=1,
        )

        self.assertEqual(Enrollment.objects.for_course(self.course).active().count(), 1)
        self.assertEqual(AttendanceRecord.objects.for_student(1).count(), 1)
        self.assertEqual(AttendanceRecord.objects.for_student(2).count(), 0)


class CalendarServiceTestCase(TestCase):
    """Shared fixture: an October 2024 Monday course with a closure on the 14th."""

    def setUp(self):
        self.monday = WeekSchedule.objects.create(
            name='Mon 16:00', weekday=0, start_time=time(16, 0), end_time=time(17, 30)
        )
        self.wednesday = WeekSchedule.objects.create(
            name='Wed 18:00', weekday=2, start_time=time(18, 0), end_time=time(19, 0)
        )
        self.classroom = Classroom.objects.create(name='Lab', location='North campus')
        self.course = Course.objects.create(
            name='Robotics',
            start_date=date(2024, 10, 1),
            end_date=date(2024, 10, 31),
            teacher_id=7,
            classroom=self.classroom,
        )
        self.course.schedules.add(self.monday)
        self.closure = Holiday.objects.create(
            name='Closure',
            date_type='range',
            start_date=date(2024, 10, 14),
            end_date=date(2024, 10, 14),
        )


class ReconciliationServiceTests(CalendarServiceTestCase):
    """Test generating and reconciling stored classes."""

    def test_apply_creates_classes(self):
        plan = services.apply_course_reconciliation(self.course, today=date(2024, 10, 15))

        self.assertEqual(len(plan.to_add), 3)
        stored = CourseClass.objects.for_course(self.course)
        self.assertEqual(
            list(stored.values_list('id', flat=True)),
            [f'{self.course.pk}-2024-10-07', f'{self.course.pk}-2024-10-21', f'{self.course.pk}-2024-10-28']
        )
        self.assertEqual(stored.get(date=date(2024, 10, 7)).status, 'done')
        self.assertEqual(stored.get(date=date(2024, 10, 21)).status, 'pending')
        self.course.refresh_from_db()
        self.assertEqual(self.course.classes_count, 3)

    def test_preview_does_not_write(self):
        plan = services.preview_course_reconciliation(self.course)

        self.assertEqual(len(plan.to_add), 3)
        self.assertEqual(CourseClass.objects.count(), 0)

    def test_schedule_change_adds_and_removes(self):
        services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))

        self.closure.delete()
        self.course.end_date = date(2024, 10, 25)
        self.course.save()
        self.course.schedules.add(self.wednesday)

        plan = services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))

        self.assertEqual([s.date for s in plan.to_delete], [date(2024, 10, 28)])
        self.assertEqual(
            [s.date for s in plan.to_add],
            [date(2024, 10, 2), date(2024, 10, 9), date(2024, 10, 14), date(2024, 10, 16), date(2024, 10, 23)]
        )
        self.assertEqual(CourseClass.objects.for_course(self.course).count(), 7)

    def test_edited_classes_survive_reconciliation(self):
        services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))
        edited = CourseClass.objects.get(date=date(2024, 10, 21))
        services.update_course_class(edited, CourseClassUpdateData(status='done', internal_comment='Robot race'))

        plan = services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))

        self.assertTrue(plan.is_in_sync)
        edited.refresh_from_db()
        self.assertEqual(edited.status, 'done')
        self.assertEqual(edited.internal_comment, 'Robot race')

    def test_location_holiday_applies_through_classroom(self):
        Holiday.objects.create(
            name='Campus fair', date_type='specific', day=21, month=10, year=2024, location='North campus'
        )
        Holiday.objects.create(
            name='Other campus', date_type='specific', day=28, month=10, year=2024, location='South campus'
        )

        classes = services.generate_classes_for_course(self.course)

        self.assertEqual([c.date for c in classes], [date(2024, 10, 7), date(2024, 10, 28)])

    def test_locked_course_raises(self):
        with mock.patch.object(Course.objects, 'select_for_update', side_effect=DatabaseError('locked')):
            with self.assertRaises(ReconciliationInProgress):
                services.apply_course_reconciliation(self.course)

        self.assertEqual(CourseClass.objects.count(), 0)

    def test_create_course_generates_classes(self):
        course, created = services.create_course(
            name='Chess',
            start_date=date(2024, 10, 1),
            end_date=date(2024, 10, 31),
            schedule_ids=[self.wednesday.pk],
            teacher_id=3,
        )

        self.assertEqual(created, 5)
        self.assertEqual(course.classes_count, 5)

    def test_create_course_without_generation(self):
        course, created = services.create_course(
            name='Chess',
            start_date=date(2024, 10, 1),
            end_date=date(2024, 10, 31),
            schedule_ids=[self.wednesday.pk],
            generate_classes=False,
        )

        self.assertEqual(created, 0)
        self.assertEqual(course.classes_count, 5)
        self.assertEqual(CourseClass.objects.for_course(course).count(), 0)

    def test_update_course_refreshes_count_only(self):
        services.apply_course_reconciliation(self.course)

        services.update_course(self.course, CourseUpdateData(end_date=date(2024, 10, 20)))

        self.course.refresh_from_db()
        self.assertEqual(self.course.classes_count, 1)
        self.assertEqual(CourseClass.objects.for_course(self.course).count(), 3)

    def test_classes_in_range(self):
        services.apply_course_reconciliation(self.course, today=date(2024, 10, 15))

        self.assertEqual(len(services.get_course_classes_in_range(date(2024, 10, 1), date(2024, 10, 21))), 2)
        self.assertEqual(
            len(services.get_course_classes_in_range(date(2024, 10, 1), date(2024, 10, 31), 'done')), 1
        )
        with self.assertRaises(InvalidDateRange):
            services.get_course_classes_in_range(date(2024, 10, 31), date(2024, 10, 1))


class AttendanceServiceTests(CalendarServiceTestCase):
    """Test attendance rows written after class status edits."""

    def setUp(self):
        super().setUp()
        services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))
        self.course_class = CourseClass.objects.get(date=date(2024, 10, 21))
        Enrollment.objects.create(student_id=1, course=self.course, enrollment_date=date(2024, 10, 1))
        Enrollment.objects.create(student_id=2, course=self.course, enrollment_date=date(2024, 10, 25))
        Enrollment.objects.create(
            student_id=3, course=self.course, enrollment_date=date(2024, 10, 1), is_active=False
        )

    def test_done_creates_attendance(self):
        services.change_course_class_status(self.course_class, ClassStatus.DONE)

        records = AttendanceRecord.objects.for_class(self.course_class)
        self.assertEqual(list(records.values_list('student_id', flat=True)), [1])
        record = records.get()
        self.assertEqual(record.pk, f'1-{self.course_class.pk}')
        self.assertTrue(record.attended)
        self.assertEqual(record.status, 'completed')
        self.course_class.refresh_from_db()
        self.assertTrue(self.course_class.attendance_initialized)

    def test_status_changes_follow_to_attendance(self):
        services.change_course_class_status(self.course_class, 'done')
        record = AttendanceRecord.objects.get(student_id=1)
        record.attended = False
        record.save()

        services.change_course_class_status(self.course_class, 'cancelled')
        record.refresh_from_db()
        self.assertEqual(record.status, 'annulled')
        self.assertFalse(record.attended)

        services.change_course_class_status(self.course_class, 'pending')
        record.refresh_from_db()
        self.assertEqual(record.status, 'pending')

    def test_reopened_class_does_not_recreate_attendance(self):
        services.change_course_class_status(self.course_class, 'done')
        AttendanceRecord.objects.all().delete()
        Enrollment.objects.create(student_id=4, course=self.course, enrollment_date=date(2024, 10, 1))

        services.change_course_class_status(self.course_class, 'pending')
        services.change_course_class_status(self.course_class, 'done')

        self.assertEqual(AttendanceRecord.objects.count(), 0)

    def test_comment_edit_does_not_touch_attendance(self):
        services.update_course_class(self.course_class, CourseClassUpdateData(public_comment='Bring laptops'))

        self.assertEqual(AttendanceRecord.objects.count(), 0)
        self.course_class.refresh_from_db()
        self.assertFalse(self.course_class.attendance_initialized)
        self.assertEqual(self.course_class.public_comment, 'Bring laptops')

    def test_unchanged_status_is_a_no_op(self):
        changes = services.change_course_class_status(self.course_class, 'pending')

        self.assertEqual(changes.to_create, [])
        self.assertEqual(changes.to_update, [])

    def test_unknown_status_raises(self):
        with self.assertRaises(InvalidClassStatus):
            services.change_course_class_status(self.course_class, 'postponed')


class ClassManagementServiceTests(CalendarServiceTestCase):
    """Test adding, rescheduling and deleting classes by hand."""

    def setUp(self):
        super().setUp()
        services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))

    def test_add_one_off_class(self):
        course_class = services.create_course_class(
            self.course, date(2024, 10, 9), '18:00', '19:00'
        )

        self.assertEqual(course_class.pk, f'{self.course.pk}-2024-10-09')
        self.assertEqual(course_class.teacher_id, 7)
        self.assertEqual(course_class.status, 'pending')
        self.assertEqual(CourseClass.objects.for_course(self.course).count(), 4)

        plan = services.preview_course_reconciliation(self.course)
        self.assertEqual([s.id for s in plan.to_delete], [course_class.pk])

    def test_added_class_on_scheduled_date_is_kept(self):
        services.delete_course_classes([f'{self.course.pk}-2024-10-21'])
        services.create_course_class(
            self.course, date(2024, 10, 21), time(16, 30), time(18, 0), teacher_id=9
        )

        plan = services.apply_course_reconciliation(self.course)

        self.assertTrue(plan.is_in_sync)
        self.assertEqual(CourseClass.objects.get(date=date(2024, 10, 21)).teacher_id, 9)

    def test_add_existing_class_raises(self):
        with self.assertRaises(ClassAlreadyExists):
            services.create_course_class(self.course, date(2024, 10, 7), '16:00', '17:30')

    def test_add_class_ending_before_start_raises(self):
        with self.assertRaises(ValidationError):
            services.create_course_class(self.course, date(2024, 10, 9), '19:00', '18:00')

        self.assertEqual(CourseClass.objects.for_course(self.course).count(), 3)

    def test_rescheduled_class_survives_reconciliation(self):
        class_id = f'{self.course.pk}-2024-10-21'
        course_class = CourseClass.objects.get(pk=class_id)

        services.update_course_class(course_class, CourseClassUpdateData(date=date(2024, 10, 22), teacher_id=9))
        plan = services.apply_course_reconciliation(self.course)

        self.assertTrue(plan.is_in_sync)
        course_class = CourseClass.objects.get(pk=class_id)
        self.assertEqual(course_class.date, date(2024, 10, 22))
        self.assertEqual(course_class.teacher_id, 9)

    def test_update_ending_before_start_is_rolled_back(self):
        course_class = CourseClass.objects.get(date=date(2024, 10, 21))

        with self.assertRaises(ValidationError):
            services.update_course_class(course_class, CourseClassUpdateData(end_time=time(15, 0)))

        course_class.refresh_from_db()
        self.assertEqual(course_class.end_time, time(17, 30))

    def test_delete_classes_removes_attendance(self):
        Enrollment.objects.create(student_id=1, course=self.course, enrollment_date=date(2024, 10, 1))
        course_class = CourseClass.objects.get(date=date(2024, 10, 7))
        services.change_course_class_status(course_class, 'done')

        deleted = services.delete_course_classes([course_class.pk, 'missing-id'])

        self.assertEqual(deleted, 1)
        self.assertEqual(AttendanceRecord.objects.count(), 0)
        self.assertEqual(CourseClass.objects.for_course(self.course).count(), 2)

    def test_clearing_course_window(self):
        services.update_course(self.course, CourseUpdateData(cleared_fields=('start_date', 'end_date')))

        self.course.refresh_from_db()
        self.assertIsNone(self.course.start_date)
        self.assertIsNone(self.course.end_date)
        plan = services.preview_course_reconciliation(self.course)
        self.assertEqual(len(plan.to_delete), 3)
        self.assertEqual(plan.to_add, [])


class ExceptionHandlerTests(SimpleTestCase):
    """Test which errors become client errors."""

    def test_service_errors_are_client_errors(self):
        response = api_exception_handler(InvalidDateRange(date(2024, 10, 31), date(2024, 10, 1)), {})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_date_range')

    def test_duplicate_class_is_a_conflict(self):
        response = api_exception_handler(ClassAlreadyExists('5-2024-10-07'), {})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_bare_value_error_is_not_handled(self):
        self.assertIsNone(api_exception_handler(ValueError('bug'), {}))


class CourseAPITests(APITestCase):
    """Test course and reconciliation API endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.monday = WeekSchedule.objects.create(weekday=0, start_time=time(16, 0), end_time=time(17, 30))
        Holiday.objects.create(
            name='Closure', date_type='range', start_date=date(2024, 10, 14), end_date=date(2024, 10, 14)
        )
        self.course = Course.objects.create(
            name='Robotics', start_date=date(2024, 10, 1), end_date=date(2024, 10, 31), teacher_id=7
        )
        self.course.schedules.add(self.monday)

    def test_create_course(self):
        data = {
            "name": "Chess",
            "schedule_ids": [self.monday.pk],
            "start_date": "2024-10-01",
            "end_date": "2024-10-31",
            "teacher_id": 3,
        }

        response = self.client.post('/api/courses/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['classes_created'], 3)
        self.assertEqual(response.data['course']['schedule_ids'], [self.monday.pk])

    def test_create_course_rejects_backwards_window(self):
        data = {"name": "Chess", "start_date": "2024-10-31", "end_date": "2024-10-01"}

        response = self.client.post('/api/courses/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_courses(self):
        response = self.client.get('/api/courses/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_update_course(self):
        response = self.client.patch(
            f'/api/courses/{self.course.pk}/', {"end_date": "2024-10-20"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['classes_count'], 1)

    def test_clear_course_window(self):
        self.client.post(f'/api/courses/{self.course.pk}/reconciliation/')

        response = self.client.patch(
            f'/api/courses/{self.course.pk}/',
            {"start_date": None, "end_date": None, "teacher_id": None},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['start_date'])
        self.assertIsNone(response.data['end_date'])
        self.assertIsNone(response.data['teacher_id'])

        response = self.client.get(f'/api/courses/{self.course.pk}/reconciliation/')
        self.assertEqual(
            [s['date'] for s in response.data['to_delete']],
            ['2024-10-07', '2024-10-21', '2024-10-28']
        )
        self.assertEqual(response.data['to_add'], [])

    def test_omitted_fields_are_kept(self):
        response = self.client.patch(f'/api/courses/{self.course.pk}/', {"name": "Robotics II"}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['start_date'], '2024-10-01')
        self.assertEqual(response.data['teacher_id'], 7)

    def test_delete_course(self):
        response = self.client.delete(f'/api/courses/{self.course.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Course.objects.filter(pk=self.course.pk).exists())

    def test_preview_reconciliation(self):
        response = self.client.get(f'/api/courses/{self.course.pk}/reconciliation/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [s['date'] for s in response.data['to_add']],
            ['2024-10-07', '2024-10-21', '2024-10-28']
        )
        self.assertEqual(response.data['to_delete'], [])
        self.assertFalse(response.data['is_in_sync'])
        self.assertEqual(CourseClass.objects.count(), 0)

    def test_apply_reconciliation(self):
        response = self.client.post(f'/api/courses/{self.course.pk}/reconciliation/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['classes_count'], 3)
        self.assertEqual(CourseClass.objects.count(), 3)

        response = self.client.get(f'/api/courses/{self.course.pk}/reconciliation/')
        self.assertTrue(response.data['is_in_sync'])

    def test_apply_reconciliation_conflict(self):
        with mock.patch.object(Course.objects, 'select_for_update', side_effect=DatabaseError('locked')):
            response = self.client.post(f'/api/courses/{self.course.pk}/reconciliation/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'reconciliation_in_progress')


class CourseClassAPITests(APITestCase):
    """Test class API endpoints."""

    def setUp(self):
        self.client = APIClient()
        monday = WeekSchedule.objects.create(weekday=0, start_time=time(16, 0), end_time=time(17, 30))
        self.course = Course.objects.create(
            name='Robotics', start_date=date(2024, 10, 1), end_date=date(2024, 10, 31), teacher_id=7
        )
        self.course.schedules.add(monday)
        services.apply_course_reconciliation(self.course, today=date(2024, 1, 1))
        Enrollment.objects.create(student_id=1, course=self.course, enrollment_date=date(2024, 9, 1))
        self.class_id = f'{self.course.pk}-2024-10-07'

    def test_list_classes_in_range(self):
        response = self.client.get('/api/classes/', {'start': '2024-10-01', 'end': '2024-10-15'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['start_time'], '16:00')

    def test_list_classes_rejects_backwards_range(self):
        response = self.client.get('/api/classes/', {'start': '2024-10-31', 'end': '2024-10-01'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_class_detail(self):
        response = self.client.get(f'/api/classes/{self.class_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], '2024-10-07')

    def test_mark_class_done(self):
        response = self.client.patch(f'/api/classes/{self.class_id}/', {"status": "done"}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'done')
        self.assertTrue(response.data['attendance_initialized'])

        response = self.client.get(f'/api/classes/{self.class_id}/attendance/')
        self.assertEqual(len(response.data), 1)
        self.assertTrue(response.data[0]['attended'])
        self.assertEqual(response.data[0]['status'], 'completed')

    def test_comment_edit_keeps_attendance_untouched(self):
        response = self.client.patch(
            f'/api/classes/{self.class_id}/', {"internal_comment": "Substitute needed"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['internal_comment'], 'Substitute needed')
        self.assertEqual(AttendanceRecord.objects.count(), 0)

    def test_invalid_status_rejected(self):
        response = self.client.patch(f'/api/classes/{self.class_id}/', {"status": "postponed"}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_before_start_rejected(self):
        response = self.client.patch(
            f'/api/classes/{self.class_id}/', {"start_time": "18:00", "end_time": "17:00"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        course_class = CourseClass.objects.get(pk=self.class_id)
        self.assertEqual(course_class.start_time, time(16, 0))
        self.assertEqual(course_class.end_time, time(17, 30))

    def test_end_before_stored_start_rejected(self):
        response = self.client.patch(f'/api/classes/{self.class_id}/', {"end_time": "15:00"}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CourseClass.objects.get(pk=self.class_id).end_time, time(17, 30))

    def test_reschedule_class(self):
        response = self.client.patch(
            f'/api/classes/{self.class_id}/', {"date": "2024-10-08", "teacher_id": 9}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.class_id)
        self.assertEqual(response.data['date'], '2024-10-08')
        self.assertEqual(response.data['teacher_id'], 9)

        response = self.client.post(f'/api/courses/{self.course.pk}/reconciliation/')
        self.assertTrue(response.data['is_in_sync'])
        self.assertEqual(CourseClass.objects.get(pk=self.class_id).date, date(2024, 10, 8))

    def test_add_class(self):
        data = {"date": "2024-10-09", "start_time": "18:00", "end_time": "19:00"}

        response = self.client.post(f'/api/courses/{self.course.pk}/classes/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], f'{self.course.pk}-2024-10-09')
        self.assertEqual(response.data['teacher_id'], 7)

        response = self.client.get(f'/api/courses/{self.course.pk}/classes/')
        self.assertEqual(len(response.data), 5)

    def test_add_class_on_taken_date_conflicts(self):
        data = {"date": "2024-10-07", "start_time": "18:00", "end_time": "19:00"}

        response = self.client.post(f'/api/courses/{self.course.pk}/classes/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'class_already_exists')

    def test_add_class_rejects_backwards_times(self):
        data = {"date": "2024-10-09", "start_time": "19:00", "end_time": "18:00"}

        response = self.client.post(f'/api/courses/{self.course.pk}/classes/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CourseClass.objects.count(), 4)

    def test_delete_class(self):
        self.client.patch(f'/api/classes/{self.class_id}/', {"status": "done"}, format='json')

        response = self.client.delete(f'/api/classes/{self.class_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CourseClass.objects.filter(pk=self.class_id).exists())
        self.assertEqual(AttendanceRecord.objects.count(), 0)

    def test_unexpected_errors_are_not_client_errors(self):
        with mock.patch.object(services, 'get_course_classes_in_range', side_effect=ValueError('bug')):
            with self.assertRaises(ValueError):
                self.client.get('/api/classes/', {'start': '2024-10-01', 'end': '2024-10-15'})


class ManagementCommandTests(TestCase):
    """Test management commands."""

    def setUp(self):
        monday = WeekSchedule.objects.create(weekday=0, start_time=time(16, 0), end_time=time(17, 30))
        self.course = Course.objects.create(
            name='Robotics', start_date=date(2024, 10, 1), end_date=date(2024, 10, 31)
        )
        self.course.schedules.add(monday)

    def test_reconcile_command(self):
        out = StringIO()
        call_command('reconcile_course_classes', stdout=out)

        self.assertIn('Deleted 0 and added 4 class(es)', out.getvalue())
        self.assertEqual(CourseClass.objects.count(), 4)

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        call_command('reconcile_course_classes', '--dry-run', f'--course={self.course.pk}', stdout=out)

        self.assertIn('Robotics: 0 to delete, 4 to add', out.getvalue())
        self.assertEqual(CourseClass.objects.count(), 0)
