"""
Holiday matching for class generation.

A holiday rule excludes a calendar date when its date matches and its
location filter (if any) equals the course location. Malformed rules never
match, so one bad row cannot block a whole course calendar.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from .dates import parse_date
from .types import HolidayDateType, HolidayRule

log = logging.getLogger(__name__)


def is_excluded(
    day: date,
    holiday_rules: Iterable[HolidayRule],
    course_location: Optional[str] = None
) -> bool:
    """
    Check whether a date is a holiday for a course.

    Args:
        day: Calendar date to check
        holiday_rules: Holiday rules to consult
        course_location: Location of the course classroom (None = unknown)

    Returns:
        True if any applicable rule matches the date
    """
    return matching_rule(day, holiday_rules, course_location) is not None


def matching_rule(
    day: date,
    holiday_rules: Iterable[HolidayRule],
    course_location: Optional[str] = None
) -> Optional[HolidayRule]:
    """Return the first rule that excludes ``day``, or None."""
    for rule in holiday_rules:
        if rule.location and rule.location != course_location:
            continue
        if _rule_matches(rule, day):
            return rule
    return None


def holiday_problem(rule: HolidayRule) -> Optional[str]:
    """
    Describe what is wrong with the date fields of a rule.

    Returns:
        A short reason string, or None if the rule is well formed
    """
    when = rule.date
    try:
        kind = HolidayDateType(when.type)
    except ValueError:
        return f"unknown holiday type {when.type!r}"

    if kind is HolidayDateType.SPECIFIC:
        fields = (when.day, when.month, when.year)
        if any(value is None for value in fields):
            return "specific holiday needs day, month and year"
    elif kind is HolidayDateType.RECURRING:
        fields = (when.day, when.month)
        if any(value is None for value in fields):
            return "recurring holiday needs day and month"
    else:
        if not when.start_date or not when.end_date:
            return "range holiday needs start_date and end_date"
        try:
            parse_date(when.start_date)
            parse_date(when.end_date)
        except ValueError:
            return "range bounds are not ISO dates"
        return None

    try:
        [int(value) for value in fields]
    except (TypeError, ValueError):
        return "day, month and year must be numbers"
    return None


def usable_rules(holiday_rules: Iterable[HolidayRule]) -> List[HolidayRule]:
    """Drop malformed rules, logging one warning per dropped rule."""
    usable = []
    for rule in holiday_rules:
        problem = holiday_problem(rule)
        if problem:
            log.warning("Ignoring holiday %r (id=%s): %s", rule.name, rule.id, problem)
            continue
        usable.append(rule)
    return usable


def _rule_matches(rule: HolidayRule, day: date) -> bool:
    if holiday_problem(rule):
        return False

    when = rule.date
    kind = HolidayDateType(when.type)
    if kind is HolidayDateType.SPECIFIC:
        return (int(when.day), int(when.month), int(when.year)) == (day.day, day.month, day.year)
    if kind is HolidayDateType.RECURRING:
        return (int(when.day), int(when.month)) == (day.day, day.month)
    return parse_date(when.start_date) <= day <= parse_date(when.end_date)
