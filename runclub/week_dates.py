#!/usr/bin/env python3
"""
Week arithmetic for prescriptions.

Club Dating Standards:
- Each week runs Sunday-Saturday
- A week is identified by its Sunday (the "anchor")
- Workouts are stored with the anchor as their date, in YYYY-MM-DD form
- Dates are plain calendar dates: no timezone conversion ever happens, so
  '2025-01-05' is always a Sunday regardless of where the server runs

Because anchors are ISO strings, comparing two of them as strings orders
them the same way as comparing the dates.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Union

from .constants import (
    DISPLAY_DAY_MONTH_FORMAT,
    ISO_DATE_FORMAT,
    NEARBY_WEEK_OFFSETS,
    UNDEFINED_WEEK_LABEL,
    WEEK_CURRENT,
    WEEK_FUTURE,
    WEEK_PAST,
)

DateLike = Union[str, date, datetime]


def parse_local_date(value: DateLike) -> date:
    """
    Parse a date as a local calendar day.

    Strings must be YYYY-MM-DD. Datetimes are truncated to their own date,
    never shifted to UTC.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), ISO_DATE_FORMAT).date()


def to_iso(value: DateLike) -> str:
    return parse_local_date(value).strftime(ISO_DATE_FORMAT)


def day_of_week(value: DateLike) -> int:
    """Day index with Sunday = 0 ... Saturday = 6."""
    return (parse_local_date(value).weekday() + 1) % 7


def week_anchor(value: DateLike) -> date:
    """Sunday on or before the given date (same Sunday-Saturday week)."""
    d = parse_local_date(value)
    return d - timedelta(days=day_of_week(d))


def week_anchor_str(value: DateLike) -> str:
    return week_anchor(value).strftime(ISO_DATE_FORMAT)


def classify_week(candidate_sunday: DateLike, today_sunday: DateLike) -> str:
    """
    Place a week relative to the current one.

    Returns WEEK_PAST, WEEK_CURRENT or WEEK_FUTURE.
    """
    candidate = to_iso(candidate_sunday)
    current = to_iso(today_sunday)
    if candidate == current:
        return WEEK_CURRENT
    if candidate > current:
        return WEEK_FUTURE
    return WEEK_PAST


def format_day_month(value: DateLike) -> str:
    return parse_local_date(value).strftime(DISPLAY_DAY_MONTH_FORMAT)


def week_label(sunday: DateLike) -> str:
    """Heading used on the coach dashboard, e.g. 'Semana de 05/01'."""
    return f"Semana de {format_day_month(week_anchor(sunday))}"


def week_range(sunday: Optional[DateLike]) -> Dict[str, str]:
    """
    Display range of the week starting at `sunday`.

    Returns dict with 'start', 'end' (dd/mm) and 'full' ('dd/mm a dd/mm').
    """
    if not sunday:
        return {'start': '', 'end': '', 'full': UNDEFINED_WEEK_LABEL}

    start = parse_local_date(sunday)
    end = start + timedelta(days=6)
    start_str = format_day_month(start)
    end_str = format_day_month(end)
    return {
        'start': start_str,
        'end': end_str,
        'full': f"{start_str} a {end_str}",
    }


def _nearby_label(offset: int) -> str:
    if offset == 0:
        return 'Semana Atual'
    if offset == -1:
        return 'Semana Passada'
    return f"Daqui a {offset} Semanas"


def nearby_weeks(today: DateLike) -> List[Dict]:
    """
    Weeks offered by the prescription wizard.

    One week back, the current week and four weeks ahead, each with its
    anchor ('dateStr'), a label and the display range.
    """
    current_sunday = week_anchor(today)
    weeks = []
    for offset in NEARBY_WEEK_OFFSETS:
        sunday = current_sunday + timedelta(weeks=offset)
        date_str = sunday.strftime(ISO_DATE_FORMAT)
        weeks.append({
            'dateStr': date_str,
            'offset': offset,
            'label': _nearby_label(offset),
            'range': week_range(date_str),
        })
    return weeks


def bucket_workouts(workouts: Iterable, today: DateLike,
                    include_completed: bool = False) -> Dict[str, List]:
    """
    Split workouts into past / current / future weeks.

    Every workout considered lands in exactly one bucket. The bucket key is
    the workout's own stored date compared against this week's anchor, so a
    directly edited date that is not a Sunday still sorts by string order.

    Args:
        workouts: Workout records (need `.date` and `.feedback`)
        today: Reference day for "this week"
        include_completed: When False, workouts with feedback are skipped,
                           as the athlete's portal shows them under history

    Returns:
        Dict with WEEK_PAST, WEEK_CURRENT and WEEK_FUTURE lists, each in input order
    """
    today_sunday = week_anchor_str(today)
    buckets = {WEEK_PAST: [], WEEK_CURRENT: [], WEEK_FUTURE: []}

    for workout in workouts:
        if not include_completed and workout.feedback is not None:
            continue
        buckets[classify_week(workout.date, today_sunday)].append(workout)

    return buckets


def group_by_week(workouts: Iterable) -> 'OrderedDict[str, List]':
    """
    Group workouts under their week heading, keeping first-seen order.

    Used by the coach dashboard for a single athlete.
    """
    groups = OrderedDict()
    for workout in workouts:
        label = week_label(workout.date)
        groups.setdefault(label, []).append(workout)
    return groups
