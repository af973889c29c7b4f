#!/usr/bin/env python3
"""
Tests for week arithmetic and workout bucketing.

Run with: pytest runclub/tests/test_week_dates.py -v
"""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

# Add repository root for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from runclub.constants import UNDEFINED_WEEK_LABEL, WEEK_CURRENT, WEEK_FUTURE, WEEK_PAST
from runclub.models import Workout, WorkoutFeedback
from runclub.week_dates import (
    bucket_workouts,
    classify_week,
    day_of_week,
    group_by_week,
    nearby_weeks,
    parse_local_date,
    week_anchor,
    week_anchor_str,
    week_label,
    week_range,
)


def make_workout(workout_id, day, feedback=None, student_id='s1'):
    return Workout(id=workout_id, student_id=student_id, date=day,
                   title='Rodagem', description='', feedback=feedback)


class TestParsing:
    """Dates are plain calendar days, never shifted by timezone."""

    def test_iso_string(self):
        assert parse_local_date('2025-01-05') == date(2025, 1, 5)

    def test_datetime_keeps_its_own_day(self):
        assert parse_local_date(datetime(2025, 1, 5, 23, 59)) == date(2025, 1, 5)

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            parse_local_date('05/01/2025')

    def test_sunday_is_day_zero(self):
        assert day_of_week('2025-01-05') == 0
        assert day_of_week('2025-01-11') == 6


class TestWeekAnchor:
    """Sunday on or before a date."""

    def test_midweek_goes_back_to_sunday(self):
        assert week_anchor_str('2025-01-08') == '2025-01-05'

    def test_saturday_goes_back_six_days(self):
        assert week_anchor_str('2025-01-11') == '2025-01-05'

    def test_sunday_is_its_own_anchor(self):
        assert week_anchor_str('2025-01-05') == '2025-01-05'

    def test_crosses_year_boundary(self):
        assert week_anchor_str('2025-01-01') == '2024-12-29'

    def test_always_sunday_and_idempotent(self):
        """Every day of a two-month span anchors to a Sunday, and re-anchoring changes nothing."""
        start = date(2024, 12, 1)
        for offset in range(62):
            anchor = week_anchor(start + timedelta(days=offset))
            assert day_of_week(anchor) == 0
            assert week_anchor(anchor) == anchor
            assert 0 <= (start + timedelta(days=offset) - anchor).days <= 6


class TestClassifyWeek:

    def test_same_sunday_is_current(self):
        assert classify_week('2025-01-05', '2025-01-05') == WEEK_CURRENT

    def test_later_sunday_is_future(self):
        assert classify_week('2025-01-12', '2025-01-05') == WEEK_FUTURE

    def test_earlier_sunday_is_past(self):
        assert classify_week('2024-12-29', '2025-01-05') == WEEK_PAST


class TestLabels:

    def test_week_label(self):
        assert week_label('2025-01-05') == 'Semana de 05/01'

    def test_week_label_uses_anchor(self):
        assert week_label('2025-01-08') == 'Semana de 05/01'

    def test_week_range(self):
        result = week_range('2025-01-05')
        assert result == {'start': '05/01', 'end': '11/01', 'full': '05/01 a 11/01'}

    def test_week_range_across_months(self):
        assert week_range('2025-01-26')['full'] == '26/01 a 01/02'

    def test_undefined_week(self):
        assert week_range('')['full'] == UNDEFINED_WEEK_LABEL
        assert week_range(None)['full'] == UNDEFINED_WEEK_LABEL


class TestNearbyWeeks:
    """Weeks offered by the wizard."""

    def test_six_weeks_from_last_week(self):
        weeks = nearby_weeks('2025-01-08')
        assert [w['dateStr'] for w in weeks] == [
            '2024-12-29', '2025-01-05', '2025-01-12',
            '2025-01-19', '2025-01-26', '2025-02-02',
        ]

    def test_labels(self):
        labels = [w['label'] for w in nearby_weeks('2025-01-08')]
        assert labels[0] == 'Semana Passada'
        assert labels[1] == 'Semana Atual'
        assert labels[2] == 'Daqui a 1 Semanas'
        assert labels[5] == 'Daqui a 4 Semanas'

    def test_ranges_attached(self):
        current = nearby_weeks('2025-01-08')[1]
        assert current['range']['full'] == '05/01 a 11/01'


class TestBucketWorkouts:
    """Portal tabs split pending workouts without overlap or omission."""

    def test_partition(self):
        workouts = [
            make_workout('a', '2024-12-29'),
            make_workout('b', '2025-01-05'),
            make_workout('c', '2025-01-12'),
            make_workout('d', '2025-01-05'),
        ]
        buckets = bucket_workouts(workouts, '2025-01-08')

        assert [w.id for w in buckets[WEEK_PAST]] == ['a']
        assert [w.id for w in buckets[WEEK_CURRENT]] == ['b', 'd']
        assert [w.id for w in buckets[WEEK_FUTURE]] == ['c']
        total = sum(len(v) for v in buckets.values())
        assert total == len(workouts)

    def test_completed_workouts_skipped(self):
        done = WorkoutFeedback(difficulty=5, notes='', completed_at='2025-01-06T08:00:00')
        workouts = [make_workout('a', '2025-01-05', feedback=done), make_workout('b', '2025-01-05')]
        buckets = bucket_workouts(workouts, '2025-01-05')
        assert [w.id for w in buckets[WEEK_CURRENT]] == ['b']

    def test_completed_included_when_asked(self):
        done = WorkoutFeedback(difficulty=5, notes='', completed_at='2025-01-06T08:00:00')
        buckets = bucket_workouts([make_workout('a', '2025-01-05', feedback=done)],
                                  '2025-01-05', include_completed=True)
        assert len(buckets[WEEK_CURRENT]) == 1

    def test_workout_moves_from_current_to_past(self):
        """Dated 2025-01-05: current all week long, past from the next Sunday."""
        workout = make_workout('a', '2025-01-05')
        for day in range(5, 12):
            buckets = bucket_workouts([workout], date(2025, 1, day))
            assert buckets[WEEK_CURRENT] == [workout]

        buckets = bucket_workouts([workout], '2025-01-12')
        assert buckets[WEEK_PAST] == [workout]
        assert buckets[WEEK_CURRENT] == []


class TestGroupByWeek:

    def test_groups_in_first_seen_order(self):
        workouts = [
            make_workout('a', '2025-01-12'),
            make_workout('b', '2025-01-05'),
            make_workout('c', '2025-01-12'),
        ]
        groups = group_by_week(workouts)
        assert list(groups) == ['Semana de 12/01', 'Semana de 05/01']
        assert [w.id for w in groups['Semana de 12/01']] == ['a', 'c']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
