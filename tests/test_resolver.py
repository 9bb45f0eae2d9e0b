"""
Unit tests for the collection schedule resolver.
"""

from datetime import date, timedelta

import pytest

from collection_schedule.dates import day_of_week
from collection_schedule.exceptions import InvalidScheduleDateError
from collection_schedule.models import CollectionSchedule, GarbageType
from collection_schedule.resolver import (collections_on_date, expand_range,
                                          get_monthly_collections,
                                          get_weekly_collections,
                                          next_date_for_schedule,
                                          next_occurrences)

PAPEL = GarbageType(
    id="papel",
    code="papel",
    name_pt="Papel",
    name_en="Paper",
    name_es="Papel",
    color_hex="#2563EB",
)
VIDRO = GarbageType(
    id="vidro",
    code="vidro",
    name_pt="Vidro",
    name_en="Glass",
    name_es="Vidrio",
    color_hex="#16A34A",
)
GARBAGE_TYPES = [PAPEL, VIDRO]


def make_rule(**overrides) -> CollectionSchedule:
    """Builds a weekly Monday paper rule starting 2024-01-01, with overrides."""
    fields = {
        "id": "rule-1",
        "zone_id": "zone-1",
        "garbage_type_id": "papel",
        "day_of_week": 1,
        "week_interval": 1,
        "start_date": "2024-01-01",
        "end_date": None,
        "is_active": True,
    }
    fields.update(overrides)
    return CollectionSchedule(**fields)


class TestCollectionsOnDate:
    """Tests for the per-date evaluator."""

    def test_weekly_rule_matches_monday(self):
        rules = [make_rule()]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [PAPEL]

    def test_weekly_rule_does_not_match_tuesday(self):
        rules = [make_rule()]
        assert collections_on_date(date(2024, 1, 9), rules, GARBAGE_TYPES) == []

    def test_weekly_rule_matches_every_monday_and_only_mondays(self):
        rules = [make_rule()]
        start = date(2024, 1, 1)
        for offset in range(120):
            day = start + timedelta(days=offset)
            expected = [PAPEL] if day.weekday() == 0 else []
            assert collections_on_date(day, rules, GARBAGE_TYPES) == expected

    def test_sunday_is_day_zero(self):
        rules = [make_rule(day_of_week=0)]
        assert collections_on_date(date(2024, 1, 7), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2024, 1, 6), rules, GARBAGE_TYPES) == []

    def test_inactive_rule_never_matches(self):
        rules = [make_rule(is_active=False)]
        start = date(2024, 1, 1)
        for offset in range(60):
            day = start + timedelta(days=offset)
            assert collections_on_date(day, rules, GARBAGE_TYPES) == []

    def test_dates_before_start_never_match(self):
        rules = [make_rule(start_date="2024-01-15")]
        assert collections_on_date(date(2024, 1, 1), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES) == [PAPEL]

    def test_end_date_is_inclusive(self):
        rules = [make_rule(end_date="2024-01-15")]
        assert collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2024, 1, 22), rules, GARBAGE_TYPES) == []

    def test_dates_are_parsed_as_local_calendar_dates(self):
        # A timestamp late in the evening west of UTC is still January 8th.
        rules = [make_rule(start_date="2024-01-08T23:30:00-03:00")]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [PAPEL]

    def test_fortnightly_rule_uses_iso_week_parity(self):
        rules = [make_rule(week_interval=2)]
        # 2024-01-01 is in ISO week 1, 2024-01-08 in week 2, 2024-01-15 in week 3.
        assert collections_on_date(date(2024, 1, 1), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES) == [PAPEL]

    def test_fortnightly_rule_across_53_week_year(self):
        # 2020-12-28 is in ISO week 53; 2021-01-04 is in ISO week 1.
        rules = [make_rule(week_interval=2, start_date="2020-12-28")]
        # Elapsed weeks would say 1 (odd), but the week numbers differ by -52.
        assert collections_on_date(date(2021, 1, 4), rules, GARBAGE_TYPES) == [PAPEL]
        # Elapsed weeks would say 2 (even), but the week numbers differ by -51.
        assert collections_on_date(date(2021, 1, 11), rules, GARBAGE_TYPES) == []

    def test_other_intervals_count_elapsed_weeks(self):
        rules = [make_rule(week_interval=3)]
        assert collections_on_date(date(2024, 1, 1), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 22), rules, GARBAGE_TYPES) == [PAPEL]

    def test_elapsed_weeks_are_floored_when_start_is_midweek(self):
        # Start on a Wednesday: 5 days to the first Monday is 0 whole weeks.
        rules = [make_rule(week_interval=3, start_date="2024-01-03")]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 22), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 29), rules, GARBAGE_TYPES) == [PAPEL]

    def test_interval_one_does_not_use_iso_weeks_across_53_week_year(self):
        rules = [make_rule(start_date="2020-12-28")]
        assert collections_on_date(date(2021, 1, 4), rules, GARBAGE_TYPES) == [PAPEL]
        assert collections_on_date(date(2021, 1, 11), rules, GARBAGE_TYPES) == [PAPEL]

    def test_unknown_garbage_type_is_skipped(self):
        rules = [make_rule(garbage_type_id="retired"), make_rule(id="rule-2")]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [PAPEL]

    def test_results_follow_rule_order(self):
        rules = [
            make_rule(id="rule-1", garbage_type_id="vidro"),
            make_rule(id="rule-2", garbage_type_id="papel"),
        ]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [VIDRO, PAPEL]

    def test_two_rules_for_the_same_type_both_contribute(self):
        rules = [make_rule(id="rule-1"), make_rule(id="rule-2")]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == [PAPEL, PAPEL]

    def test_empty_rules(self):
        assert collections_on_date(date(2024, 1, 8), [], GARBAGE_TYPES) == []

    def test_malformed_start_date_raises(self):
        rules = [make_rule(start_date="01/01/2024")]
        with pytest.raises(InvalidScheduleDateError):
            collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES)

    def test_malformed_end_date_raises(self):
        rules = [make_rule(end_date="2024-02-30")]
        with pytest.raises(InvalidScheduleDateError):
            collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES)

    def test_malformed_date_of_skipped_rule_is_not_parsed(self):
        # Weekday and activity checks come before date parsing.
        rules = [make_rule(start_date="garbage", is_active=False)]
        assert collections_on_date(date(2024, 1, 8), rules, GARBAGE_TYPES) == []
        assert collections_on_date(date(2024, 1, 9), [make_rule(start_date="garbage")], GARBAGE_TYPES) == []

    def test_is_idempotent(self):
        rules = [make_rule(week_interval=2), make_rule(id="rule-2", garbage_type_id="vidro")]
        first = collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES)
        second = collections_on_date(date(2024, 1, 15), rules, GARBAGE_TYPES)
        assert first == second == [PAPEL, VIDRO]


class TestExpandRange:
    """Tests for the week and month range expander."""

    def test_week_runs_monday_to_sunday(self):
        days = expand_range(date(2024, 1, 10), [make_rule()], GARBAGE_TYPES, "week")
        assert [d.date for d in days] == [date(2024, 1, 8) + timedelta(days=i) for i in range(7)]
        assert days[0].garbage_types == [PAPEL]
        assert all(d.garbage_types == [] for d in days[1:])

    def test_week_of_a_sunday_starts_on_the_previous_monday(self):
        days = get_weekly_collections(date(2024, 1, 14), [], GARBAGE_TYPES)
        assert days[0].date == date(2024, 1, 8)
        assert days[-1].date == date(2024, 1, 14)

    def test_week_always_has_seven_days_starting_monday(self):
        anchor = date(2023, 12, 20)
        for offset in range(30):
            days = expand_range(anchor + timedelta(days=offset), [], GARBAGE_TYPES)
            assert len(days) == 7
            assert days[0].date.weekday() == 0

    @pytest.mark.parametrize(
        "anchor, length",
        [
            (date(2024, 2, 10), 29),
            (date(2023, 2, 10), 28),
            (date(2024, 1, 31), 31),
            (date(2024, 4, 1), 30),
        ],
    )
    def test_month_covers_every_day(self, anchor, length):
        days = expand_range(anchor, [], GARBAGE_TYPES, "month")
        assert len(days) == length
        assert days[0].date == anchor.replace(day=1)
        assert [d.date for d in days] == sorted(d.date for d in days)

    def test_month_resolves_each_day(self):
        days = get_monthly_collections(date(2024, 1, 17), [make_rule()], GARBAGE_TYPES)
        collection_dates = [d.date.day for d in days if d.garbage_types]
        assert collection_dates == [1, 8, 15, 22, 29]

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            expand_range(date(2024, 1, 1), [], GARBAGE_TYPES, "year")

    def test_is_idempotent(self):
        rules = [make_rule(week_interval=2)]
        first = expand_range(date(2024, 1, 1), rules, GARBAGE_TYPES, "month")
        second = expand_range(date(2024, 1, 1), rules, GARBAGE_TYPES, "month")
        assert first == second


class TestNextOccurrences:
    """Tests for the next-occurrence finder."""

    def test_next_date_later_in_the_week(self):
        # 2024-01-10 is a Wednesday.
        assert next_date_for_schedule(date(2024, 1, 10), make_rule()) == date(2024, 1, 15)

    def test_today_advances_a_full_interval(self):
        monday = date(2024, 1, 8)
        assert next_date_for_schedule(monday, make_rule()) == date(2024, 1, 15)
        assert next_date_for_schedule(monday, make_rule(week_interval=2)) == date(2024, 1, 22)

    def test_fortnightly_rule_ignores_iso_alternation(self):
        # 2024-01-08 is not an eligible week for this rule, but the next Monday is
        # still returned as the next date.
        rule = make_rule(week_interval=2)
        assert next_date_for_schedule(date(2024, 1, 3), rule) == date(2024, 1, 8)
        assert collections_on_date(date(2024, 1, 8), [rule], GARBAGE_TYPES) == []

    def test_validity_window_is_not_checked(self):
        rule = make_rule(start_date="2030-01-01", end_date="2020-01-01")
        assert next_date_for_schedule(date(2024, 1, 10), rule) == date(2024, 1, 15)

    def test_sorted_by_date(self):
        rules = [
            make_rule(id="rule-1"),
            make_rule(id="rule-2", garbage_type_id="vidro", day_of_week=5),
        ]
        result = next_occurrences(date(2024, 1, 10), rules, GARBAGE_TYPES)
        assert [(r.garbage_type, r.next_date) for r in result] == [
            (VIDRO, date(2024, 1, 12)),
            (PAPEL, date(2024, 1, 15)),
        ]

    def test_earliest_rule_wins_per_type(self):
        rules = [
            make_rule(id="rule-1", day_of_week=1),
            make_rule(id="rule-2", day_of_week=4),
        ]
        result = next_occurrences(date(2024, 1, 10), rules, GARBAGE_TYPES)
        assert len(result) == 1
        assert result[0].garbage_type == PAPEL
        assert result[0].next_date == date(2024, 1, 11)

    def test_one_entry_per_type_with_active_rules(self):
        rules = [
            make_rule(id="rule-1"),
            make_rule(id="rule-2", day_of_week=3),
            make_rule(id="rule-3", garbage_type_id="vidro", is_active=False),
            make_rule(id="rule-4", garbage_type_id="retired"),
        ]
        result = next_occurrences(date(2024, 1, 10), rules, GARBAGE_TYPES)
        assert [r.garbage_type.id for r in result] == ["papel"]

    def test_dates_are_on_the_rule_weekday_and_sorted(self):
        rules = [
            make_rule(id=f"rule-{dow}", garbage_type_id=gt, day_of_week=dow, week_interval=interval)
            for dow, gt, interval in [(2, "papel", 1), (6, "vidro", 2)]
        ]
        for offset in range(14):
            today = date(2024, 1, 1) + timedelta(days=offset)
            result = next_occurrences(today, rules, GARBAGE_TYPES)
            assert len(result) == 2
            assert [r.next_date for r in result] == sorted(r.next_date for r in result)
            for entry in result:
                expected_dow = 2 if entry.garbage_type.id == "papel" else 6
                assert day_of_week(entry.next_date) == expected_dow
                assert entry.next_date > today

    def test_malformed_dates_do_not_raise(self):
        rules = [make_rule(start_date="not-a-date")]
        result = next_occurrences(date(2024, 1, 10), rules, GARBAGE_TYPES)
        assert result[0].next_date == date(2024, 1, 15)

    def test_empty_rules(self):
        assert next_occurrences(date(2024, 1, 10), [], GARBAGE_TYPES) == []

    def test_is_idempotent(self):
        rules = [make_rule(), make_rule(id="rule-2", garbage_type_id="vidro", day_of_week=5)]
        assert next_occurrences(date(2024, 1, 10), rules, GARBAGE_TYPES) == next_occurrences(
            date(2024, 1, 10), rules, GARBAGE_TYPES
        )
