"""
Tests for resolve_available_slots.

The resolver is pure: policy, template, overrides and bookings are passed in
directly, so none of these tests touch the database.
"""
from datetime import date, datetime, timezone as dt_timezone
from types import SimpleNamespace

from apps.availability.intervals import DateOverride, DayTemplate, TimeInterval, WallClockInterval
from apps.availability.utils import get_source_intervals, resolve_available_slots

MONDAY = date(2030, 1, 7)


def at(hour, minute=0, day=MONDAY):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=dt_timezone.utc)


def make_policy(**kwargs):
    defaults = {'timezone': 'UTC', 'buffer_minutes': 15, 'min_notice_hours': 2}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def weekdays_template(*intervals):
    intervals = intervals or (WallClockInterval.parse('09:00', '17:00'),)
    return {
        day: DayTemplate(enabled=day < 5, intervals=tuple(intervals))
        for day in range(7)
    }


def resolve(target_date=MONDAY, duration=30, policy=None, template=None, overrides=None,
            bookings=(), now=None):
    return resolve_available_slots(
        target_date=target_date,
        duration_minutes=duration,
        policy=policy or make_policy(),
        weekly_template=template or weekdays_template(),
        overrides=overrides or {},
        existing_bookings=list(bookings),
        now=now or at(8),
    )


class TestResolveAvailableSlots:

    def test_monday_with_notice_window(self):
        slots = resolve(now=at(8))

        assert slots[0] == TimeInterval(at(10), at(10, 30))
        assert slots[-1] == TimeInterval(at(16, 30), at(17))
        assert len(slots) == 27

    def test_slots_are_sorted_and_on_step_grid(self):
        slots = resolve(now=at(6))

        assert slots == sorted(slots)
        assert all(slot.start.minute % 15 == 0 for slot in slots)
        assert slots[0].start == at(9)

    def test_buffer_around_existing_booking(self):
        booked = TimeInterval(at(10), at(10, 30))

        starts = {slot.start for slot in resolve(bookings=[booked], now=at(6))}

        assert at(9, 45) not in starts
        assert at(10, 15) not in starts
        assert at(10) not in starts
        assert at(10, 45) in starts
        assert at(9, 15) in starts

    def test_booking_ending_at_t_blocks_until_t_plus_buffer(self):
        booked = TimeInterval(at(11), at(12))

        starts = {slot.start for slot in resolve(bookings=[booked], now=at(6))}

        assert at(12) not in starts
        assert at(12, 15) in starts

    def test_no_slot_before_minimum_notice(self):
        now = at(11, 7)

        slots = resolve(now=now, policy=make_policy(min_notice_hours=3))

        assert slots
        assert all(slot.start >= at(14, 7) for slot in slots)
        assert slots[0].start == at(14, 15)

    def test_disabled_weekday_has_no_slots(self):
        sunday = date(2030, 1, 6)

        assert resolve(target_date=sunday, now=at(0, day=sunday)) == []

    def test_unavailable_override_blocks_day(self):
        overrides = {MONDAY: DateOverride(date=MONDAY, available=False, reason='Holiday')}

        assert resolve(overrides=overrides, now=at(6)) == []

    def test_override_replaces_template(self):
        overrides = {
            MONDAY: DateOverride(
                date=MONDAY, available=True,
                intervals=(WallClockInterval.parse('13:00', '14:00'),)
            )
        }

        slots = resolve(overrides=overrides, now=at(6))

        assert [slot.start for slot in slots] == [at(13), at(13, 15), at(13, 30)]

    def test_override_enables_a_disabled_weekday(self):
        saturday = date(2030, 1, 12)
        overrides = {
            saturday: DateOverride(
                date=saturday, available=True,
                intervals=(WallClockInterval.parse('10:00', '11:00'),)
            )
        }

        slots = resolve(target_date=saturday, overrides=overrides, now=at(6, day=saturday))

        assert len(slots) == 3

    def test_overlapping_sources_keep_duplicates(self):
        template = weekdays_template(
            WallClockInterval.parse('09:00', '10:00'),
            WallClockInterval.parse('09:30', '10:30'),
        )

        starts = [slot.start for slot in resolve(template=template, now=at(6))]

        assert starts.count(at(9, 30)) == 2
        assert starts == sorted(starts)

    def test_duration_longer_than_interval_yields_nothing(self):
        template = weekdays_template(WallClockInterval.parse('09:00', '09:20'))

        assert resolve(template=template, now=at(6)) == []

    def test_host_timezone_is_applied(self):
        policy = make_policy(timezone='Europe/Berlin', min_notice_hours=0)

        slots = resolve(policy=policy, now=at(0))

        # 09:00 Berlin is 08:00 UTC in January
        assert slots[0].start == at(8)
        assert slots[-1].end == at(16)

    def test_non_positive_duration(self):
        assert resolve(duration=0, now=at(6)) == []


class TestGetSourceIntervals:

    def test_template_used_without_override(self):
        template = weekdays_template()

        assert get_source_intervals(MONDAY, template, {}) == list(template[0].intervals)

    def test_blocked_override_ignores_its_intervals(self):
        overrides = {
            MONDAY: DateOverride(
                date=MONDAY, available=False,
                intervals=(WallClockInterval.parse('10:00', '11:00'),)
            )
        }

        assert get_source_intervals(MONDAY, weekdays_template(), overrides) == []
