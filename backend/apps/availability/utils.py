from collections import defaultdict
from datetime import datetime, time, timedelta
from django.conf import settings
from django.db import transaction
from apps.common.clock import default_clock
from apps.common.exceptions import ValidationError
from .intervals import (
    DEFAULT_SLOT_STEP_MINUTES, DateOverride, DayTemplate, TimeInterval, WallClockInterval,
    find_overlaps, get_zone, is_valid_timezone, parse_wall_clock
)
from .models import AvailabilityPolicy, AvailabilityRule, DateOverrideRule
import logging

logger = logging.getLogger(__name__)


def get_source_intervals(target_date, weekly_template, overrides):
    """
    Wall-clock intervals that apply on ``target_date``.

    An override for the date fully replaces the weekly template; an override
    marked unavailable yields nothing regardless of its slots.
    """
    override = overrides.get(target_date)
    if override is not None:
        if not override.available:
            return []
        return list(override.intervals)

    day = weekly_template.get(target_date.weekday())
    if day is None or not day.enabled:
        return []
    return list(day.intervals)


def resolve_available_slots(target_date, duration_minutes, policy, weekly_template, overrides,
                            existing_bookings, now, step_minutes=DEFAULT_SLOT_STEP_MINUTES):
    """
    Compute bookable slots for one host-local date.

    Args:
        target_date: Date in the host's timezone
        duration_minutes: Meeting length
        policy: Object exposing ``timezone``, ``buffer_minutes`` and ``min_notice_hours``
        weekly_template: Mapping weekday -> DayTemplate
        overrides: Mapping date -> DateOverride
        existing_bookings: TimeIntervals occupied by pending/confirmed bookings
        now: Current aware instant

    Returns:
        TimeIntervals in ascending start order. Overlapping source intervals
        may produce the same slot twice; duplicates are kept.
    """
    if duration_minutes <= 0:
        return []

    sources = get_source_intervals(target_date, weekly_template, overrides)
    if not sources:
        return []

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    earliest_start = now + timedelta(hours=policy.min_notice_hours)
    blocked = [booking.buffered(policy.buffer_minutes) for booking in existing_bookings]

    slots = []
    for source in sources:
        window = source.to_utc(target_date, policy.timezone)
        candidate_start = window.start

        while candidate_start + duration <= window.end:
            candidate = TimeInterval(candidate_start, candidate_start + duration)
            if candidate_start >= earliest_start and not any(candidate.overlaps(b) for b in blocked):
                slots.append(candidate)
            candidate_start += step

    slots.sort()
    return slots


def host_local_date(policy, instant):
    return instant.astimezone(get_zone(policy.timezone)).date()


def is_within_booking_window(policy, target_date, now):
    """Dates from host-local today up to ``max_advance_days`` ahead are bookable."""
    today = host_local_date(policy, now)
    return today <= target_date <= today + timedelta(days=policy.max_advance_days)


def get_or_create_policy(organizer):
    """Fetch the host's policy, seeding defaults on first access."""
    policy = AvailabilityPolicy.objects.filter(organizer=organizer).first()
    if policy is not None:
        return policy

    with transaction.atomic():
        policy, created = AvailabilityPolicy.objects.get_or_create(
            organizer=organizer,
            defaults={
                'timezone': settings.AVAILABILITY_DEFAULT_TIMEZONE,
                'buffer_minutes': settings.AVAILABILITY_DEFAULT_BUFFER_MINUTES,
                'max_advance_days': settings.AVAILABILITY_DEFAULT_MAX_ADVANCE_DAYS,
                'min_notice_hours': settings.AVAILABILITY_DEFAULT_MIN_NOTICE_HOURS,
            }
        )
        if created and not AvailabilityRule.objects.filter(organizer=organizer).exists():
            start = parse_wall_clock(settings.AVAILABILITY_DEFAULT_START)
            end = parse_wall_clock(settings.AVAILABILITY_DEFAULT_END)
            AvailabilityRule.objects.bulk_create([
                AvailabilityRule(organizer=organizer, day_of_week=day, start_time=start, end_time=end)
                for day in policy.enabled_weekdays
            ])
            logger.info(f"Created default availability for {organizer.email}")

    return policy


def load_weekly_template(organizer, policy):
    intervals_by_day = defaultdict(list)
    for rule in AvailabilityRule.objects.filter(organizer=organizer):
        intervals_by_day[rule.day_of_week].append(rule.as_interval())

    return {
        day: DayTemplate(
            enabled=policy.is_weekday_enabled(day),
            intervals=tuple(sorted(intervals_by_day.get(day, [])))
        )
        for day in range(7)
    }


def load_overrides(organizer, start_date, end_date):
    overrides = {}
    for rule in DateOverrideRule.objects.filter(organizer=organizer, date__gte=start_date, date__lte=end_date):
        overrides[rule.date] = DateOverride(
            date=rule.date,
            available=rule.is_available,
            intervals=tuple(rule.get_intervals()),
            reason=rule.reason,
        )
    return overrides


def get_day_window(policy, target_date):
    zone = get_zone(policy.timezone)
    start = datetime.combine(target_date, time.min, tzinfo=zone)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=zone)
    return TimeInterval(start, end)


def get_available_slots_for_date(meeting_type, target_date, clock=None, exclude_booking_id=None):
    """Slots currently offered for ``meeting_type`` on a host-local date."""
    from apps.events.conflicts import get_active_booking_intervals

    now = (clock or default_clock).now()
    organizer = meeting_type.organizer
    policy = get_or_create_policy(organizer)

    if not is_within_booking_window(policy, target_date, now):
        return []

    window = get_day_window(policy, target_date).buffered(policy.buffer_minutes)
    booked = get_active_booking_intervals(organizer.id, window, exclude_booking_id=exclude_booking_id)

    return resolve_available_slots(
        target_date=target_date,
        duration_minutes=meeting_type.duration_minutes,
        policy=policy,
        weekly_template=load_weekly_template(organizer, policy),
        overrides=load_overrides(organizer, target_date, target_date),
        existing_bookings=[interval for booking_id, interval in booked],
        now=now,
        step_minutes=settings.AVAILABILITY_SLOT_STEP_MINUTES,
    )


def is_slot_offered(meeting_type, start, clock=None, exclude_booking_id=None):
    """True if a slot starting exactly at ``start`` is currently offered."""
    policy = get_or_create_policy(meeting_type.organizer)
    local_date = host_local_date(policy, start)
    slots = get_available_slots_for_date(
        meeting_type, local_date, clock=clock, exclude_booking_id=exclude_booking_id
    )
    return any(slot.start == start for slot in slots)


def parse_interval_list(raw_intervals):
    """Parse [{'start': 'HH:MM', 'end': 'HH:MM'}, ...] and reject overlaps."""
    try:
        intervals = [WallClockInterval.parse(item['start'], item['end']) for item in raw_intervals]
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid interval: {e}")

    overlaps = find_overlaps(intervals)
    if overlaps:
        first, second = overlaps[0]
        raise ValidationError(
            f"Intervals {first.to_dict()} and {second.to_dict()} overlap"
        )
    return intervals


def update_availability(organizer, policy_fields=None, weekly_template=None):
    """
    Host availability update.

    ``weekly_template`` replaces the whole template when given: a list of
    ``{'day_of_week', 'enabled', 'intervals'}`` dicts. Days left out keep no
    intervals and are disabled.
    """
    policy_fields = policy_fields or {}
    tz_name = policy_fields.get('timezone')
    if tz_name is not None and not is_valid_timezone(tz_name):
        raise ValidationError(f"Unknown timezone: {tz_name}")

    parsed_days = None
    if weekly_template is not None:
        parsed_days = {}
        for day in weekly_template:
            day_of_week = day.get('day_of_week')
            if day_of_week not in range(7):
                raise ValidationError(f"Invalid day_of_week: {day_of_week}")
            if day_of_week in parsed_days:
                raise ValidationError(f"Duplicate entry for day_of_week {day_of_week}")
            parsed_days[day_of_week] = (
                bool(day.get('enabled', True)),
                parse_interval_list(day.get('intervals', []))
            )

    with transaction.atomic():
        policy = get_or_create_policy(organizer)
        policy = AvailabilityPolicy.objects.select_for_update().get(id=policy.id)

        for field_name in ('timezone', 'buffer_minutes', 'max_advance_days', 'min_notice_hours'):
            if field_name in policy_fields:
                setattr(policy, field_name, policy_fields[field_name])

        if parsed_days is not None:
            AvailabilityRule.objects.filter(organizer=organizer).delete()
            AvailabilityRule.objects.bulk_create([
                AvailabilityRule(
                    organizer=organizer, day_of_week=day_of_week,
                    start_time=interval.start, end_time=interval.end
                )
                for day_of_week, (enabled, intervals) in parsed_days.items()
                for interval in intervals
            ])
            policy.enabled_weekdays = sorted(
                day_of_week for day_of_week, (enabled, intervals) in parsed_days.items() if enabled
            )

        policy.save()

    logger.info(f"Updated availability for {organizer.email}")
    return policy


def set_date_override(organizer, date, is_available, slots=None, reason=''):
    """Create or replace the override for ``date``; the last write wins."""
    intervals = parse_interval_list(slots or []) if is_available else []

    override, created = DateOverrideRule.objects.update_or_create(
        organizer=organizer,
        date=date,
        defaults={
            'is_available': is_available,
            'slots': [interval.to_dict() for interval in intervals],
            'reason': reason or '',
        }
    )
    logger.info(f"{'Created' if created else 'Replaced'} date override {date} for {organizer.email}")
    return override


def delete_date_override(organizer, date):
    deleted, _ = DateOverrideRule.objects.filter(organizer=organizer, date=date).delete()
    return deleted > 0


def get_availability_snapshot(organizer):
    """Policy, weekly template and upcoming overrides in API shape."""
    policy = get_or_create_policy(organizer)
    template = load_weekly_template(organizer, policy)
    today = host_local_date(policy, default_clock.now())

    return {
        'timezone': policy.timezone,
        'buffer_minutes': policy.buffer_minutes,
        'max_advance_days': policy.max_advance_days,
        'min_notice_hours': policy.min_notice_hours,
        'weekly_template': [
            {
                'day_of_week': day,
                'day_name': dict(AvailabilityRule.WEEKDAY_CHOICES)[day],
                'enabled': template[day].enabled,
                'intervals': [interval.to_dict() for interval in template[day].intervals],
            }
            for day in range(7)
        ],
        'overrides': [
            {
                'date': rule.date.isoformat(),
                'is_available': rule.is_available,
                'slots': rule.slots,
                'reason': rule.reason,
            }
            for rule in DateOverrideRule.objects.filter(organizer=organizer, date__gte=today)
        ],
    }
