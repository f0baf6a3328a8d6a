"""
Conflict checks between a proposed booking and the host's committed bookings.

Two bookings conflict when either one, padded by the host's buffer, overlaps
the other. Writes must hold ``booking_write_lock`` so the check and the insert
happen atomically per host.
"""
from collections import namedtuple
from contextlib import contextmanager
from datetime import timedelta
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from .models import Booking

ConflictResult = namedtuple('ConflictResult', ['ok', 'conflicting_booking_id'])


def get_active_booking_intervals(organizer_id, window, exclude_booking_id=None):
    """
    (booking_id, TimeInterval) pairs of pending/confirmed bookings that
    overlap ``window``.
    """
    max_duration = timedelta(minutes=settings.BOOKING_MAX_DURATION_MINUTES)
    queryset = Booking.objects.filter(
        organizer_id=organizer_id,
        status__in=Booking.ACTIVE_STATUSES,
        scheduled_at__lt=window.end,
        scheduled_at__gt=window.start - max_duration,
    )
    if exclude_booking_id is not None:
        queryset = queryset.exclude(id=exclude_booking_id)

    result = []
    for booking in queryset.only('id', 'scheduled_at', 'duration_minutes').order_by('scheduled_at'):
        interval = booking.interval
        if interval.overlaps(window):
            result.append((booking.id, interval))
    return result


def check_conflict(organizer_id, proposed_interval, exclude_booking_id=None, buffer_minutes=None):
    """
    Check ``proposed_interval`` against the host's active bookings.

    ``buffer_minutes`` defaults to the host's availability policy.
    """
    if buffer_minutes is None:
        from apps.availability.models import AvailabilityPolicy
        policy = AvailabilityPolicy.objects.filter(organizer_id=organizer_id).only('buffer_minutes').first()
        buffer_minutes = policy.buffer_minutes if policy else settings.AVAILABILITY_DEFAULT_BUFFER_MINUTES

    padded = proposed_interval.buffered(buffer_minutes)
    overlapping = get_active_booking_intervals(organizer_id, padded, exclude_booking_id=exclude_booking_id)
    if overlapping:
        return ConflictResult(ok=False, conflicting_booking_id=overlapping[0][0])

    return ConflictResult(ok=True, conflicting_booking_id=None)


@contextmanager
def booking_write_lock(organizer_id):
    """
    Serialize booking writes for one host.

    Opens a transaction and locks the host's user row; concurrent writers for
    the same host wait here until the holder commits.
    """
    with transaction.atomic():
        get_user_model().objects.select_for_update().only('id').get(id=organizer_id)
        yield
