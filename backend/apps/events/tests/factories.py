"""Shared builders for booking tests."""
from datetime import datetime, timezone as dt_timezone

from apps.availability.utils import get_or_create_policy
from apps.common.clock import FixedClock
from apps.events.models import Booking, MeetingType
from apps.notifications.tests.fakes import RecordingDelayedQueue, RecordingDispatcher
from apps.notifications.utils import ReminderScheduler
from apps.users.models import User

# Monday
MONDAY = datetime(2030, 1, 7, tzinfo=dt_timezone.utc).date()


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=dt_timezone.utc)


def monday_at(hour, minute=0):
    return utc(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute)


def make_organizer(email='host@example.com', **policy_fields):
    user = User.objects.create_user(
        email=email, password='s3cret-pass', first_name='Ada', last_name='Host'
    )
    policy = get_or_create_policy(user)
    if policy_fields:
        for field, value in policy_fields.items():
            setattr(policy, field, value)
        policy.save()
    return user


def make_meeting_type(organizer, **kwargs):
    defaults = {
        'name': 'Intro Call',
        'duration_minutes': 30,
        'location_type': 'phone_call',
    }
    defaults.update(kwargs)
    return MeetingType.objects.create(organizer=organizer, **defaults)


def make_booking(meeting_type, scheduled_at, **kwargs):
    """Insert a booking directly, bypassing the lifecycle checks."""
    defaults = {
        'organizer': meeting_type.organizer,
        'guest_name': 'Grace Guest',
        'guest_email': 'guest@example.com',
        'duration_minutes': meeting_type.duration_minutes,
        'max_reschedules': meeting_type.max_reschedules,
        'status': 'confirmed',
    }
    defaults.update(kwargs)
    return Booking.objects.create(meeting_type=meeting_type, scheduled_at=scheduled_at, **defaults)


def make_scheduler(now, dispatcher=None, queue=None):
    RecordingDelayedQueue.reset()
    return ReminderScheduler(
        queue=queue or RecordingDelayedQueue(),
        dispatcher=dispatcher or RecordingDispatcher(),
        clock=FixedClock(now),
    )


def guest_data(**overrides):
    data = {
        'guest_name': 'Grace Guest',
        'guest_email': 'guest@example.com',
        'guest_timezone': 'Europe/Berlin',
    }
    data.update(overrides)
    return data
