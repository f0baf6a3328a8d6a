from collections import namedtuple
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from apps.availability.intervals import TimeInterval, is_valid_timezone
from apps.availability.utils import is_slot_offered
from apps.common.clock import FixedClock
from apps.common.exceptions import (
    DependencyFailure, InactiveResource, LimitExceeded, NotFound, SlotUnavailable, ValidationError
)
from apps.common.utils import load_collaborator
from apps.notifications.utils import ReminderScheduler
from .conflicts import booking_write_lock, check_conflict
from .models import Booking, BookingAuditLog, MeetingType
import logging
import re

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Result of create/reschedule: SlotUnavailable and LimitExceeded come back as
# ``error`` instead of being raised.
BookingOutcome = namedtuple('BookingOutcome', ['booking', 'error'])


def create_booking_audit_log(booking, action, description, actor_type='system', actor_email='', metadata=None):
    """Create audit log entry for booking actions."""
    return BookingAuditLog.objects.create(
        booking=booking,
        action=action,
        description=description,
        actor_type=actor_type,
        actor_email=actor_email or '',
        metadata=metadata or {}
    )


def record_dependency_failure(booking, collaborator, error):
    """Log a failed collaborator call against the booking; never raises."""
    failure = DependencyFailure(f"{collaborator} failed: {str(error)}", collaborator=collaborator)
    logger.error(f"Dependency failure for booking {booking.id}: {failure.message}")
    create_booking_audit_log(
        booking=booking,
        action='dependency_failed',
        description=failure.message,
        metadata={'collaborator': collaborator}
    )
    return failure


def get_video_link_provider():
    return load_collaborator('VIDEO_LINK_PROVIDER')


def get_payment_provider():
    return load_collaborator('PAYMENT_PROVIDER')


def validate_guest_data(guest_data):
    """
    Normalize guest fields.

    Raises ValidationError when name or email is missing, the email is
    malformed or the timezone is unknown.
    """
    name = (guest_data.get('guest_name') or '').strip()
    email = (guest_data.get('guest_email') or '').strip()

    if not name or not email:
        raise ValidationError('Missing required fields: guest_name, guest_email')
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Invalid email format')

    guest_timezone = guest_data.get('guest_timezone') or 'UTC'
    if not is_valid_timezone(guest_timezone):
        raise ValidationError(f'Unknown timezone: {guest_timezone}')

    return {
        'guest_name': name,
        'guest_email': email.lower(),
        'guest_phone': (guest_data.get('guest_phone') or '').strip(),
        'guest_timezone': guest_timezone,
        'guest_notes': guest_data.get('guest_notes') or '',
    }


def get_booking_by_token(token):
    if not token:
        raise ValidationError('Booking token is required')
    try:
        return Booking.objects.select_related('meeting_type', 'organizer').get(booking_token=token)
    except Booking.DoesNotExist:
        raise NotFound('Booking not found')


def _resolve_clock(scheduler, now):
    if now is not None:
        return FixedClock(now)
    return scheduler.clock


def _ensure_aware(value, field_name):
    if value is None or timezone.is_naive(value):
        raise ValidationError(f'{field_name} must include a timezone offset', field=field_name)


def _slot_conflict(organizer_id, interval, message, exclude_booking_id=None):
    conflict = check_conflict(organizer_id, interval, exclude_booking_id=exclude_booking_id)
    if conflict.ok:
        return None
    return SlotUnavailable(message, conflicting_booking_id=str(conflict.conflicting_booking_id))


def notify_guest(booking, kind, scheduler, extra=None):
    """Send a one-off lifecycle notification. Returns True when delivered."""
    if scheduler.dispatcher is None:
        logger.warning(f"No notification dispatcher configured, skipping {kind} for booking {booking.id}")
        return False

    try:
        delivered = scheduler.dispatcher.send(kind, booking, booking.meeting_type, extra)
    except Exception as e:
        logger.error(f"Dispatcher raised sending {kind} for booking {booking.id}: {str(e)}")
        delivered = False

    create_booking_audit_log(
        booking=booking,
        action='notification_sent' if delivered else 'notification_failed',
        description=f"{kind} notification {'sent' if delivered else 'failed'}",
        metadata={'kind': kind}
    )
    return delivered


def send_cancellation_notice(booking, scheduler, now):
    """Send the cancellation notice at most once per booking."""
    claimed = Booking.objects.filter(
        id=booking.id, cancellation_notified_at__isnull=True
    ).update(cancellation_notified_at=now)
    if not claimed:
        logger.info(f"Cancellation for booking {booking.id} already notified")
        return False

    booking.cancellation_notified_at = now
    return notify_guest(booking, 'cancelled', scheduler, extra={'reason': booking.cancellation_reason})


def send_status_notice(booking, scheduler, now, notes=''):
    """Send the completed/no-show notice at most once per booking."""
    claimed = Booking.objects.filter(
        id=booking.id, status_notified_at__isnull=True
    ).update(status_notified_at=now)
    if not claimed:
        return False

    booking.status_notified_at = now
    return notify_guest(booking, booking.status, scheduler, extra={'reason': notes})


def run_post_create_effects(booking, meeting_type, scheduler):
    """
    Call external collaborators for a freshly committed booking.

    Failures are recorded as DependencyFailure and never undo the booking.
    """
    failures = []

    video_provider = get_video_link_provider()
    if video_provider is not None and meeting_type.location_type == 'video_call':
        try:
            booking.video_link = video_provider.create_link(booking, meeting_type) or ''
            booking.save(update_fields=['video_link', 'updated_at'])
        except Exception as e:
            failures.append(record_dependency_failure(booking, 'video_link_provider', e))

    if meeting_type.requires_payment:
        payment_provider = get_payment_provider()
        if payment_provider is None:
            logger.warning(f"Meeting type {meeting_type.id} requires payment but no provider is configured")
        else:
            try:
                booking.payment_url = payment_provider.create_payment_url(booking, meeting_type) or ''
                booking.save(update_fields=['payment_url', 'updated_at'])
            except Exception as e:
                failures.append(record_dependency_failure(booking, 'payment_provider', e))

    try:
        scheduler.schedule_reminders(booking)
    except Exception as e:
        failures.append(record_dependency_failure(booking, 'reminder_scheduler', e))

    return failures


def create_booking(meeting_type_id, scheduled_at, guest_data, now=None, scheduler=None):
    """
    Book a slot for a guest.

    Returns a BookingOutcome; ``error`` is a SlotUnavailable when the slot is
    not offered or was taken concurrently. Raises NotFound, InactiveResource
    or ValidationError for bad input.
    """
    scheduler = scheduler or ReminderScheduler()
    clock = _resolve_clock(scheduler, now)

    guest = validate_guest_data(guest_data)
    _ensure_aware(scheduled_at, 'scheduled_at')

    try:
        meeting_type = MeetingType.objects.select_related('organizer').get(id=meeting_type_id)
    except (MeetingType.DoesNotExist, DjangoValidationError):
        raise NotFound('Meeting type not found')
    if not meeting_type.is_active:
        raise InactiveResource('Meeting type is not active')

    if not is_slot_offered(meeting_type, scheduled_at, clock=clock):
        return BookingOutcome(None, SlotUnavailable('Time slot is no longer available'))

    organizer = meeting_type.organizer
    interval = TimeInterval.from_start(scheduled_at, meeting_type.duration_minutes)

    try:
        with booking_write_lock(organizer.id):
            error = _slot_conflict(organizer.id, interval, 'Time slot is no longer available')
            if error:
                return BookingOutcome(None, error)

            booking = Booking.objects.create(
                meeting_type=meeting_type,
                organizer=organizer,
                scheduled_at=scheduled_at,
                duration_minutes=meeting_type.duration_minutes,
                status='pending' if meeting_type.requires_payment else 'confirmed',
                payment_status='pending' if meeting_type.requires_payment else 'not_required',
                max_reschedules=meeting_type.max_reschedules,
                **guest
            )
    except IntegrityError:
        error = _slot_conflict(organizer.id, interval, 'Time slot is no longer available')
        if error:
            logger.info(f"Concurrent booking won slot {scheduled_at} for {organizer.email}")
            return BookingOutcome(None, error)
        raise

    logger.info(f"Created booking {booking.id} for {booking.guest_email} at {booking.scheduled_at}")
    create_booking_audit_log(
        booking=booking,
        action='booking_created',
        description=f"Booking created by {booking.guest_name}",
        actor_type='invitee',
        actor_email=booking.guest_email,
        metadata={'scheduled_at': booking.scheduled_at.isoformat(), 'status': booking.status}
    )

    run_post_create_effects(booking, meeting_type, scheduler)
    return BookingOutcome(booking, None)


def confirm_booking(booking, now=None, scheduler=None, actor_type='system', actor_email=''):
    """Move a pending booking to confirmed (payment received)."""
    if booking.status == 'confirmed':
        return booking

    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(id=booking.id)
        if booking.status == 'confirmed':
            return booking
        if not booking.can_transition_to('confirmed'):
            raise ValidationError(f"Cannot confirm a {booking.status} booking")

        booking.status = 'confirmed'
        update_fields = ['status', 'updated_at']
        if booking.payment_status == 'pending':
            booking.payment_status = 'paid'
            update_fields.append('payment_status')
        booking.save(update_fields=update_fields)

    create_booking_audit_log(
        booking=booking,
        action='booking_confirmed',
        description="Booking confirmed",
        actor_type=actor_type,
        actor_email=actor_email
    )
    return booking


def reschedule_booking(token, new_scheduled_at, reason='', now=None, scheduler=None):
    """
    Move a booking to a new start time.

    The reschedule limit is checked before anything else. Returns a
    BookingOutcome carrying LimitExceeded or SlotUnavailable on refusal.
    """
    scheduler = scheduler or ReminderScheduler()
    now = now or scheduler.clock.now()
    booking = get_booking_by_token(token)

    if booking.reschedule_count >= booking.max_reschedules:
        return BookingOutcome(booking, LimitExceeded('Maximum reschedule limit reached'))
    if not booking.is_active:
        raise ValidationError(f"Cannot reschedule a {booking.status} booking")

    _ensure_aware(new_scheduled_at, 'scheduled_at')
    if new_scheduled_at <= now:
        raise ValidationError('New time must be in the future', field='scheduled_at')

    interval = TimeInterval.from_start(new_scheduled_at, booking.duration_minutes)
    previous_start = booking.scheduled_at

    try:
        with booking_write_lock(booking.organizer_id):
            booking = Booking.objects.select_for_update().get(id=booking.id)
            if booking.reschedule_count >= booking.max_reschedules:
                return BookingOutcome(booking, LimitExceeded('Maximum reschedule limit reached'))

            error = _slot_conflict(
                booking.organizer_id, interval, 'New time slot is not available', exclude_booking_id=booking.id
            )
            if error:
                return BookingOutcome(booking, error)

            booking.scheduled_at = new_scheduled_at
            booking.reschedule_count += 1
            booking.rescheduled_at = now
            booking.save(update_fields=['scheduled_at', 'reschedule_count', 'rescheduled_at', 'updated_at'])
    except IntegrityError:
        booking = Booking.objects.get(id=booking.id)
        error = _slot_conflict(
            booking.organizer_id, interval, 'New time slot is not available', exclude_booking_id=booking.id
        )
        if error:
            return BookingOutcome(booking, error)
        raise

    logger.info(f"Rescheduled booking {booking.id} from {previous_start} to {new_scheduled_at}")
    create_booking_audit_log(
        booking=booking,
        action='booking_rescheduled',
        description=f"Booking rescheduled ({booking.reschedule_count}/{booking.max_reschedules})",
        actor_type='invitee',
        actor_email=booking.guest_email,
        metadata={
            'previous_scheduled_at': previous_start.isoformat(),
            'new_scheduled_at': new_scheduled_at.isoformat(),
            'reason': reason or '',
        }
    )

    try:
        scheduler.reschedule_reminders(booking)
    except Exception as e:
        record_dependency_failure(booking, 'reminder_scheduler', e)

    notify_guest(booking, 'rescheduled', scheduler, extra={'reason': reason})
    return BookingOutcome(booking, None)


def cancel_booking(booking, cancelled_by='invitee', reason='', now=None, scheduler=None):
    """
    Cancel a pending or confirmed booking.

    Cancelling an already cancelled booking returns it unchanged.
    """
    scheduler = scheduler or ReminderScheduler()
    now = now or scheduler.clock.now()

    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(id=booking.id)
        newly_cancelled = booking.status != 'cancelled'

        if newly_cancelled:
            if not booking.can_be_cancelled():
                raise ValidationError(f"Cannot cancel a {booking.status} booking")

            booking.status = 'cancelled'
            booking.cancelled_at = now
            booking.cancelled_by = cancelled_by
            booking.cancellation_reason = reason or 'No reason provided'
            booking.save(update_fields=[
                'status', 'cancelled_at', 'cancelled_by', 'cancellation_reason', 'updated_at'
            ])

    if newly_cancelled:
        logger.info(f"Booking {booking.id} cancelled by {cancelled_by}")
        scheduler.cancel_reminders(booking.id)
        create_booking_audit_log(
            booking=booking,
            action='booking_cancelled',
            description=f"Booking cancelled by {cancelled_by}",
            actor_type=cancelled_by,
            actor_email=booking.guest_email if cancelled_by == 'invitee' else '',
            metadata={'reason': booking.cancellation_reason}
        )

    send_cancellation_notice(booking, scheduler, now)
    return booking


def update_booking_status(booking, new_status, notes='', actor=None, now=None, scheduler=None, notify=True):
    """
    Host-driven status change following Booking.ALLOWED_TRANSITIONS.

    Terminal statuses cancel pending reminders; completed keeps the follow-up.
    """
    scheduler = scheduler or ReminderScheduler()
    now = now or scheduler.clock.now()
    actor_email = getattr(actor, 'email', '') or ''

    if new_status not in dict(Booking.STATUS_CHOICES):
        raise ValidationError(f"Invalid status: {new_status}", field='status')
    if new_status == booking.status:
        return booking
    if not booking.can_transition_to(new_status):
        raise ValidationError(f"Cannot change status from {booking.status} to {new_status}")

    if new_status == 'cancelled':
        return cancel_booking(
            booking, cancelled_by='organizer', reason=notes or 'Cancelled by host', now=now, scheduler=scheduler
        )
    if new_status == 'confirmed':
        return confirm_booking(booking, now=now, scheduler=scheduler, actor_type='organizer', actor_email=actor_email)

    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(id=booking.id)
        if not booking.can_transition_to(new_status):
            raise ValidationError(f"Cannot change status from {booking.status} to {new_status}")
        previous_status = booking.status
        booking.status = new_status
        booking.save(update_fields=['status', 'updated_at'])

    create_booking_audit_log(
        booking=booking,
        action='status_changed',
        description=f"Status changed from {previous_status} to {new_status}",
        actor_type='organizer' if actor else 'system',
        actor_email=actor_email,
        metadata={'previous_status': previous_status, 'new_status': new_status, 'notes': notes or ''}
    )

    if new_status == 'completed':
        scheduler.cancel_reminders(booking.id, exclude_kinds=['follow_up'])
    else:
        scheduler.cancel_reminders(booking.id)

    if notify:
        send_status_notice(booking, scheduler, now, notes)
    return booking


def delete_booking(booking, now=None, scheduler=None):
    """
    Remove a booking with its reminders and logs.

    Completed bookings are kept for the record. A guest whose booking was
    still live gets a cancellation notice first.
    """
    if booking.status == 'completed':
        raise ValidationError('Completed bookings cannot be deleted')

    scheduler = scheduler or ReminderScheduler()
    now = now or scheduler.clock.now()

    if booking.status != 'cancelled':
        booking.cancellation_reason = booking.cancellation_reason or 'Booking has been cancelled and removed'
        send_cancellation_notice(booking, scheduler, now)

    booking_id = booking.id
    booking.delete()
    logger.info(f"Booking {booking_id} deleted")
    return booking_id
