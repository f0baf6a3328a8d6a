from datetime import timedelta
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count
from apps.common.clock import default_clock
from apps.common.exceptions import NotFound, ValidationError
from apps.common.retry import BackoffPolicy
from .dispatchers import build_subject, get_notification_dispatcher
from .models import Reminder
from .queues import get_delayed_queue
import logging

logger = logging.getLogger(__name__)

# Reminder kind -> dispatcher notification kind
REMINDER_DISPATCH_KINDS = {
    'confirmation': 'confirmation',
    '24h': 'reminder_24h',
    '1h': 'reminder_1h',
    'follow_up': 'follow_up',
}

ADVANCE_REMINDERS = (
    ('24h', timedelta(hours=24)),
    ('1h', timedelta(hours=1)),
)


def plan_reminders(booking, now, include_confirmation=True, follow_up_delay_minutes=None):
    """
    (kind, fire_at) pairs for a booking.

    Advance reminders whose fire time is not in the future are left out; the
    follow-up is always planned.
    """
    if follow_up_delay_minutes is None:
        follow_up_delay_minutes = settings.REMINDER_FOLLOW_UP_DELAY_MINUTES

    plan = []
    if include_confirmation:
        plan.append(('confirmation', now))

    for kind, lead_time in ADVANCE_REMINDERS:
        fire_at = booking.scheduled_at - lead_time
        if fire_at > now:
            plan.append((kind, fire_at))

    plan.append(('follow_up', booking.end_time + timedelta(minutes=follow_up_delay_minutes)))
    return plan


def reminder_applies_to_booking(reminder, booking):
    """Reminders fire only for active bookings; follow-ups also after completion."""
    if booking.status in booking.ACTIVE_STATUSES:
        return True
    return reminder.kind == 'follow_up' and booking.status == 'completed'


class ReminderScheduler:
    """
    Persists reminder jobs and hands them to the delayed queue.

    Every job is written as ``pending`` before it is published, so a lost
    queue message can be recovered from the table.
    """

    def __init__(self, queue=None, dispatcher=None, clock=None, retry_policy=None):
        self.queue = queue if queue is not None else get_delayed_queue()
        self.dispatcher = dispatcher if dispatcher is not None else get_notification_dispatcher()
        self.clock = clock or default_clock
        self.retry_policy = retry_policy or BackoffPolicy.from_setting('REMINDER_RETRY_BACKOFF')

    def schedule_reminders(self, booking, include_confirmation=True):
        now = self.clock.now()
        pending_kinds = set(
            Reminder.objects.filter(booking=booking, status='pending').values_list('kind', flat=True)
        )

        created = []
        with transaction.atomic():
            for kind, fire_at in plan_reminders(booking, now, include_confirmation=include_confirmation):
                if kind in pending_kinds:
                    logger.warning(f"Booking {booking.id} already has a pending {kind} reminder, skipping")
                    continue
                created.append(Reminder.objects.create(
                    booking=booking,
                    kind=kind,
                    fire_at=fire_at,
                    recipient_email=booking.guest_email,
                    subject=build_subject(REMINDER_DISPATCH_KINDS[kind], booking.meeting_type),
                ))

        for reminder in created:
            if reminder.kind == 'confirmation' and settings.REMINDER_CONFIRMATION_INLINE:
                self.deliver_reminder(reminder.id)
            else:
                self.enqueue(reminder)

        logger.info(f"Scheduled {len(created)} reminders for booking {booking.id}")
        return created

    def enqueue(self, reminder, delay=None):
        """Publish a pending reminder; failures are logged and left for the overdue sweep."""
        from .tasks import send_reminder_task

        not_before = None if delay is not None else reminder.fire_at
        try:
            handle = self.queue.publish(
                send_reminder_task,
                {'reminder_id': str(reminder.id)},
                not_before=not_before,
                delay=delay,
            )
        except Exception as e:
            logger.error(f"Delayed queue publish failed for reminder {reminder.id}: {str(e)}")
            return None

        reminder.queue_handle = str(handle or '')
        Reminder.objects.filter(id=reminder.id).update(queue_handle=reminder.queue_handle)
        return handle

    def cancel_reminders(self, booking_id, exclude_kinds=None):
        """Flip pending reminders of a booking to cancelled. Returns the count."""
        queryset = Reminder.objects.filter(booking_id=booking_id, status='pending')
        if exclude_kinds:
            queryset = queryset.exclude(kind__in=exclude_kinds)

        cancelled = queryset.update(status='cancelled', updated_at=self.clock.now())
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending reminders for booking {booking_id}")
        return cancelled

    def reschedule_reminders(self, booking):
        self.cancel_reminders(booking.id)
        return self.schedule_reminders(booking, include_confirmation=False)

    def deliver_reminder(self, reminder_id):
        """
        Deliver one reminder.

        Safe to call any number of times: the row is locked while sending and
        only a ``pending`` reminder is ever handed to the dispatcher.
        """
        from apps.events.models import Booking
        from apps.events.utils import create_booking_audit_log

        now = self.clock.now()

        with transaction.atomic():
            try:
                reminder = Reminder.objects.select_for_update().get(id=reminder_id)
            except (Reminder.DoesNotExist, DjangoValidationError):
                logger.warning(f"Reminder {reminder_id} not found")
                return False

            if reminder.status == 'sent':
                logger.info(f"Reminder {reminder_id} already sent")
                return True
            if reminder.status != 'pending':
                logger.info(f"Skipping reminder {reminder_id} with status {reminder.status}")
                return False

            booking = Booking.objects.select_related('meeting_type', 'organizer').get(id=reminder.booking_id)
            if not reminder_applies_to_booking(reminder, booking):
                reminder.mark_cancelled()
                logger.info(f"Cancelled reminder {reminder_id}: booking {booking.id} is {booking.status}")
                return False

            reminder.attempts += 1
            error_message = ''
            try:
                delivered = self.dispatcher.send(
                    REMINDER_DISPATCH_KINDS[reminder.kind], booking, booking.meeting_type
                )
            except Exception as e:
                delivered = False
                error_message = str(e)

            if delivered:
                reminder.mark_sent(now)
            else:
                reminder.mark_failed(error_message or 'Notification dispatcher reported a delivery failure')
                logger.warning(f"Reminder {reminder_id} failed: {reminder.error_message}")

        create_booking_audit_log(
            booking=booking,
            action='notification_sent' if delivered else 'notification_failed',
            description=f"{reminder.get_kind_display()} reminder {'sent' if delivered else 'failed'}",
            metadata={'reminder_id': str(reminder.id), 'kind': reminder.kind, 'attempts': reminder.attempts}
        )
        return delivered

    def retry_failed_reminder(self, reminder_id):
        """
        Re-queue a failed reminder with backoff.

        Failed reminders are never retried automatically; this is the
        explicit retry path. Returns the RetryStep taken.
        """
        from apps.events.models import Booking

        with transaction.atomic():
            try:
                reminder = Reminder.objects.select_for_update().get(id=reminder_id)
            except (Reminder.DoesNotExist, DjangoValidationError):
                raise NotFound(f"Reminder {reminder_id} not found")

            if reminder.status != 'failed':
                raise ValidationError(f"Only failed reminders can be retried (status is {reminder.status})")

            step = self.retry_policy.next_step(reminder.retry_count)
            if step.exhausted:
                logger.warning(f"Reminder {reminder_id} exhausted {self.retry_policy.max_attempts} retries")
                return step

            booking = Booking.objects.get(id=reminder.booking_id)
            if not reminder_applies_to_booking(reminder, booking):
                raise ValidationError(f"Booking is {booking.status}; reminder can no longer be sent")

            if Reminder.objects.filter(booking_id=reminder.booking_id, kind=reminder.kind, status='pending').exists():
                raise ValidationError(f"A pending {reminder.kind} reminder already exists for this booking")

            reminder.status = 'pending'
            reminder.retry_count += 1
            reminder.error_message = ''
            reminder.fire_at = self.clock.now() + timedelta(seconds=step.delay_seconds)
            reminder.save(update_fields=['status', 'retry_count', 'error_message', 'fire_at', 'updated_at'])

        self.enqueue(reminder, delay=step.delay_seconds)
        logger.info(f"Retry {reminder.retry_count} for reminder {reminder_id} in {step.delay_seconds}s")
        return step

    def redispatch_overdue_reminders(self, limit=500):
        """Re-publish pending reminders whose fire time passed the grace window."""
        cutoff = self.clock.now() - timedelta(minutes=settings.REMINDER_OVERDUE_GRACE_MINUTES)
        overdue = list(Reminder.objects.filter(status='pending', fire_at__lte=cutoff).order_by('fire_at')[:limit])

        for reminder in overdue:
            self.enqueue(reminder, delay=0)

        if overdue:
            logger.warning(f"Re-published {len(overdue)} overdue reminders")
        return len(overdue)


def get_reminder_stats(organizer):
    """Totals, delivery rate and per-kind counts of a host's reminders."""
    queryset = Reminder.objects.filter(booking__organizer=organizer)

    by_status = {
        row['status']: row['total']
        for row in queryset.values('status').annotate(total=Count('id'))
    }
    by_kind = {
        row['kind']: row['total']
        for row in queryset.values('kind').annotate(total=Count('id'))
    }

    sent = by_status.get('sent', 0)
    failed = by_status.get('failed', 0)
    attempted = sent + failed

    return {
        'total': sum(by_status.values()),
        'sent': sent,
        'failed': failed,
        'pending': by_status.get('pending', 0),
        'cancelled': by_status.get('cancelled', 0),
        'delivery_rate': round(sent / attempted * 100, 1) if attempted else 0.0,
        'by_kind': {kind: by_kind.get(kind, 0) for kind in REMINDER_DISPATCH_KINDS},
    }
