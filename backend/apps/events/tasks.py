from celery import shared_task
from django.conf import settings
from apps.common.clock import default_clock
from datetime import timedelta
from apps.common.exceptions import BookingEngineError
from apps.notifications.utils import ReminderScheduler
from .models import Booking
from .utils import update_booking_status
import logging

logger = logging.getLogger(__name__)


@shared_task
def mark_past_bookings_completed():
    """Mark confirmed bookings that ended past the grace period as completed."""
    cutoff = default_clock.now() - timedelta(minutes=settings.BOOKING_COMPLETION_GRACE_MINUTES)
    candidates = Booking.objects.filter(status='confirmed', scheduled_at__lt=cutoff).select_related('meeting_type')

    scheduler = ReminderScheduler()
    count = 0
    for booking in candidates:
        if booking.end_time > cutoff:
            continue
        try:
            update_booking_status(booking, 'completed', scheduler=scheduler, notify=False)
            count += 1
        except BookingEngineError as e:
            logger.warning(f"Could not complete booking {booking.id}: {e.message}")

    logger.info(f"Marked {count} bookings as completed")
    return f"Marked {count} bookings as completed"
