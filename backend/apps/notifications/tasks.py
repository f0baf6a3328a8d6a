from celery import shared_task
from apps.common.exceptions import BookingEngineError
from .utils import ReminderScheduler
import logging

logger = logging.getLogger(__name__)


@shared_task
def send_reminder_task(reminder_id):
    """Deliver one reminder when its fire time arrives."""
    delivered = ReminderScheduler().deliver_reminder(reminder_id)
    if delivered:
        return f"Reminder {reminder_id} delivered"
    return f"Reminder {reminder_id} not delivered"


@shared_task
def retry_failed_reminder_task(reminder_id):
    """Explicitly retry a failed reminder with backoff."""
    try:
        step = ReminderScheduler().retry_failed_reminder(reminder_id)
    except BookingEngineError as e:
        logger.warning(f"Cannot retry reminder {reminder_id}: {e.message}")
        return f"Cannot retry reminder {reminder_id}: {e.message}"

    if step.exhausted:
        return f"Reminder {reminder_id} has no retries left"
    return f"Reminder {reminder_id} queued for retry in {step.delay_seconds}s"


@shared_task
def dispatch_overdue_reminders():
    """Re-publish pending reminders the queue never delivered."""
    count = ReminderScheduler().redispatch_overdue_reminders()
    return f"Re-published {count} overdue reminders"
