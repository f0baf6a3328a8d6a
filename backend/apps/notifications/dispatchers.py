"""
Notification dispatchers.

A dispatcher exposes ``send(kind, booking, meeting_type, extra=None) -> bool``
and never raises for delivery problems; False means the notification was not
delivered.
"""
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone
from apps.availability.intervals import get_zone
from apps.common.utils import load_collaborator
from .models import NotificationLog
import logging

logger = logging.getLogger(__name__)

SUBJECTS = {
    'confirmation': "Meeting Confirmed - {title}",
    'reminder_24h': "Reminder: Meeting Tomorrow - {title}",
    'reminder_1h': "Reminder: Meeting in 1 Hour - {title}",
    'follow_up': "Thank You - {title}",
    'rescheduled': "Meeting Rescheduled - {title}",
    'cancelled': "Meeting Cancelled - {title}",
    'completed': "Meeting Completed - {title}",
    'no_show': "Missed Meeting - {title}",
}

INTROS = {
    'confirmation': "Your meeting has been confirmed!",
    'reminder_24h': "This is a reminder that your meeting is tomorrow.",
    'reminder_1h': "This is a reminder that your meeting starts in 1 hour.",
    'follow_up': "Thank you for meeting with us. We hope it was useful.",
    'rescheduled': "Your meeting has been rescheduled.",
    'cancelled': "Your meeting has been cancelled.",
    'completed': "Your meeting has been marked as completed.",
    'no_show': "We missed you at your scheduled meeting.",
}


def get_notification_dispatcher():
    return load_collaborator('NOTIFICATION_DISPATCHER')


def format_meeting_time(booking):
    try:
        zone = get_zone(booking.guest_timezone or 'UTC')
    except ValueError:
        zone = get_zone('UTC')
    local_time = booking.scheduled_at.astimezone(zone)
    return f"{local_time.strftime('%B %d, %Y at %I:%M %p')} ({booking.guest_timezone or 'UTC'})"


def build_subject(kind, meeting_type):
    template = SUBJECTS.get(kind, "{title}")
    return template.format(title=meeting_type.name)


def build_message(kind, booking, meeting_type, extra=None):
    extra = extra or {}
    lines = [
        f"Hi {booking.guest_name},",
        "",
        INTROS.get(kind, f"Update about your meeting: {kind}"),
        "",
        f"Meeting: {meeting_type.name}",
        f"Date & Time: {format_meeting_time(booking)}",
        f"Duration: {booking.duration_minutes} minutes",
        f"Host: {booking.organizer.display_name}",
    ]

    if booking.video_link and kind not in ('cancelled', 'follow_up'):
        lines.append(f"Meeting Link: {booking.video_link}")
    if booking.payment_url and booking.payment_status == 'pending' and kind == 'confirmation':
        lines.append(f"Complete payment: {booking.payment_url}")
    if extra.get('reason'):
        lines.append(f"Reason: {extra['reason']}")
    if kind in ('confirmation', 'rescheduled', 'reminder_24h'):
        lines.append(f"Manage your booking: {settings.BASE_URL}/booking/{booking.booking_token}/")

    lines.extend(["", "Best regards,", f"The {settings.SITE_NAME} Team"])
    return "\n".join(lines)


class EmailNotificationDispatcher:
    """Send plain-text email through Django's mail backend."""

    def send(self, kind, booking, meeting_type, extra=None):
        subject = build_subject(kind, meeting_type)
        message = build_message(kind, booking, meeting_type, extra)

        log = NotificationLog(
            organizer_id=booking.organizer_id,
            booking_id=booking.id,
            notification_kind=kind,
            recipient_email=booking.guest_email,
            subject=subject,
            message=message,
        )

        try:
            send_mail(
                subject,
                message,
                settings.DEFAULT_FROM_EMAIL,
                [booking.guest_email],
                fail_silently=False,
            )
        except Exception as e:
            logger.error(f"Failed to send {kind} email for booking {booking.id}: {str(e)}")
            log.status = 'failed'
            log.error_message = str(e)
            log.save()
            return False

        log.status = 'sent'
        log.sent_at = timezone.now()
        log.save()
        logger.info(f"Sent {kind} email to {booking.guest_email} for booking {booking.id}")
        return True
