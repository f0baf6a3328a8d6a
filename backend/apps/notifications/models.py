from django.db import models
from django.db.models import Q
import uuid


class Reminder(models.Model):
    """Scheduled notification job tied to a booking."""
    KIND_CHOICES = [
        ('confirmation', 'Confirmation'),
        ('24h', '24 Hours Before'),
        ('1h', '1 Hour Before'),
        ('follow_up', 'Follow-up'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
        ('cancelled', 'Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey('events.Booking', on_delete=models.CASCADE, related_name='reminders')

    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    fire_at = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    recipient_email = models.EmailField()
    subject = models.CharField(max_length=200, blank=True)

    # Execution tracking
    attempts = models.IntegerField(default=0, help_text="Delivery attempts made")
    retry_count = models.IntegerField(default=0, help_text="Explicit retries requested after failure")
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)
    queue_handle = models.CharField(max_length=200, blank=True, help_text="ID returned by the delayed queue")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'reminders'
        verbose_name = 'Reminder'
        verbose_name_plural = 'Reminders'
        ordering = ['fire_at']
        indexes = [
            models.Index(fields=['status', 'fire_at'], name='reminders_status_fire_idx'),
            models.Index(fields=['booking', 'status'], name='reminders_booking_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['booking', 'kind'],
                condition=Q(status='pending'),
                name='unique_pending_reminder_per_kind',
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} for {self.recipient_email} at {self.fire_at} ({self.status})"

    def mark_sent(self, when):
        self.status = 'sent'
        self.sent_at = when
        self.error_message = ''
        self.save(update_fields=['status', 'sent_at', 'error_message', 'attempts', 'updated_at'])

    def mark_failed(self, error_message):
        self.status = 'failed'
        self.error_message = error_message
        self.save(update_fields=['status', 'error_message', 'attempts', 'updated_at'])

    def mark_cancelled(self):
        self.status = 'cancelled'
        self.save(update_fields=['status', 'updated_at'])


class NotificationLog(models.Model):
    """Log of notifications handed to the dispatcher."""
    STATUS_CHOICES = [
        ('sent', 'Sent'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='notification_logs')
    booking = models.ForeignKey(
        'events.Booking', on_delete=models.CASCADE, related_name='notifications', null=True, blank=True
    )

    notification_kind = models.CharField(max_length=30)
    recipient_email = models.EmailField(blank=True)

    subject = models.CharField(max_length=200, blank=True)
    message = models.TextField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='sent')
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification_logs'
        verbose_name = 'Notification Log'
        verbose_name_plural = 'Notification Logs'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.notification_kind} to {self.recipient_email} - {self.status}"
