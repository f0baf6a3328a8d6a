from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.text import slugify
from django.core.validators import MinValueValidator, MaxValueValidator
from datetime import timedelta
import uuid
import secrets

from apps.availability.intervals import TimeInterval


def generate_booking_token():
    return secrets.token_urlsafe(settings.BOOKING_TOKEN_BYTES)


def default_max_reschedules():
    return settings.BOOKING_DEFAULT_MAX_RESCHEDULES


class MeetingType(models.Model):
    """Bookable meeting template offered by a host."""
    DURATION_CHOICES = [
        (15, '15 minutes'),
        (30, '30 minutes'),
        (45, '45 minutes'),
        (60, '1 hour'),
        (90, '1.5 hours'),
        (120, '2 hours'),
    ]

    LOCATION_TYPE_CHOICES = [
        ('video_call', 'Video Call'),
        ('phone_call', 'Phone Call'),
        ('in_person', 'In Person'),
        ('custom', 'Custom'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='meeting_types')
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    duration_minutes = models.IntegerField(
        default=30,
        validators=[MinValueValidator(5), MaxValueValidator(480)],
        help_text="Meeting length (minutes)"
    )

    is_active = models.BooleanField(default=True)
    requires_payment = models.BooleanField(
        default=False,
        help_text="Bookings stay pending until payment is confirmed"
    )
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='USD')

    max_reschedules = models.IntegerField(
        default=default_max_reschedules,
        validators=[MinValueValidator(0), MaxValueValidator(20)],
        help_text="How many times a guest may reschedule a booking"
    )

    location_type = models.CharField(
        max_length=20,
        choices=LOCATION_TYPE_CHOICES,
        default='video_call'
    )
    location_details = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'meeting_types'
        unique_together = ['organizer', 'slug']
        verbose_name = 'Meeting Type'
        verbose_name_plural = 'Meeting Types'
        indexes = [
            models.Index(fields=['organizer', 'is_active'], name='meeting_types_org_active_idx'),
        ]

    def __str__(self):
        return f"{self.organizer.email} - {self.name}"

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.name) or 'meeting'
            slug = base_slug
            counter = 1

            # Ensure uniqueness within organizer's meeting types
            while MeetingType.objects.filter(
                organizer=self.organizer,
                slug=slug
            ).exclude(id=self.id).exists():
                slug = f"{base_slug}-{counter}"
                counter += 1

            self.slug = slug

        super().save(*args, **kwargs)


class Booking(models.Model):
    """A guest's reservation of a host's time."""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('cancelled', 'Cancelled'),
        ('completed', 'Completed'),
        ('no_show', 'No Show'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('not_required', 'Not Required'),
        ('pending', 'Pending'),
        ('paid', 'Paid'),
    ]

    CANCELLED_BY_CHOICES = [
        ('organizer', 'Organizer'),
        ('invitee', 'Invitee'),
        ('system', 'System'),
    ]

    ACTIVE_STATUSES = ('pending', 'confirmed')
    TERMINAL_STATUSES = ('cancelled', 'completed', 'no_show')

    ALLOWED_TRANSITIONS = {
        'pending': ('confirmed', 'cancelled'),
        'confirmed': ('completed', 'cancelled', 'no_show'),
        'cancelled': (),
        'completed': (),
        'no_show': (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    meeting_type = models.ForeignKey(MeetingType, on_delete=models.CASCADE, related_name='bookings')
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='organized_bookings')

    # Guest information
    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=20, blank=True)
    guest_timezone = models.CharField(max_length=64, default='UTC')
    guest_notes = models.TextField(blank=True)

    # Booking details
    scheduled_at = models.DateTimeField()
    duration_minutes = models.IntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='confirmed')

    # Guest self-service access
    booking_token = models.CharField(
        max_length=128,
        unique=True,
        default=generate_booking_token,
        help_text="Unguessable token for guest booking management"
    )

    # Rescheduling
    reschedule_count = models.IntegerField(default=0)
    max_reschedules = models.IntegerField(default=default_max_reschedules)
    rescheduled_at = models.DateTimeField(null=True, blank=True)

    # External collaborators
    video_link = models.URLField(blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='not_required')
    payment_url = models.URLField(blank=True)

    # Cancellation details
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=20, choices=CANCELLED_BY_CHOICES, blank=True)
    cancellation_reason = models.TextField(blank=True)

    # One-shot notification markers
    cancellation_notified_at = models.DateTimeField(null=True, blank=True)
    status_notified_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        ordering = ['scheduled_at']
        indexes = [
            models.Index(fields=['organizer', 'status', 'scheduled_at'], name='bookings_org_status_sched_idx'),
            models.Index(fields=['status', 'scheduled_at'], name='bookings_status_sched_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['organizer', 'scheduled_at'],
                condition=Q(status__in=['pending', 'confirmed']),
                name='unique_active_booking_start_per_organizer',
            ),
        ]

    def __str__(self):
        return f"{self.guest_name} - {self.meeting_type.name} - {self.scheduled_at}"

    @property
    def end_time(self):
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def interval(self):
        return TimeInterval(self.scheduled_at, self.end_time)

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())

    def can_be_cancelled(self):
        return self.status in self.ACTIVE_STATUSES

    def can_be_rescheduled(self):
        return self.status in self.ACTIVE_STATUSES and self.reschedule_count < self.max_reschedules

    @property
    def remaining_reschedules(self):
        return max(0, self.max_reschedules - self.reschedule_count)


class BookingAuditLog(models.Model):
    """Audit trail for booking lifecycle actions."""
    ACTION_CHOICES = [
        ('booking_created', 'Booking Created'),
        ('booking_confirmed', 'Booking Confirmed'),
        ('booking_rescheduled', 'Booking Rescheduled'),
        ('booking_cancelled', 'Booking Cancelled'),
        ('status_changed', 'Status Changed'),
        ('notification_sent', 'Notification Sent'),
        ('notification_failed', 'Notification Failed'),
        ('dependency_failed', 'Dependency Failed'),
    ]

    ACTOR_TYPE_CHOICES = [
        ('organizer', 'Organizer'),
        ('invitee', 'Invitee'),
        ('system', 'System'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='audit_logs')

    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    description = models.TextField()

    actor_type = models.CharField(max_length=20, choices=ACTOR_TYPE_CHOICES, default='system')
    actor_email = models.EmailField(blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_audit_logs'
        verbose_name = 'Booking Audit Log'
        verbose_name_plural = 'Booking Audit Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['booking', '-created_at'], name='booking_audit_booking_idx'),
            models.Index(fields=['action', '-created_at'], name='booking_audit_action_idx'),
        ]

    def __str__(self):
        return f"{self.booking_id} - {self.get_action_display()} by {self.actor_type}"
