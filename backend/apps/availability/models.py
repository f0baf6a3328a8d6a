from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
import uuid

from .intervals import WallClockInterval, is_valid_timezone, parse_wall_clock

WEEKDAY_CHOICES = [
    (0, 'Monday'),
    (1, 'Tuesday'),
    (2, 'Wednesday'),
    (3, 'Thursday'),
    (4, 'Friday'),
    (5, 'Saturday'),
    (6, 'Sunday'),
]


def default_enabled_weekdays():
    return [0, 1, 2, 3, 4]


class AvailabilityPolicy(models.Model):
    """Per-host scheduling policy shared by all of the host's meeting types."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.OneToOneField('users.User', on_delete=models.CASCADE, related_name='availability_policy')

    timezone = models.CharField(max_length=64, default='UTC')
    buffer_minutes = models.IntegerField(
        default=15,
        validators=[MinValueValidator(0), MaxValueValidator(240)],
        help_text="Gap kept free before and after every booking (minutes)"
    )
    max_advance_days = models.IntegerField(
        default=30,
        validators=[MinValueValidator(0), MaxValueValidator(365)],
        help_text="How far ahead guests may book (days)"
    )
    min_notice_hours = models.IntegerField(
        default=2,
        validators=[MinValueValidator(0), MaxValueValidator(720)],
        help_text="Minimum notice before a slot can be booked (hours)"
    )
    enabled_weekdays = models.JSONField(
        default=default_enabled_weekdays,
        blank=True,
        help_text="Weekdays (0=Monday) on which the weekly template applies"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'availability_policies'
        verbose_name = 'Availability Policy'
        verbose_name_plural = 'Availability Policies'

    def __str__(self):
        return f"Availability policy for {self.organizer.email}"

    def clean(self):
        super().clean()
        if not is_valid_timezone(self.timezone):
            raise ValidationError({'timezone': f"Unknown timezone: {self.timezone}"})
        invalid = [d for d in self.enabled_weekdays or [] if d not in range(7)]
        if invalid:
            raise ValidationError({'enabled_weekdays': f"Invalid weekdays: {invalid}"})

    def is_weekday_enabled(self, weekday):
        return weekday in (self.enabled_weekdays or [])


class AvailabilityRule(models.Model):
    """One wall-clock interval of the host's weekly template."""
    WEEKDAY_CHOICES = WEEKDAY_CHOICES

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='availability_rules')

    # Day of week (0=Monday, 6=Sunday)
    day_of_week = models.IntegerField(choices=WEEKDAY_CHOICES)

    start_time = models.TimeField()
    end_time = models.TimeField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'availability_rules'
        verbose_name = 'Availability Rule'
        verbose_name_plural = 'Availability Rules'
        ordering = ['day_of_week', 'start_time']
        unique_together = ['organizer', 'day_of_week', 'start_time', 'end_time']

    def __str__(self):
        return f"{self.organizer.email} - {self.get_day_of_week_display()} {self.start_time}-{self.end_time}"

    def clean(self):
        """Validate the interval and that it does not overlap its siblings."""
        super().clean()
        if self.start_time is None or self.end_time is None:
            return
        if self.start_time >= self.end_time:
            raise ValidationError("Start time must be before end time")

        siblings = AvailabilityRule.objects.filter(
            organizer_id=self.organizer_id,
            day_of_week=self.day_of_week,
            start_time__lt=self.end_time,
            end_time__gt=self.start_time,
        ).exclude(id=self.id)
        if siblings.exists():
            raise ValidationError("Availability intervals on the same day cannot overlap")

    def as_interval(self):
        return WallClockInterval(self.start_time, self.end_time)


class DateOverrideRule(models.Model):
    """Date-specific replacement of the weekly template."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='date_overrides')

    date = models.DateField()

    is_available = models.BooleanField(default=True, help_text="If False, entire day is blocked")
    slots = models.JSONField(
        default=list,
        blank=True,
        help_text='Replacement intervals, e.g. [{"start": "10:00", "end": "12:00"}]'
    )

    reason = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'date_override_rules'
        verbose_name = 'Date Override Rule'
        verbose_name_plural = 'Date Override Rules'
        ordering = ['date']
        unique_together = ['organizer', 'date']

    def __str__(self):
        status = "Available" if self.is_available else "Blocked"
        return f"{self.organizer.email} - {self.date} ({status})"

    def clean(self):
        super().clean()
        try:
            intervals = self.get_intervals()
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError({'slots': str(e)})

        ordered = sorted(intervals)
        for first, second in zip(ordered, ordered[1:]):
            if first.overlaps(second):
                raise ValidationError({'slots': "Override intervals cannot overlap"})

    def get_intervals(self):
        """Parsed replacement intervals; empty when the day is blocked."""
        if not self.is_available:
            return []
        return [
            WallClockInterval(parse_wall_clock(slot['start']), parse_wall_clock(slot['end']))
            for slot in self.slots or []
        ]
