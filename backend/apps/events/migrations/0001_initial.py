import apps.events.models
import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MeetingType',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(blank=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('duration_minutes', models.IntegerField(default=30, help_text='Meeting length (minutes)', validators=[django.core.validators.MinValueValidator(5), django.core.validators.MaxValueValidator(480)])),
                ('is_active', models.BooleanField(default=True)),
                ('requires_payment', models.BooleanField(default=False, help_text='Bookings stay pending until payment is confirmed')),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('max_reschedules', models.IntegerField(default=apps.events.models.default_max_reschedules, help_text='How many times a guest may reschedule a booking', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ('location_type', models.CharField(choices=[('video_call', 'Video Call'), ('phone_call', 'Phone Call'), ('in_person', 'In Person'), ('custom', 'Custom')], default='video_call', max_length=20)),
                ('location_details', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='meeting_types', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Meeting Type',
                'verbose_name_plural': 'Meeting Types',
                'db_table': 'meeting_types',
                'indexes': [models.Index(fields=['organizer', 'is_active'], name='meeting_types_org_active_idx')],
                'unique_together': {('organizer', 'slug')},
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('guest_name', models.CharField(max_length=200)),
                ('guest_email', models.EmailField(max_length=254)),
                ('guest_phone', models.CharField(blank=True, max_length=20)),
                ('guest_timezone', models.CharField(default='UTC', max_length=64)),
                ('guest_notes', models.TextField(blank=True)),
                ('scheduled_at', models.DateTimeField()),
                ('duration_minutes', models.IntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled'), ('completed', 'Completed'), ('no_show', 'No Show')], default='confirmed', max_length=20)),
                ('booking_token', models.CharField(default=apps.events.models.generate_booking_token, help_text='Unguessable token for guest booking management', max_length=128, unique=True)),
                ('reschedule_count', models.IntegerField(default=0)),
                ('max_reschedules', models.IntegerField(default=apps.events.models.default_max_reschedules)),
                ('rescheduled_at', models.DateTimeField(blank=True, null=True)),
                ('video_link', models.URLField(blank=True)),
                ('payment_status', models.CharField(choices=[('not_required', 'Not Required'), ('pending', 'Pending'), ('paid', 'Paid')], default='not_required', max_length=20)),
                ('payment_url', models.URLField(blank=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_by', models.CharField(blank=True, choices=[('organizer', 'Organizer'), ('invitee', 'Invitee'), ('system', 'System')], max_length=20)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('cancellation_notified_at', models.DateTimeField(blank=True, null=True)),
                ('status_notified_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('meeting_type', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bookings', to='events.meetingtype')),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='organized_bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'db_table': 'bookings',
                'ordering': ['scheduled_at'],
                'indexes': [
                    models.Index(fields=['organizer', 'status', 'scheduled_at'], name='bookings_org_status_sched_idx'),
                    models.Index(fields=['status', 'scheduled_at'], name='bookings_status_sched_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'confirmed'])), fields=('organizer', 'scheduled_at'), name='unique_active_booking_start_per_organizer'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookingAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('booking_created', 'Booking Created'), ('booking_confirmed', 'Booking Confirmed'), ('booking_rescheduled', 'Booking Rescheduled'), ('booking_cancelled', 'Booking Cancelled'), ('status_changed', 'Status Changed'), ('notification_sent', 'Notification Sent'), ('notification_failed', 'Notification Failed'), ('dependency_failed', 'Dependency Failed')], max_length=30)),
                ('description', models.TextField()),
                ('actor_type', models.CharField(choices=[('organizer', 'Organizer'), ('invitee', 'Invitee'), ('system', 'System')], default='system', max_length=20)),
                ('actor_email', models.EmailField(blank=True, max_length=254)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='events.booking')),
            ],
            options={
                'verbose_name': 'Booking Audit Log',
                'verbose_name_plural': 'Booking Audit Logs',
                'db_table': 'booking_audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['booking', '-created_at'], name='booking_audit_booking_idx'),
                    models.Index(fields=['action', '-created_at'], name='booking_audit_action_idx'),
                ],
            },
        ),
    ]
