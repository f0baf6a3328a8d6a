import apps.availability.models
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
            name='AvailabilityPolicy',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('timezone', models.CharField(default='UTC', max_length=64)),
                ('buffer_minutes', models.IntegerField(default=15, help_text='Gap kept free before and after every booking (minutes)', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(240)])),
                ('max_advance_days', models.IntegerField(default=30, help_text='How far ahead guests may book (days)', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(365)])),
                ('min_notice_hours', models.IntegerField(default=2, help_text='Minimum notice before a slot can be booked (hours)', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(720)])),
                ('enabled_weekdays', models.JSONField(blank=True, default=apps.availability.models.default_enabled_weekdays, help_text='Weekdays (0=Monday) on which the weekly template applies')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organizer', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='availability_policy', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Availability Policy',
                'verbose_name_plural': 'Availability Policies',
                'db_table': 'availability_policies',
            },
        ),
        migrations.CreateModel(
            name='AvailabilityRule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('day_of_week', models.IntegerField(choices=[(0, 'Monday'), (1, 'Tuesday'), (2, 'Wednesday'), (3, 'Thursday'), (4, 'Friday'), (5, 'Saturday'), (6, 'Sunday')])),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='availability_rules', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Availability Rule',
                'verbose_name_plural': 'Availability Rules',
                'db_table': 'availability_rules',
                'ordering': ['day_of_week', 'start_time'],
                'unique_together': {('organizer', 'day_of_week', 'start_time', 'end_time')},
            },
        ),
        migrations.CreateModel(
            name='DateOverrideRule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('is_available', models.BooleanField(default=True, help_text='If False, entire day is blocked')),
                ('slots', models.JSONField(blank=True, default=list, help_text='Replacement intervals, e.g. [{"start": "10:00", "end": "12:00"}]')),
                ('reason', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='date_overrides', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Date Override Rule',
                'verbose_name_plural': 'Date Override Rules',
                'db_table': 'date_override_rules',
                'ordering': ['date'],
                'unique_together': {('organizer', 'date')},
            },
        ),
    ]
