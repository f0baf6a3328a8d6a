from django.contrib import admin
from apps.common.exceptions import BookingEngineError
from .models import Reminder, NotificationLog
from .utils import ReminderScheduler


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):
    list_display = ('booking', 'kind', 'recipient_email', 'fire_at', 'status', 'attempts', 'retry_count', 'sent_at')
    list_filter = ('kind', 'status', 'fire_at', 'created_at')
    search_fields = ('recipient_email', 'subject', 'booking__guest_name', 'booking__organizer__email')
    readonly_fields = ('attempts', 'retry_count', 'sent_at', 'queue_handle', 'created_at', 'updated_at')
    date_hierarchy = 'fire_at'
    actions = ['retry_failed_reminders', 'cancel_pending_reminders']

    fieldsets = (
        ('Reminder', {
            'fields': ('booking', 'kind', 'fire_at', 'status')
        }),
        ('Recipient', {
            'fields': ('recipient_email', 'subject')
        }),
        ('Execution', {
            'fields': ('attempts', 'retry_count', 'sent_at', 'error_message', 'queue_handle')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def retry_failed_reminders(self, request, queryset):
        """Retry failed reminders with backoff."""
        scheduler = ReminderScheduler()
        queued = 0
        for reminder in queryset.filter(status='failed'):
            try:
                step = scheduler.retry_failed_reminder(reminder.id)
            except BookingEngineError as e:
                self.message_user(request, f"{reminder}: {e.message}", level='error')
                continue
            if not step.exhausted:
                queued += 1

        self.message_user(request, f"Queued {queued} reminders for retry.")
    retry_failed_reminders.short_description = "Retry failed reminders"

    def cancel_pending_reminders(self, request, queryset):
        updated = queryset.filter(status='pending').update(status='cancelled')
        self.message_user(request, f"Cancelled {updated} pending reminders.")
    cancel_pending_reminders.short_description = "Cancel pending reminders"


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ('recipient_email', 'notification_kind', 'status', 'sent_at', 'organizer', 'created_at')
    list_filter = ('notification_kind', 'status', 'sent_at', 'created_at')
    search_fields = ('recipient_email', 'subject', 'organizer__email')
    readonly_fields = ('created_at',)
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Notification Details', {
            'fields': ('organizer', 'booking', 'notification_kind')
        }),
        ('Recipient', {
            'fields': ('recipient_email',)
        }),
        ('Content', {
            'fields': ('subject', 'message')
        }),
        ('Status', {
            'fields': ('status', 'sent_at', 'error_message')
        }),
        ('Timestamps', {
            'fields': ('created_at',),
            'classes': ('collapse',)
        }),
    )
