from django.contrib import admin
from apps.common.exceptions import BookingEngineError
from apps.notifications.models import Reminder
from .models import MeetingType, Booking, BookingAuditLog
from .utils import update_booking_status


@admin.register(MeetingType)
class MeetingTypeAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'organizer', 'duration_minutes', 'is_active', 'requires_payment',
        'max_reschedules', 'booking_count', 'created_at'
    )
    list_filter = ('duration_minutes', 'is_active', 'requires_payment', 'location_type', 'created_at')
    search_fields = ('name', 'organizer__email', 'slug')
    readonly_fields = ('slug', 'created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('organizer', 'name', 'slug', 'description', 'duration_minutes', 'is_active')
        }),
        ('Booking Rules', {
            'fields': ('max_reschedules',)
        }),
        ('Payment', {
            'fields': ('requires_payment', 'price', 'currency'),
            'classes': ('collapse',)
        }),
        ('Location', {
            'fields': ('location_type', 'location_details')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def booking_count(self, obj):
        return obj.bookings.filter(status__in=Booking.ACTIVE_STATUSES).count()
    booking_count.short_description = 'Active Bookings'


class ReminderInline(admin.TabularInline):
    model = Reminder
    extra = 0
    fields = ('kind', 'fire_at', 'status', 'attempts', 'sent_at', 'error_message')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class BookingAuditLogInline(admin.TabularInline):
    model = BookingAuditLog
    extra = 0
    fields = ('action', 'actor_type', 'actor_email', 'description', 'created_at')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        'guest_name', 'guest_email', 'meeting_type', 'organizer',
        'scheduled_at', 'status', 'reschedule_count', 'payment_status', 'created_at'
    )
    list_filter = ('status', 'payment_status', 'cancelled_by', 'meeting_type__name', 'scheduled_at', 'created_at')
    search_fields = ('guest_name', 'guest_email', 'organizer__email', 'booking_token')
    readonly_fields = (
        'id', 'booking_token', 'reschedule_count', 'rescheduled_at',
        'cancellation_notified_at', 'status_notified_at', 'created_at', 'updated_at'
    )
    date_hierarchy = 'scheduled_at'
    inlines = [ReminderInline, BookingAuditLogInline]
    actions = ['mark_completed', 'mark_no_show']

    fieldsets = (
        ('Booking Information', {
            'fields': ('id', 'meeting_type', 'organizer', 'status')
        }),
        ('Guest Details', {
            'fields': ('guest_name', 'guest_email', 'guest_phone', 'guest_timezone', 'guest_notes')
        }),
        ('Schedule', {
            'fields': ('scheduled_at', 'duration_minutes')
        }),
        ('Rescheduling', {
            'fields': ('reschedule_count', 'max_reschedules', 'rescheduled_at'),
            'classes': ('collapse',)
        }),
        ('Security', {
            'fields': ('booking_token',),
            'classes': ('collapse',)
        }),
        ('Meeting & Payment', {
            'fields': ('video_link', 'payment_status', 'payment_url'),
            'classes': ('collapse',)
        }),
        ('Cancellation', {
            'fields': ('cancelled_at', 'cancelled_by', 'cancellation_reason'),
            'classes': ('collapse',)
        }),
        ('Notifications', {
            'fields': ('cancellation_notified_at', 'status_notified_at'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def _transition(self, request, queryset, new_status):
        updated = 0
        for booking in queryset.filter(status='confirmed'):
            try:
                update_booking_status(booking, new_status, actor=request.user)
                updated += 1
            except BookingEngineError as e:
                self.message_user(request, f"{booking}: {e.message}", level='error')
        return updated

    def mark_completed(self, request, queryset):
        """Mark selected confirmed bookings as completed."""
        updated = self._transition(request, queryset, 'completed')
        self.message_user(request, f"Marked {updated} bookings as completed.")
    mark_completed.short_description = "Mark as completed"

    def mark_no_show(self, request, queryset):
        updated = self._transition(request, queryset, 'no_show')
        self.message_user(request, f"Marked {updated} bookings as no-show.")
    mark_no_show.short_description = "Mark as no-show"


@admin.register(BookingAuditLog)
class BookingAuditLogAdmin(admin.ModelAdmin):
    list_display = ('booking', 'action', 'actor_type', 'actor_email', 'created_at')
    list_filter = ('action', 'actor_type', 'created_at')
    search_fields = ('booking__guest_name', 'booking__guest_email', 'actor_email', 'description')
    readonly_fields = ('booking', 'action', 'description', 'actor_type', 'actor_email', 'metadata', 'created_at')
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
