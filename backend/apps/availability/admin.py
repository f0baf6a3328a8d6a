from django.contrib import admin
from .models import AvailabilityPolicy, AvailabilityRule, DateOverrideRule


@admin.register(AvailabilityPolicy)
class AvailabilityPolicyAdmin(admin.ModelAdmin):
    list_display = ('organizer', 'timezone', 'buffer_minutes', 'max_advance_days', 'min_notice_hours', 'updated_at')
    search_fields = ('organizer__email',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Host', {
            'fields': ('organizer', 'timezone')
        }),
        ('Scheduling Rules', {
            'fields': ('buffer_minutes', 'max_advance_days', 'min_notice_hours', 'enabled_weekdays')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(AvailabilityRule)
class AvailabilityRuleAdmin(admin.ModelAdmin):
    list_display = ('organizer', 'day_of_week', 'start_time', 'end_time')
    list_filter = ('day_of_week',)
    search_fields = ('organizer__email',)


@admin.register(DateOverrideRule)
class DateOverrideRuleAdmin(admin.ModelAdmin):
    list_display = ('organizer', 'date', 'is_available', 'reason')
    list_filter = ('is_available', 'date')
    search_fields = ('organizer__email', 'reason')
    date_hierarchy = 'date'
