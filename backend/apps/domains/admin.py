from django.contrib import admin
from apps.common.exceptions import BookingEngineError
from .models import SendingDomain
from .utils import schedule_domain_verification


@admin.register(SendingDomain)
class SendingDomainAdmin(admin.ModelAdmin):
    list_display = (
        'domain', 'organizer', 'verification_status', 'verification_attempts',
        'last_verification_attempt', 'verified_at'
    )
    list_filter = ('verification_status', 'created_at')
    search_fields = ('domain', 'organizer__email')
    readonly_fields = (
        'verification_token', 'verification_attempts', 'last_verification_attempt',
        'verified_at', 'setup_progress', 'created_at', 'updated_at'
    )
    actions = ['restart_verification']

    fieldsets = (
        ('Domain', {
            'fields': ('organizer', 'domain', 'verification_token')
        }),
        ('Verification', {
            'fields': (
                'verification_status', 'verification_attempts', 'last_verification_attempt',
                'verified_at', 'failure_reason', 'setup_progress'
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def restart_verification(self, request, queryset):
        """Restart DNS verification for selected domains."""
        scheduled = 0
        for domain in queryset.exclude(verification_status='verified'):
            try:
                schedule_domain_verification(domain)
                scheduled += 1
            except BookingEngineError as e:
                self.message_user(request, f"{domain.domain}: {e.message}", level='error')

        self.message_user(request, f"Scheduled verification for {scheduled} domains.")
    restart_verification.short_description = "Restart verification"
