from django.db import models
import secrets
import uuid


def generate_verification_token():
    return secrets.token_hex(16)


class SendingDomain(models.Model):
    """Email sending domain a host proves ownership of through a DNS TXT record."""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('verifying', 'Verifying'),
        ('verified', 'Verified'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='sending_domains')
    domain = models.CharField(max_length=253)

    verification_token = models.CharField(max_length=64, default=generate_verification_token, editable=False)
    verification_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    verification_attempts = models.IntegerField(default=0)
    # bumped on every (re)start; queued jobs from an older run are ignored
    verification_run = models.IntegerField(default=0)
    last_verification_attempt = models.DateTimeField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(blank=True)

    # {step, percentage, message} shown to the host while verification runs
    setup_progress = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sending_domains'
        unique_together = ['organizer', 'domain']
        verbose_name = 'Sending Domain'
        verbose_name_plural = 'Sending Domains'
        ordering = ['domain']

    def __str__(self):
        return f"{self.domain} ({self.verification_status})"

    @property
    def is_verified(self):
        return self.verification_status == 'verified'

    @property
    def txt_record_value(self):
        return f"booking-verification={self.verification_token}"
