from rest_framework import serializers
from apps.common.exceptions import ValidationError
from .models import SendingDomain
from .utils import get_dns_instructions, normalize_domain


class SendingDomainSerializer(serializers.ModelSerializer):
    verification_status_display = serializers.CharField(source='get_verification_status_display', read_only=True)
    dns_record = serializers.SerializerMethodField()

    class Meta:
        model = SendingDomain
        fields = [
            'id', 'domain', 'verification_status', 'verification_status_display',
            'verification_attempts', 'last_verification_attempt', 'verified_at',
            'failure_reason', 'setup_progress', 'dns_record', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'verification_status', 'verification_attempts', 'last_verification_attempt',
            'verified_at', 'failure_reason', 'setup_progress', 'created_at', 'updated_at'
        ]

    def get_dns_record(self, obj):
        return get_dns_instructions(obj)

    def validate_domain(self, value):
        try:
            domain = normalize_domain(value)
        except ValidationError as e:
            raise serializers.ValidationError(e.message)

        organizer = self.context['request'].user
        if SendingDomain.objects.filter(organizer=organizer, domain=domain).exists():
            raise serializers.ValidationError("This domain has already been added.")
        return domain
