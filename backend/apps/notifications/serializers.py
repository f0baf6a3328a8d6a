from rest_framework import serializers
from .models import Reminder, NotificationLog


class ReminderSerializer(serializers.ModelSerializer):
    kind_display = serializers.CharField(source='get_kind_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    booking_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Reminder
        fields = [
            'id', 'booking_id', 'kind', 'kind_display', 'fire_at', 'status', 'status_display',
            'recipient_email', 'subject', 'attempts', 'retry_count', 'sent_at',
            'error_message', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class NotificationLogSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    booking_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = NotificationLog
        fields = [
            'id', 'booking_id', 'notification_kind', 'recipient_email', 'subject',
            'status', 'status_display', 'sent_at', 'error_message', 'created_at'
        ]
        read_only_fields = fields


class ReminderFireSerializer(serializers.Serializer):
    """Payload posted by the delayed queue when a reminder is due."""
    reminder_id = serializers.UUIDField()
    booking_id = serializers.UUIDField(required=False)
    reminder_type = serializers.ChoiceField(choices=Reminder.KIND_CHOICES, required=False)

    def to_internal_value(self, data):
        # queue payloads spell the kind with a hyphen
        if data.get('reminder_type') == 'follow-up':
            data = {**data, 'reminder_type': 'follow_up'}
        return super().to_internal_value(data)
