from rest_framework import serializers
from apps.availability.intervals import is_valid_timezone
from .models import MeetingType, Booking, BookingAuditLog


class MeetingTypeSerializer(serializers.ModelSerializer):
    location_type_display = serializers.CharField(source='get_location_type_display', read_only=True)

    class Meta:
        model = MeetingType
        fields = [
            'id', 'name', 'slug', 'description', 'duration_minutes', 'is_active',
            'requires_payment', 'price', 'currency', 'max_reschedules',
            'location_type', 'location_type_display', 'location_details',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def validate(self, attrs):
        requires_payment = attrs.get('requires_payment', getattr(self.instance, 'requires_payment', False))
        price = attrs.get('price', getattr(self.instance, 'price', None))
        if requires_payment and not price:
            raise serializers.ValidationError({'price': 'A price is required for paid meeting types.'})
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    meeting_type = MeetingTypeSerializer(read_only=True)
    organizer_name = serializers.CharField(source='organizer.display_name', read_only=True)
    end_time = serializers.DateTimeField(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    can_cancel = serializers.BooleanField(source='can_be_cancelled', read_only=True)
    can_reschedule = serializers.BooleanField(source='can_be_rescheduled', read_only=True)
    remaining_reschedules = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'meeting_type', 'organizer_name', 'guest_name', 'guest_email',
            'guest_phone', 'guest_timezone', 'guest_notes',
            'scheduled_at', 'end_time', 'duration_minutes', 'status', 'status_display',
            'reschedule_count', 'max_reschedules', 'remaining_reschedules', 'rescheduled_at',
            'can_cancel', 'can_reschedule', 'video_link', 'payment_status', 'payment_url',
            'cancelled_at', 'cancelled_by', 'cancellation_reason',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class GuestBookingSerializer(BookingSerializer):
    """Booking as returned to the guest, including the management token."""

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + ['booking_token']
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    meeting_type_id = serializers.UUIDField()
    scheduled_at = serializers.DateTimeField()
    guest_name = serializers.CharField(max_length=200)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    guest_timezone = serializers.CharField(max_length=64, required=False, default='UTC')
    guest_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_guest_timezone(self, value):
        if not is_valid_timezone(value):
            raise serializers.ValidationError(f"Unknown timezone: {value}")
        return value


class BookingRescheduleSerializer(serializers.Serializer):
    token = serializers.CharField()
    scheduled_at = serializers.DateTimeField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class BookingStatusUpdateSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    status = serializers.ChoiceField(choices=Booking.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BookingAuditLogSerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = BookingAuditLog
        fields = [
            'id', 'action', 'action_display', 'description', 'actor_type',
            'actor_email', 'metadata', 'created_at'
        ]
        read_only_fields = fields
