from rest_framework import serializers
from .intervals import is_valid_timezone, parse_wall_clock
from .models import AvailabilityRule, DateOverrideRule


def validate_timezone_name(value):
    if not is_valid_timezone(value):
        raise serializers.ValidationError(f"Unknown timezone: {value}")
    return value


class IntervalSerializer(serializers.Serializer):
    start = serializers.CharField()
    end = serializers.CharField()

    def validate(self, attrs):
        try:
            start = parse_wall_clock(attrs['start'])
            end = parse_wall_clock(attrs['end'])
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        if start >= end:
            raise serializers.ValidationError("Start time must be before end time")
        return attrs


class WeeklyDaySerializer(serializers.Serializer):
    day_of_week = serializers.IntegerField(min_value=0, max_value=6)
    enabled = serializers.BooleanField(default=True)
    intervals = IntervalSerializer(many=True, default=list)


class AvailabilityUpdateSerializer(serializers.Serializer):
    timezone = serializers.CharField(required=False, validators=[validate_timezone_name])
    buffer_minutes = serializers.IntegerField(required=False, min_value=0, max_value=240)
    max_advance_days = serializers.IntegerField(required=False, min_value=0, max_value=365)
    min_notice_hours = serializers.IntegerField(required=False, min_value=0, max_value=720)
    weekly_template = WeeklyDaySerializer(many=True, required=False)

    def validate_weekly_template(self, value):
        days = [day['day_of_week'] for day in value]
        if len(days) != len(set(days)):
            raise serializers.ValidationError("Each day_of_week may appear only once")
        return value


class AvailabilityRuleSerializer(serializers.ModelSerializer):
    day_of_week_display = serializers.CharField(source='get_day_of_week_display', read_only=True)

    class Meta:
        model = AvailabilityRule
        fields = ['id', 'day_of_week', 'day_of_week_display', 'start_time', 'end_time']
        read_only_fields = ['id']


class DateOverrideRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = DateOverrideRule
        fields = ['id', 'date', 'is_available', 'slots', 'reason', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class DateOverrideWriteSerializer(serializers.Serializer):
    date = serializers.DateField()
    is_available = serializers.BooleanField(default=True)
    slots = IntervalSerializer(many=True, default=list)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['is_available'] and not attrs['slots']:
            raise serializers.ValidationError("slots are required when is_available is True")
        return attrs


class AvailableSlotsQuerySerializer(serializers.Serializer):
    meeting_type_id = serializers.UUIDField()
    date = serializers.DateField()
    timezone = serializers.CharField(required=False, validators=[validate_timezone_name])
