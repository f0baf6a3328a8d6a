from datetime import date as date_cls
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from apps.common.exceptions import BookingEngineError, error_response
from apps.events.models import MeetingType
from .models import DateOverrideRule
from .serializers import (
    AvailabilityUpdateSerializer, AvailableSlotsQuerySerializer,
    DateOverrideRuleSerializer, DateOverrideWriteSerializer
)
from .utils import (
    delete_date_override, get_availability_snapshot, get_available_slots_for_date,
    get_or_create_policy, set_date_override, update_availability
)
import logging

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def available_slots(request):
    """Public endpoint listing bookable slots for one meeting type and date."""
    serializer = AvailableSlotsQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    meeting_type = MeetingType.objects.select_related('organizer').filter(
        id=serializer.validated_data['meeting_type_id']
    ).first()
    if meeting_type is None:
        return Response({'error': 'Meeting type not found'}, status=status.HTTP_404_NOT_FOUND)
    if not meeting_type.is_active:
        return Response({'error': 'Meeting type is not active'}, status=status.HTTP_400_BAD_REQUEST)

    target_date = serializer.validated_data['date']
    slots = get_available_slots_for_date(meeting_type, target_date)

    display_timezone = serializer.validated_data.get('timezone') or get_or_create_policy(meeting_type.organizer).timezone

    return Response({
        'date': target_date.isoformat(),
        'available_slots': [slot.to_dict(display_timezone) for slot in slots],
        'timezone': display_timezone,
    })


@api_view(['GET', 'PUT'])
@permission_classes([permissions.IsAuthenticated])
def availability_settings(request):
    """Host view/update of policy and weekly template."""
    if request.method == 'GET':
        return Response(get_availability_snapshot(request.user))

    serializer = AvailabilityUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    weekly_template = data.pop('weekly_template', None)

    try:
        update_availability(request.user, policy_fields=data, weekly_template=weekly_template)
    except BookingEngineError as e:
        return error_response(e)

    return Response(get_availability_snapshot(request.user))


@api_view(['GET', 'POST'])
@permission_classes([permissions.IsAuthenticated])
def date_overrides(request):
    if request.method == 'GET':
        overrides = DateOverrideRule.objects.filter(organizer=request.user)
        return Response(DateOverrideRuleSerializer(overrides, many=True).data)

    serializer = DateOverrideWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        override = set_date_override(
            request.user,
            date=serializer.validated_data['date'],
            is_available=serializer.validated_data['is_available'],
            slots=serializer.validated_data['slots'],
            reason=serializer.validated_data.get('reason', ''),
        )
    except BookingEngineError as e:
        return error_response(e)

    return Response(DateOverrideRuleSerializer(override).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([permissions.IsAuthenticated])
def date_override_detail(request, override_date):
    try:
        target_date = date_cls.fromisoformat(override_date)
    except ValueError:
        return Response({'error': 'Invalid date format, expected YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)

    if not delete_date_override(request.user, target_date):
        return Response({'error': 'Override not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response(status=status.HTTP_204_NO_CONTENT)
