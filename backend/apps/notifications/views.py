from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from django.conf import settings
from django.shortcuts import get_object_or_404
from apps.common.exceptions import BookingEngineError, error_response
from .models import Reminder, NotificationLog
from .serializers import ReminderSerializer, NotificationLogSerializer, ReminderFireSerializer
from .utils import ReminderScheduler, get_reminder_stats
import hmac
import logging

logger = logging.getLogger(__name__)


class ReminderListView(generics.ListAPIView):
    serializer_class = ReminderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = Reminder.objects.filter(booking__organizer=self.request.user)

        booking_id = self.request.query_params.get('booking_id')
        if booking_id:
            queryset = queryset.filter(booking_id=booking_id)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        return queryset


class NotificationLogListView(generics.ListAPIView):
    serializer_class = NotificationLogSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return NotificationLog.objects.filter(organizer=self.request.user)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def retry_reminder(request, pk):
    """Explicitly retry a failed reminder."""
    reminder = get_object_or_404(Reminder, id=pk, booking__organizer=request.user)

    try:
        step = ReminderScheduler().retry_failed_reminder(reminder.id)
    except BookingEngineError as e:
        return error_response(e)

    if step.exhausted:
        return Response(
            {'error': 'Maximum retry attempts reached', 'code': 'limit_exceeded'},
            status=status.HTTP_400_BAD_REQUEST
        )

    reminder.refresh_from_db()
    return Response({
        'message': f'Reminder queued for retry in {step.delay_seconds} seconds',
        'reminder': ReminderSerializer(reminder).data
    })


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def reminder_stats(request):
    """Reminder delivery statistics for the host."""
    return Response(get_reminder_stats(request.user))


def has_valid_queue_secret(request):
    expected = settings.REMINDER_WEBHOOK_SECRET
    provided = request.headers.get('X-Queue-Secret', '')
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


@api_view(['POST'])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def reminder_fire(request):
    """Callback for the delayed queue when a reminder is due."""
    if not has_valid_queue_secret(request):
        logger.warning("Rejected reminder callback with invalid queue secret")
        return Response({'success': False, 'error': 'Invalid queue secret'}, status=status.HTTP_401_UNAUTHORIZED)

    serializer = ReminderFireSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    reminder = Reminder.objects.filter(id=serializer.validated_data['reminder_id']).first()
    if reminder is None:
        return Response({'success': False, 'error': 'Reminder not found'}, status=status.HTTP_404_NOT_FOUND)

    booking_id = serializer.validated_data.get('booking_id')
    reminder_type = serializer.validated_data.get('reminder_type')
    if (booking_id and booking_id != reminder.booking_id) or (reminder_type and reminder_type != reminder.kind):
        return Response(
            {'success': False, 'error': 'Reminder does not match booking or type'},
            status=status.HTTP_400_BAD_REQUEST
        )

    delivered = ReminderScheduler().deliver_reminder(reminder.id)
    return Response({'success': delivered})
