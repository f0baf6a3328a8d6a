from datetime import datetime
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from django.shortcuts import get_object_or_404
from apps.common.exceptions import BookingEngineError, error_response
from .models import MeetingType, Booking
from .serializers import (
    MeetingTypeSerializer, BookingSerializer, GuestBookingSerializer,
    BookingCreateSerializer, BookingRescheduleSerializer,
    BookingStatusUpdateSerializer, BookingAuditLogSerializer
)
from .utils import (
    create_booking, reschedule_booking, cancel_booking, update_booking_status,
    delete_booking, get_booking_by_token
)
import logging

logger = logging.getLogger(__name__)


class MeetingTypeListCreateView(generics.ListCreateAPIView):
    serializer_class = MeetingTypeSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return MeetingType.objects.filter(organizer=self.request.user).order_by('name')

    def perform_create(self, serializer):
        serializer.save(organizer=self.request.user)


class MeetingTypeDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = MeetingTypeSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return MeetingType.objects.filter(organizer=self.request.user)


class BookingListView(generics.ListAPIView):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = Booking.objects.filter(
            organizer=self.request.user
        ).select_related('meeting_type', 'organizer').order_by('-scheduled_at')

        # Filter by status
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        # Filter by date range
        start_date = self.request.query_params.get('start_date')
        end_date = self.request.query_params.get('end_date')

        if start_date:
            try:
                start_date_obj = datetime.strptime(start_date, '%Y-%m-%d').date()
                queryset = queryset.filter(scheduled_at__date__gte=start_date_obj)
            except ValueError:
                pass

        if end_date:
            try:
                end_date_obj = datetime.strptime(end_date, '%Y-%m-%d').date()
                queryset = queryset.filter(scheduled_at__date__lte=end_date_obj)
            except ValueError:
                pass

        return queryset


class BookingDetailView(generics.RetrieveDestroyAPIView):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Booking.objects.filter(organizer=self.request.user).select_related('meeting_type', 'organizer')

    def destroy(self, request, *args, **kwargs):
        booking = self.get_object()
        try:
            delete_booking(booking)
        except BookingEngineError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class BookingThrottle(AnonRateThrottle):
    """Rate limit for booking creation only."""
    scope = 'booking'

    def allow_request(self, request, view):
        if request.method != 'POST':
            return True
        return super().allow_request(request, view)


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([permissions.AllowAny])
@throttle_classes([BookingThrottle])
def booking_endpoint(request):
    """
    Public guest endpoint.

    POST creates a booking; GET, PUT and DELETE act on the booking identified
    by its management token.
    """
    try:
        if request.method == 'POST':
            return _create_booking(request)
        if request.method == 'PUT':
            return _reschedule_booking(request)

        booking = get_booking_by_token(request.query_params.get('token'))
        if request.method == 'GET':
            return Response(GuestBookingSerializer(booking).data)

        booking = cancel_booking(
            booking,
            cancelled_by='invitee',
            reason=request.query_params.get('reason', '')
        )
        return Response(GuestBookingSerializer(booking).data)

    except BookingEngineError as e:
        return error_response(e)


def _create_booking(request):
    serializer = BookingCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    meeting_type_id = data.pop('meeting_type_id')
    scheduled_at = data.pop('scheduled_at')

    booking, error = create_booking(meeting_type_id, scheduled_at, data)
    if error:
        return error_response(error)

    return Response(GuestBookingSerializer(booking).data, status=status.HTTP_201_CREATED)


def _reschedule_booking(request):
    serializer = BookingRescheduleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    booking, error = reschedule_booking(
        serializer.validated_data['token'],
        serializer.validated_data['scheduled_at'],
        reason=serializer.validated_data['reason']
    )
    if error:
        return error_response(error)

    return Response(GuestBookingSerializer(booking).data)


@api_view(['PUT'])
@permission_classes([permissions.IsAuthenticated])
def booking_status(request):
    """Host-only status change (completed, no_show, cancelled, confirmed)."""
    serializer = BookingStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    booking = get_object_or_404(
        Booking.objects.select_related('meeting_type', 'organizer'),
        id=serializer.validated_data['booking_id'],
        organizer=request.user
    )

    try:
        booking = update_booking_status(
            booking,
            serializer.validated_data['status'],
            notes=serializer.validated_data['notes'],
            actor=request.user
        )
    except BookingEngineError as e:
        return error_response(e)

    return Response(BookingSerializer(booking).data)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def booking_audit_logs(request, booking_id):
    """Get audit logs for a booking."""
    booking = get_object_or_404(Booking, id=booking_id, organizer=request.user)
    logs = booking.audit_logs.all()
    return Response(BookingAuditLogSerializer(logs, many=True).data)
