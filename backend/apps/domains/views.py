from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from apps.common.exceptions import BookingEngineError, error_response
from .models import SendingDomain
from .serializers import SendingDomainSerializer
from .utils import cancel_domain_verification, schedule_domain_verification


class SendingDomainListCreateView(generics.ListCreateAPIView):
    serializer_class = SendingDomainSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return SendingDomain.objects.filter(organizer=self.request.user)

    def perform_create(self, serializer):
        serializer.save(organizer=self.request.user)


class SendingDomainDetailView(generics.RetrieveDestroyAPIView):
    serializer_class = SendingDomainSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return SendingDomain.objects.filter(organizer=self.request.user)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def verify_domain(request, pk):
    """Start DNS verification for a domain."""
    domain = get_object_or_404(SendingDomain, id=pk, organizer=request.user)

    if domain.is_verified:
        return Response({'error': 'Domain is already verified'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        schedule_domain_verification(domain)
    except BookingEngineError as e:
        return error_response(e)

    return Response(SendingDomainSerializer(domain).data, status=status.HTTP_202_ACCEPTED)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def cancel_verification(request, pk):
    domain = get_object_or_404(SendingDomain, id=pk, organizer=request.user)

    if domain.verification_status != 'verifying':
        return Response({'error': 'Domain is not being verified'}, status=status.HTTP_400_BAD_REQUEST)

    cancel_domain_verification(domain)
    return Response(SendingDomainSerializer(domain).data)
