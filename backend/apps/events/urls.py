from django.urls import path
from . import views

app_name = 'events'

urlpatterns = [
    # Meeting Types
    path('meeting-types/', views.MeetingTypeListCreateView.as_view(), name='meeting-type-list'),
    path('meeting-types/<uuid:pk>/', views.MeetingTypeDetailView.as_view(), name='meeting-type-detail'),

    # Guest booking management (token based)
    path('booking/', views.booking_endpoint, name='booking'),

    # Host bookings
    path('bookings/', views.BookingListView.as_view(), name='booking-list'),
    path('bookings/<uuid:pk>/', views.BookingDetailView.as_view(), name='booking-detail'),
    path('bookings/<uuid:booking_id>/audit/', views.booking_audit_logs, name='booking-audit-logs'),
    path('booking-status/', views.booking_status, name='booking-status'),
]
