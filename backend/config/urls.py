"""
URL configuration for booking_engine project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/v1/users/', include('apps.users.urls')),
    path('api/v1/availability/', include('apps.availability.urls')),
    path('api/v1/events/', include('apps.events.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    path('api/v1/domains/', include('apps.domains.urls')),
]
