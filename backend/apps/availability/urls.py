from django.urls import path
from . import views

app_name = 'availability'

urlpatterns = [
    # Host settings
    path('', views.availability_settings, name='availability-settings'),

    # Date Override Rules
    path('overrides/', views.date_overrides, name='override-list'),
    path('overrides/<str:override_date>/', views.date_override_detail, name='override-detail'),

    # Available Slots (Public endpoint)
    path('slots/', views.available_slots, name='available-slots'),
]
