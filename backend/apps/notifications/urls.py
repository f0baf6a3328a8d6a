from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    # Reminders
    path('reminders/', views.ReminderListView.as_view(), name='reminder-list'),
    path('reminders/stats/', views.reminder_stats, name='reminder-stats'),
    path('reminders/<uuid:pk>/retry/', views.retry_reminder, name='reminder-retry'),

    # Notification Logs
    path('logs/', views.NotificationLogListView.as_view(), name='log-list'),

    # Delayed queue callback
    path('reminder-fire/', views.reminder_fire, name='reminder-fire'),
]
