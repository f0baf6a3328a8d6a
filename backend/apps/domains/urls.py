from django.urls import path
from . import views

app_name = 'domains'

urlpatterns = [
    path('', views.SendingDomainListCreateView.as_view(), name='domain-list'),
    path('<uuid:pk>/', views.SendingDomainDetailView.as_view(), name='domain-detail'),
    path('<uuid:pk>/verify/', views.verify_domain, name='domain-verify'),
    path('<uuid:pk>/cancel/', views.cancel_verification, name='domain-cancel'),
]
