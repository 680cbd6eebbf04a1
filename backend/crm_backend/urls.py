"""
Root URL configuration for the CRM engagement backend.
"""
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    return JsonResponse({"status": "healthy"})


urlpatterns = [
    path('api/', include('engagement.urls')),
    path('health', health_check),
]
