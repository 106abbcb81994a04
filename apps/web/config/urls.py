"""
URL configuration for the order dispatch service.
"""

from django.urls import include, path

urlpatterns = [
    path("", include("apps.web.dispatch.urls")),
]
