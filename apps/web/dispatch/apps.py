"""Django app configuration for order dispatch."""

from django.apps import AppConfig


class DispatchConfig(AppConfig):
    """Order dispatch and reconciliation app configuration."""

    name = "apps.web.dispatch"
    verbose_name = "Order Dispatch"
