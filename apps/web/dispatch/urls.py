"""URL configuration for order dispatch."""

from django.urls import path

from apps.web.dispatch import views

app_name = "dispatch"

urlpatterns = [
    path("webhooks/shopify/orders", views.shopify_order_webhook, name="shopify_order_webhook"),
    path("api/orders", views.orders_api, name="orders_api"),
]
