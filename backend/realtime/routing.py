"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.provider_consumer import ProviderConsumer
from .consumers.customer_consumer import CustomerConsumer

websocket_urlpatterns = [
    # Technicians and service centre owners
    # URL: ws://localhost:8000/ws/provider/?token=<access>
    re_path(
        r"ws/provider/$",
        ProviderConsumer.as_asgi(),
        name="provider-ws"
    ),
    
    # Customers following their repair requests
    # URL: ws://localhost:8000/ws/customer/?token=<access>
    re_path(
        r"ws/customer/$",
        CustomerConsumer.as_asgi(),
        name="customer-ws"
    ),
]
