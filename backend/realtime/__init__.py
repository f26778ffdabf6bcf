"""
Realtime app for WebSocket communication with providers and customers.

This app provides:
- WebSocket consumers for repair providers and customers
- Notification helpers for pushing job offer and repair request events
- JWT/Cookie authentication middleware for WebSocket connections

Key Components:
    - consumers/: WebSocket consumers (provider, customer)
    - notifications.py: Job offer / repair event notification helpers
    - middleware.py: WebSocket authentication

Usage:
    from realtime.consumers import ProviderConsumer, CustomerConsumer
    from realtime.notifications import notify_provider_event, notify_customer_event
"""
