"""
Repair dispatch entry points.

This module handles:
    - Dispatching repair requests to every provider in range
    - Provider responses (accept / decline)
    - The periodic expiry sweep and optional re-dispatch
    - Cancelling / completing repair requests
"""

from .orchestrator import (
    DispatchResult,
    dispatch_repair_request,
    accept_offer,
    decline_offer,
    expire_old,
    redispatch_exhausted,
    cancel_request,
    complete_request,
    get_repair_request,
)

__all__ = [
    "DispatchResult",
    "dispatch_repair_request",
    "accept_offer",
    "decline_offer",
    "expire_old",
    "redispatch_exhausted",
    "cancel_request",
    "complete_request",
    "get_repair_request",
]
