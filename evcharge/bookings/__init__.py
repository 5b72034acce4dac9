"""
Charging booking lifecycle.

- state_machine.py: booking statuses and the authoritative transition table
- booking_service.py: booking store, approval workflow and QR-gated session protocol
- qr_service.py: session token issuance and QR rendering
- router.py: FastAPI endpoints
- schemas.py: Pydantic request/response models
"""

from .state_machine import (
    BookingStatus, BookingAction, TransitionResult, TRANSITIONS,
    TERMINAL_STATUSES, ACTIVE_STATUSES, apply_transition, next_status
)

__all__ = [
    "BookingStatus",
    "BookingAction",
    "TransitionResult",
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "apply_transition",
    "next_status",
]
