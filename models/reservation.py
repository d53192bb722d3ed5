"""
Reservation data access functions.

This module re-exports the reservation functions from the split modules:
- reservation_crud.py: Create, read, update and cancel operations
- reservation_conflicts.py: Overlap detection, date validation, alternatives
"""

# =============================================================================
# RE-EXPORTS
# =============================================================================

# CRUD operations
from .reservation_crud import (
    RESERVATION_STATUSES,
    create_reservation,
    get_reservation_by_id,
    get_reservations,
    update_reservation,
    cancel_reservation,
)

# Conflict detection
from .reservation_conflicts import (
    ConflictCheckResult,
    check_overlap,
    detect_reservation_conflicts,
    check_property_availability,
    validate_reservation_dates,
    suggest_alternative_dates,
)


__all__ = [
    'RESERVATION_STATUSES',
    'create_reservation',
    'get_reservation_by_id',
    'get_reservations',
    'update_reservation',
    'cancel_reservation',
    'ConflictCheckResult',
    'check_overlap',
    'detect_reservation_conflicts',
    'check_property_availability',
    'validate_reservation_dates',
    'suggest_alternative_dates',
]
