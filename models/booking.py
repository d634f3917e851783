"""
Booking data access functions.
Storage, status vocabularies and read-side queries for rental bookings.

This module re-exports the functions of the split modules:
- booking_state.py: Status tokens, transition table, derived views, history
- booking_crud.py: Row-level create, read, update, delete
- booking_queries.py: Listing, filtering and overlap lookups
"""

# =============================================================================
# RE-EXPORTS
# =============================================================================

# State management
from .booking_state import (
    # Constants
    RENTAL_STATUSES,
    COMMITTED_STATUSES,
    SHIPPING_STATUSES,
    PAYMENT_STATUSES,
    EXTENSION_STATUSES,
    BOOKING_ORIGINS,
    RENTAL_STEPS,
    TRANSITIONS,
    # Guards
    get_valid_transitions,
    check_transition,
    guard_holds,
    allowed_operations,
    requires_conflict_check,
    # Derived views
    is_terminal,
    needs_action,
    current_step,
    current_step_index,
    with_derived_fields,
    # History
    record_status_change,
    get_status_history,
)

# CRUD operations
from .booking_crud import (
    insert_booking,
    get_booking_by_id,
    update_booking_fields,
    delete_booking,
)

# Queries
from .booking_queries import (
    get_committed_bookings_in_range,
    get_committed_bookings_between,
    list_bookings,
    get_bookings_needing_action,
    get_pending_bookings,
    get_expired_rejections,
    get_booking_stats,
)
