"""
Booking state management.
Status vocabularies, the guarded transition table, derived views
(needs action, progress step) and the status history trail.
"""

from database import get_db
from utils.errors import IllegalTransition


# =============================================================================
# STATUS VOCABULARIES (wire-format tokens, stored verbatim)
# =============================================================================

PENDING = 'pending'
CONFIRMED = 'confirmed'
ACTIVE = 'active'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
REJECTED = 'rejected'

RENTAL_STATUSES = (PENDING, CONFIRMED, ACTIVE, COMPLETED, CANCELLED, REJECTED)

# Only these block other bookings' dates
COMMITTED_STATUSES = (CONFIRMED, ACTIVE, COMPLETED)

# Shipping "none" is stored as NULL
SHIPPING_NONE = None
READY_TO_SHIP = 'ready_to_ship'
IN_TRANSIT_TO_USER = 'in_transit_to_user'
DELIVERED = 'delivered'
RETURN_SCHEDULED = 'return_scheduled'
IN_TRANSIT_TO_OWNER = 'in_transit_to_owner'
RETURNED = 'returned'

SHIPPING_STATUSES = (
    SHIPPING_NONE, READY_TO_SHIP, IN_TRANSIT_TO_USER, DELIVERED,
    RETURN_SCHEDULED, IN_TRANSIT_TO_OWNER, RETURNED
)

PAYMENT_PENDING = 'pending'
PAYMENT_SUBMITTED = 'submitted'
PAYMENT_REJECTED = 'rejected'
PAYMENT_VERIFIED = 'verified'

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_SUBMITTED, PAYMENT_REJECTED, PAYMENT_VERIFIED)

EXTENSION_PENDING = 'pending'
EXTENSION_APPROVED = 'approved'
EXTENSION_REJECTED = 'rejected'

EXTENSION_STATUSES = (EXTENSION_PENDING, EXTENSION_APPROVED, EXTENSION_REJECTED)

ORIGIN_CUSTOMER = 'customer_submitted'
ORIGIN_STAFF = 'staff_entered'

BOOKING_ORIGINS = (ORIGIN_CUSTOMER, ORIGIN_STAFF)

# Initial statuses a staff member may enter a booking with
STAFF_INITIAL_STATUSES = (PENDING, CONFIRMED, COMPLETED)

# Once the item has left the shop the customer can no longer cancel
CUSTOMER_CANCEL_BLOCKING_SHIPPING = (
    IN_TRANSIT_TO_USER, DELIVERED, ACTIVE, RETURN_SCHEDULED, IN_TRANSIT_TO_OWNER
)


# =============================================================================
# TRANSITION TABLE
# =============================================================================
#
# guards: list of alternatives; an alternative holds when every axis it names
#         has one of the listed values. The operation is legal if any holds.
# effect: fields written when the guard holds.
# conflict_check: re-run the conflict resolver before committing.

TRANSITIONS = {
    'approve': {
        'guards': [{'rental_status': {PENDING}}],
        'effect': {'rental_status': CONFIRMED},
        'conflict_check': True,
    },
    'reject': {
        'guards': [{'rental_status': {PENDING}}],
        'effect': {'rental_status': REJECTED},
        'conflict_check': False,
    },
    'mark_ready_to_ship': {
        'guards': [{'rental_status': {CONFIRMED},
                    'shipping_status': {SHIPPING_NONE, READY_TO_SHIP}}],
        'effect': {'shipping_status': READY_TO_SHIP},
        'conflict_check': False,
    },
    'mark_in_transit_to_customer': {
        'guards': [{'rental_status': {CONFIRMED},
                    'shipping_status': {READY_TO_SHIP}}],
        'effect': {'shipping_status': IN_TRANSIT_TO_USER},
        'conflict_check': False,
    },
    'confirm_delivered': {
        'guards': [{'rental_status': {CONFIRMED},
                    'shipping_status': {IN_TRANSIT_TO_USER}}],
        'effect': {'shipping_status': DELIVERED},
        'conflict_check': False,
    },
    'activate': {
        'guards': [{'rental_status': {CONFIRMED},
                    'shipping_status': {DELIVERED}}],
        'effect': {'rental_status': ACTIVE},
        'conflict_check': True,
    },
    'schedule_return': {
        'guards': [{'rental_status': {ACTIVE},
                    'shipping_status': {DELIVERED}}],
        'effect': {'shipping_status': RETURN_SCHEDULED},
        'conflict_check': False,
    },
    'confirm_shipped_back': {
        'guards': [{'rental_status': {ACTIVE},
                    'shipping_status': {RETURN_SCHEDULED}}],
        'effect': {'shipping_status': IN_TRANSIT_TO_OWNER},
        'conflict_check': False,
    },
    'confirm_returned': {
        'guards': [{'rental_status': {ACTIVE},
                    'shipping_status': {IN_TRANSIT_TO_OWNER}}],
        'effect': {'shipping_status': RETURNED, 'rental_status': COMPLETED},
        'conflict_check': False,
    },
    'cancel': {
        'guards': [
            {'rental_status': {PENDING}},
            {'rental_status': {CONFIRMED},
             'shipping_status': set(SHIPPING_STATUSES) - set(CUSTOMER_CANCEL_BLOCKING_SHIPPING)},
        ],
        'effect': {'rental_status': CANCELLED},
        'conflict_check': False,
    },
    'admin_cancel': {
        'guards': [{'rental_status': {PENDING, CONFIRMED, ACTIVE}}],
        'effect': {'rental_status': CANCELLED},
        'conflict_check': False,
    },
    'update_details': {
        'guards': [
            {'rental_status': {PENDING}},
            {'rental_status': {CONFIRMED},
             'shipping_status': {SHIPPING_NONE, READY_TO_SHIP}},
        ],
        'effect': {},
        'conflict_check': True,
    },
    'apply_extension': {
        'guards': [{'rental_status': {CONFIRMED, ACTIVE}}],
        'effect': {},
        'conflict_check': True,
    },
}


def get_valid_transitions() -> dict:
    """Return a copy of the transition table (safe to modify)."""
    return {
        name: {
            'guards': [{axis: set(values) for axis, values in alt.items()} for alt in spec['guards']],
            'effect': dict(spec['effect']),
            'conflict_check': spec['conflict_check'],
        }
        for name, spec in TRANSITIONS.items()
    }


# =============================================================================
# GUARDS
# =============================================================================

def state_of(booking: dict) -> dict:
    """The status-axis snapshot used for diagnostics."""
    return {
        'rental_status': booking.get('rental_status'),
        'shipping_status': booking.get('shipping_status'),
    }


def guard_holds(booking: dict, operation: str) -> bool:
    """
    Check whether an operation's guard holds for a booking.

    Args:
        booking: Booking dict
        operation: Key of TRANSITIONS

    Returns:
        True if the transition is legal

    Raises:
        KeyError: If the operation is unknown
    """
    alternatives = TRANSITIONS[operation]['guards']
    for alternative in alternatives:
        if all(booking.get(axis) in allowed for axis, allowed in alternative.items()):
            return True
    return False


def check_transition(booking: dict, operation: str) -> dict:
    """
    Validate a transition and return the fields it writes.

    Args:
        booking: Booking dict
        operation: Key of TRANSITIONS

    Returns:
        dict: Effect fields to write

    Raises:
        IllegalTransition: If the guard does not hold
    """
    if not guard_holds(booking, operation):
        raise IllegalTransition(state_of(booking), operation)
    return dict(TRANSITIONS[operation]['effect'])


def allowed_operations(booking: dict) -> list:
    """Names of the operations whose guards currently hold."""
    return [name for name in TRANSITIONS if guard_holds(booking, name)]


def requires_conflict_check(booking: dict, operation: str) -> bool:
    """
    True when committing this operation must re-run the conflict resolver.

    That is when the booking enters confirmed or active, or when a committed
    booking's dates or item change.
    """
    spec = TRANSITIONS[operation]
    if not spec['conflict_check']:
        return False
    new_status = spec['effect'].get('rental_status', booking.get('rental_status'))
    return new_status in COMMITTED_STATUSES


# =============================================================================
# DERIVED VIEWS (recomputed on read, never stored)
# =============================================================================

def is_terminal(booking: dict) -> bool:
    """True once no further status change is expected."""
    rental_status = booking.get('rental_status')
    if rental_status in (COMPLETED, CANCELLED, REJECTED):
        return True
    return booking.get('shipping_status') == RETURNED and rental_status == COMPLETED


def needs_action(booking: dict) -> bool:
    """
    True when staff have to do something with the booking.

    Pending requests await a decision, confirmed bookings await dispatch,
    and items travelling back await a return check.
    """
    rental_status = booking.get('rental_status')
    shipping_status = booking.get('shipping_status')

    if rental_status == PENDING:
        return True
    if rental_status == CONFIRMED and shipping_status in (SHIPPING_NONE, READY_TO_SHIP):
        return True
    return shipping_status == IN_TRANSIT_TO_OWNER


RENTAL_STEPS = (
    PENDING,
    CONFIRMED,
    READY_TO_SHIP,
    IN_TRANSIT_TO_USER,
    DELIVERED,
    ACTIVE,
    RETURN_SCHEDULED,
    IN_TRANSIT_TO_OWNER,
    RETURNED,
    COMPLETED,
)


def current_step(booking: dict) -> str:
    """
    Key of the furthest progress step the booking has reached.

    Shipping progress outranks rental status because the shipping axis
    moves after confirmation.
    """
    rental_status = booking.get('rental_status')
    shipping_status = booking.get('shipping_status')

    if rental_status == COMPLETED or shipping_status == RETURNED:
        return COMPLETED
    if shipping_status in (IN_TRANSIT_TO_OWNER, RETURN_SCHEDULED):
        return shipping_status
    if rental_status == ACTIVE:
        return ACTIVE
    if shipping_status in (DELIVERED, IN_TRANSIT_TO_USER, READY_TO_SHIP):
        return shipping_status
    if rental_status == CONFIRMED:
        return CONFIRMED
    return PENDING


def current_step_index(booking: dict) -> int:
    """Zero-based position of current_step() in RENTAL_STEPS."""
    return RENTAL_STEPS.index(current_step(booking))


def with_derived_fields(booking: dict) -> dict:
    """Attach the derived views to a booking dict (in place) and return it."""
    booking['needs_action'] = needs_action(booking)
    booking['current_step'] = current_step(booking)
    booking['current_step_index'] = current_step_index(booking)
    booking['is_terminal'] = is_terminal(booking)
    booking['allowed_operations'] = allowed_operations(booking)
    return booking


# =============================================================================
# STATUS HISTORY
# =============================================================================

def record_status_change(cursor, booking_id: int, axis: str, from_status, to_status,
                         operation: str, changed_by: str = None, notes: str = None) -> None:
    """
    Record one transition in the history trail (caller's transaction).

    Args:
        cursor: Cursor of the open write transaction
        booking_id: Booking ID
        axis: 'rental', 'shipping', 'payment', 'extension' or 'dates'
        from_status: Previous value
        to_status: New value
        operation: Operation name
        changed_by: Username of the actor
        notes: Optional free text
    """
    cursor.execute('''
        INSERT INTO booking_status_history
        (booking_id, axis, from_status, to_status, operation, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
    ''', (booking_id, axis, from_status, to_status, operation, changed_by, notes))


def get_status_history(booking_id: int) -> list:
    """
    Get state change history for a booking.

    Args:
        booking_id: Booking ID

    Returns:
        list: History entries, newest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM booking_status_history
        WHERE booking_id = ?
        ORDER BY created_at DESC, id DESC
    ''', (booking_id,))
    return [dict(r) for r in cursor.fetchall()]
