"""
Booking engine error taxonomy.

Every failure the engine reports to its caller is one of these classes.
Each carries a machine-readable ``code`` and the HTTP ``status`` the API
layer answers with; ``to_dict()`` gives the extra fields for the JSON body.
"""


class BookingEngineError(Exception):
    """Base class for all engine failures."""

    code = 'engine_error'
    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Extra response fields describing the failure."""
        return {'code': self.code}


class ValidationError(BookingEngineError):
    """Malformed or missing input."""

    code = 'validation_error'
    status = 422


class InvalidRange(BookingEngineError):
    """End date falls before start date."""

    code = 'invalid_range'
    status = 422

    def __init__(self, start_date, end_date):
        super().__init__(f'End date {end_date} is before start date {start_date}')
        self.start_date = start_date
        self.end_date = end_date


class NoPricingConfigured(BookingEngineError):
    """The item has an empty tier table. Operator error."""

    code = 'no_pricing_configured'
    status = 500

    def __init__(self, item_id: int):
        super().__init__(f'No pricing tiers configured for item {item_id}')
        self.item_id = item_id


class NoTierForDuration(BookingEngineError):
    """No tier covers the requested day count. Operator error."""

    code = 'no_tier_for_duration'
    status = 500

    def __init__(self, item_id: int, days: int):
        super().__init__(f'No pricing tier covers {days} day(s) for item {item_id}')
        self.item_id = item_id
        self.days = days


class BookingConflict(BookingEngineError):
    """The date range overlaps committed bookings of the same item."""

    code = 'booking_conflict'
    status = 409

    def __init__(self, conflicts: list, item_id: int = None, start_date: str = None,
                 end_date: str = None):
        if conflicts:
            ids = ', '.join(str(c['id']) for c in conflicts)
            message = f'Dates overlap committed booking(s): {ids}'
        else:
            message = f'Dates {start_date}..{end_date} overlap a committed booking of item {item_id}'
        super().__init__(message)
        self.conflicts = conflicts

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'conflicts': [
                {
                    'id': c['id'],
                    'item_id': c['item_id'],
                    'start_date': c['start_date'],
                    'end_date': c['end_date'],
                    'rental_status': c['rental_status'],
                    'display_name': c.get('display_name'),
                }
                for c in self.conflicts
            ]
        }


class IllegalTransition(BookingEngineError):
    """An operation's guard does not hold for the record's current state."""

    code = 'illegal_transition'
    status = 409

    def __init__(self, from_state: dict, operation: str, reason: str = None):
        described = ', '.join(f'{k}={v}' for k, v in from_state.items())
        message = f"Cannot {operation} from state ({described})"
        if reason:
            message = f'{message}: {reason}'
        super().__init__(message)
        self.from_state = from_state
        self.operation = operation

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'operation': self.operation,
            'from_state': self.from_state,
        }


class NotFound(BookingEngineError):
    """Unknown booking, extension, payment, item or user id."""

    code = 'not_found'
    status = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f'{entity.capitalize()} {entity_id} not found')
        self.entity = entity
        self.entity_id = entity_id
