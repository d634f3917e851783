"""
Conflict Service - Double-booking detection for rental items.

Handles:
- Closed-interval overlap tests
- Committed-booking conflict lookups (with self-exclusion for edits)
- Pending requests that would collide if approved
- Same-length alternative date suggestions
- Calendar window lookups

Only committed bookings (confirmed, active, completed) block dates.
No side effects.
"""

import logging
from datetime import timedelta
from typing import List, Dict, Any

from flask import current_app

from models.booking_queries import (
    get_committed_bookings_in_range, get_committed_bookings_between, get_pending_bookings
)
from utils.datetime_helpers import to_local_date, to_iso_date, add_days
from utils.errors import InvalidRange

logger = logging.getLogger(__name__)


def ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    """
    Test two inclusive date ranges for overlap.

    Touching endpoints overlap: a range ending on day X conflicts with one
    starting on day X.
    """
    return to_local_date(a_start) <= to_local_date(b_end) and to_local_date(b_start) <= to_local_date(a_end)


def find_conflicts(
    item_id: int,
    start_date,
    end_date,
    exclude_booking_id: int = None,
    cursor=None
) -> List[Dict[str, Any]]:
    """
    Find committed bookings of an item overlapping a date range.

    Args:
        item_id: Rental item ID
        start_date: Range start (inclusive)
        end_date: Range end (inclusive)
        exclude_booking_id: Booking to skip (the one being edited)
        cursor: Cursor of an open transaction, so the check sees its writes

    Returns:
        Conflicting booking dicts ordered by start date (empty if none)

    Raises:
        InvalidRange: If end_date is before start_date
    """
    start = to_iso_date(start_date)
    end = to_iso_date(end_date)
    if end < start:
        raise InvalidRange(start, end)

    conflicts = get_committed_bookings_in_range(
        item_id, start, end, exclude_booking_id=exclude_booking_id, cursor=cursor
    )
    if conflicts:
        logger.debug(
            f"[Conflict] Item {item_id} {start}..{end} overlaps booking(s) "
            f"{[c['id'] for c in conflicts]}"
        )
    return conflicts


def has_conflict(item_id: int, start_date, end_date, exclude_booking_id: int = None) -> bool:
    """True if any committed booking of the item overlaps the range."""
    return bool(find_conflicts(item_id, start_date, end_date, exclude_booking_id))


def get_pending_conflicts() -> List[Dict[str, Any]]:
    """
    List pending requests that would collide with committed bookings.

    Returns:
        List of {'booking': pending booking, 'conflicts': [committed bookings]}
    """
    results = []
    for booking in get_pending_bookings():
        conflicts = find_conflicts(
            booking['item_id'], booking['start_date'], booking['end_date'],
            exclude_booking_id=booking['id']
        )
        if conflicts:
            results.append({'booking': booking, 'conflicts': conflicts})
    return results


def suggest_alternative_dates(
    item_id: int,
    start_date,
    end_date,
    max_suggestions: int = None,
    search_window_days: int = None
) -> List[Dict[str, Any]]:
    """
    Suggest conflict-free ranges of the same length near a requested range.

    Offsets run from -window to +window in steps of the rental length,
    skipping the requested range itself.

    Args:
        item_id: Rental item ID
        start_date: Requested start
        end_date: Requested end
        max_suggestions: Cap on results (config default)
        search_window_days: Days searched either side (config default)

    Returns:
        List of {'start_date', 'end_date', 'offset_days'}
    """
    if max_suggestions is None:
        max_suggestions = current_app.config.get('MAX_ALTERNATIVE_SUGGESTIONS', 5)
    if search_window_days is None:
        search_window_days = current_app.config.get('ALTERNATIVE_SEARCH_WINDOW_DAYS', 14)

    start = to_local_date(start_date)
    end = to_local_date(end_date)
    if end < start:
        raise InvalidRange(start.isoformat(), end.isoformat())
    rental_days = (end - start).days + 1

    suggestions = []
    offset = -search_window_days
    while offset <= search_window_days and len(suggestions) < max_suggestions:
        if offset != 0:
            alt_start = start + timedelta(days=offset)
            alt_end = add_days(alt_start, rental_days - 1)
            if not find_conflicts(item_id, alt_start, alt_end):
                suggestions.append({
                    'start_date': alt_start.isoformat(),
                    'end_date': alt_end,
                    'offset_days': offset
                })
        offset += rental_days

    return suggestions


def get_calendar_bookings(range_start, range_end, item_id: int = None) -> List[Dict[str, Any]]:
    """
    Get committed bookings intersecting a calendar window.

    Args:
        range_start: Window start
        range_end: Window end
        item_id: Optional item filter

    Returns:
        Booking dicts ordered by start date
    """
    start = to_iso_date(range_start)
    end = to_iso_date(range_end)
    if end < start:
        raise InvalidRange(start, end)
    return get_committed_bookings_between(start, end, item_id=item_id)
