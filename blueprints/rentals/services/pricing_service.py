"""
Pricing Service - Duration-tiered rental pricing.

Handles:
- Inclusive rental day counting in the reference timezone
- Tier selection from an item's tier table
- Quote totals rounded to currency places

Pure: reads the tier table on every call and caches nothing.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from flask import current_app, has_app_context

from models.rental_item import get_item_by_id, get_pricing_tiers
from utils.datetime_helpers import to_local_date
from utils.errors import InvalidRange, NoPricingConfigured, NoTierForDuration, NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """Resolved price for one item over one date range."""

    days: int
    price_per_day: float
    total_price: float
    tier_description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _currency_places() -> int:
    if has_app_context():
        return current_app.config.get('CURRENCY_PLACES', 2)
    return 2


def calculate_rental_days(start_date, end_date) -> int:
    """
    Count rental days, both ends inclusive.

    Datetimes are converted to the reference timezone and truncated to
    dates first, so a same-day rental is one day.

    Args:
        start_date: First rental day (date, datetime or ISO string)
        end_date: Last rental day (date, datetime or ISO string)

    Returns:
        Number of calendar days (>= 1)

    Raises:
        InvalidRange: If end_date is before start_date
        ValidationError: If a value is not a date
    """
    try:
        start = to_local_date(start_date)
        end = to_local_date(end_date)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if end < start:
        raise InvalidRange(start.isoformat(), end.isoformat())

    return (end - start).days + 1


def select_tier(tiers: list, days: int) -> Optional[dict]:
    """
    Find the tier covering a day count.

    Args:
        tiers: Tier dicts (min_days, max_days, price_per_day)
        days: Rental day count

    Returns:
        Matching tier dict or None (no nearest-tier fallback)
    """
    for tier in tiers:
        max_days = tier.get('max_days')
        if days >= tier['min_days'] and (max_days is None or days <= max_days):
            return tier
    return None


def resolve_price(item_id: int, start_date, end_date) -> PriceQuote:
    """
    Resolve the rental price of an item for a date range.

    Args:
        item_id: Rental item ID
        start_date: First rental day
        end_date: Last rental day (inclusive)

    Returns:
        PriceQuote with days, price_per_day, total_price, tier_description

    Raises:
        InvalidRange: If end_date is before start_date
        NotFound: If the item does not exist
        NoPricingConfigured: If the item has no tiers
        NoTierForDuration: If no tier covers the day count
    """
    days = calculate_rental_days(start_date, end_date)

    if not get_item_by_id(item_id):
        raise NotFound('item', item_id)

    tiers = get_pricing_tiers(item_id)
    if not tiers:
        logger.error(f"[Pricing] Item {item_id} has no pricing tiers")
        raise NoPricingConfigured(item_id)

    tier = select_tier(tiers, days)
    if tier is None:
        logger.error(f"[Pricing] No tier covers {days} day(s) for item {item_id}")
        raise NoTierForDuration(item_id, days)

    price_per_day = float(tier['price_per_day'])
    total_price = round(days * price_per_day, _currency_places())

    logger.debug(
        f"[Pricing] Item {item_id}: {days} day(s) at {price_per_day} "
        f"({tier.get('description') or 'tier ' + str(tier['min_days'])}) = {total_price}"
    )

    return PriceQuote(
        days=days,
        price_per_day=price_per_day,
        total_price=total_price,
        tier_description=tier.get('description')
    )
