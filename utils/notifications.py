"""
In-process notification bus.

The engine publishes an event after a transition commits; transports (push,
email, realtime) subscribe here. Dispatch is fire-and-forget: a failing
subscriber is logged and never affects the transition that triggered it.
"""

import logging

logger = logging.getLogger(__name__)

_subscribers = []


def subscribe(handler) -> None:
    """
    Register a handler called as handler(event, booking_id, payload).

    Args:
        handler: Callable receiving the event name, booking ID and payload dict
    """
    if handler not in _subscribers:
        _subscribers.append(handler)


def unsubscribe(handler) -> None:
    """Remove a previously registered handler (no-op if unknown)."""
    if handler in _subscribers:
        _subscribers.remove(handler)


def clear_subscribers() -> None:
    """Drop every handler."""
    _subscribers.clear()


def publish(event: str, booking_id: int, **payload) -> int:
    """
    Dispatch an event to every subscriber.

    Args:
        event: Event name (e.g. 'booking.confirmed', 'payment.verified')
        booking_id: Booking the event concerns
        **payload: Event details

    Returns:
        Number of handlers that ran without raising
    """
    logger.info(f"[Notify] {event} booking={booking_id}")

    delivered = 0
    for handler in list(_subscribers):
        try:
            handler(event, booking_id, payload)
            delivered += 1
        except Exception as e:
            # Notification failures never roll back the transition
            logger.error(f"[Notify] Handler {handler!r} failed for {event}: {e}", exc_info=True)
    return delivered
