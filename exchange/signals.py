"""
Django signals for swap domain events.

``swap_event`` is sent once per delivered event. Real-time fan-out (websocket
gateways, e-mail digests) connects its own receivers; the audit receiver here
only logs.
"""

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent with: event (str), target_user_id (int), payload (dict)
swap_event = Signal()


@receiver(swap_event)
def log_swap_event(sender, event, target_user_id, payload, **kwargs):
    """
    Audit receiver: record every swap event that leaves the engine.

    Args:
        sender: The notifier class
        event: Event name, e.g. 'swap.accepted'
        target_user_id: User the event is addressed to
        payload: Event payload dict
        **kwargs: Additional keyword arguments
    """
    logger.info(
        f"Swap event dispatched. "
        f"Event: {event}, "
        f"Target User ID: {target_user_id}, "
        f"Swap ID: {payload.get('swap_id')}"
    )
