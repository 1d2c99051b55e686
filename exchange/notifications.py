"""
Notification interface between the swap engine and event consumers.

Delivery is fire-and-forget: a failing consumer is logged and never turns a
committed state transition into a command failure.
"""

import logging
from typing import Protocol

from .signals import swap_event

logger = logging.getLogger(__name__)

SWAP_REQUESTED = 'swap.requested'
SWAP_ACCEPTED = 'swap.accepted'
SWAP_REJECTED = 'swap.rejected'
SWAP_COMPLETED = 'swap.completed'
SWAP_CANCELLED = 'swap.cancelled'
SWAP_EXPIRED = 'swap.expired'
SWAP_MESSAGE = 'swap.message'


class Notifier(Protocol):
    def emit(self, event: str, target_user_id: int, payload: dict) -> None: ...


class SignalNotifier:
    """Publish events through the ``swap_event`` Django signal."""

    def emit(self, event, target_user_id, payload):
        responses = swap_event.send_robust(
            sender=self.__class__,
            event=event,
            target_user_id=target_user_id,
            payload=payload,
        )
        for handler, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Swap event receiver failed. "
                    f"Event: {event}, "
                    f"Receiver: {getattr(handler, '__qualname__', handler)}, "
                    f"Error: {response}",
                    exc_info=(type(response), response, response.__traceback__),
                )


class NullNotifier:
    """Drop every event. Used by maintenance commands run with notifications off."""

    def emit(self, event, target_user_id, payload):
        logger.debug(f"Dropped swap event {event} for user {target_user_id}")


def deliver(notifier, event, target_user_id, payload):
    """
    Hand one event to the notifier, swallowing and logging any failure.
    """
    try:
        notifier.emit(event, target_user_id, payload)
    except Exception as exc:
        logger.error(
            f"Swap event delivery failed. "
            f"Event: {event}, "
            f"Target User ID: {target_user_id}, "
            f"Error: {exc}",
            exc_info=True,
        )
