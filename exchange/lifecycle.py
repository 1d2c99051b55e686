"""
Swap and item state machines.

Pure functions over plain values: nothing here touches the database, so the
engine and the stores share a single definition of which moves are legal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# Swap kinds
DIRECT = 'direct'
POINTS = 'points'

KIND_CHOICES = [
    (DIRECT, 'Direct item swap'),
    (POINTS, 'Points redemption'),
]

# Swap statuses
PENDING = 'pending'
ACCEPTED = 'accepted'
REJECTED = 'rejected'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

STATUS_CHOICES = [
    (PENDING, 'Pending'),
    (ACCEPTED, 'Accepted'),
    (REJECTED, 'Rejected'),
    (COMPLETED, 'Completed'),
    (CANCELLED, 'Cancelled'),
]

ACTIVE_STATUSES = (PENDING, ACCEPTED)
TERMINAL_STATUSES = (REJECTED, COMPLETED, CANCELLED)

VALID_TRANSITIONS = {
    PENDING: [ACCEPTED, REJECTED, CANCELLED],
    ACCEPTED: [COMPLETED],
    REJECTED: [],
    COMPLETED: [],
    CANCELLED: [],
}

# Item availability
AVAILABLE = 'available'
RESERVED = 'reserved'
SWAPPED = 'swapped'

AVAILABILITY_CHOICES = [
    (AVAILABLE, 'Available'),
    (RESERVED, 'Reserved'),
    (SWAPPED, 'Swapped'),
]

AVAILABILITY_TRANSITIONS = {
    AVAILABLE: [RESERVED],
    RESERVED: [SWAPPED, AVAILABLE],
    SWAPPED: [],
}

# Respond actions
ACCEPT = 'accept'
REJECT = 'reject'

ACTION_CHOICES = [
    (ACCEPT, 'Accept'),
    (REJECT, 'Reject'),
]

MESSAGE_MAX_LENGTH = 500
CONVERSATION_MESSAGE_MAX_LENGTH = 1000
NOTE_MAX_LENGTH = 500


def can_transition(current_status, new_status):
    """Return True if a swap may move from current_status to new_status."""
    return new_status in VALID_TRANSITIONS.get(current_status, [])


def can_change_availability(current, new):
    """Return True if an item may move from availability current to new."""
    return new in AVAILABILITY_TRANSITIONS.get(current, [])


def is_active(status):
    return status in ACTIVE_STATUSES


def is_expired(status, expires_at, now):
    """
    Check whether a swap should be reaped.

    Only pending swaps expire; an accepted swap holds reservations the owner
    committed to and is never timed out.
    """
    return status == PENDING and expires_at is not None and expires_at <= now


def is_participant(requester_id, owner_id, user_id):
    return user_id is not None and user_id in (requester_id, owner_id)


def other_participant(requester_id, owner_id, user_id):
    """
    Return the counterpart of user_id in a swap, or None if user_id is not a party.
    """
    if user_id == requester_id:
        return owner_id
    if user_id == owner_id:
        return requester_id
    return None


def items_involved(kind, requested_item_id, offered_item_id):
    """Items whose availability follows the swap: both for direct swaps."""
    if kind == DIRECT and offered_item_id is not None:
        return [requested_item_id, offered_item_id]
    return [requested_item_id]


@dataclass
class TimelineEntry:
    status: str
    timestamp: datetime
    note: str = ''


@dataclass
class ConversationMessage:
    id: int
    swap_id: int
    sender_id: int
    body: str
    is_read: bool
    created_at: datetime


@dataclass
class ItemRecord:
    """Snapshot of the item fields the engine reasons about."""
    id: int
    owner_id: int
    availability: str
    point_value: int

    @property
    def is_available(self):
        return self.availability == AVAILABLE


@dataclass
class SwapRecord:
    """
    Plain snapshot of a stored swap.

    Stores hand these to the engine so that lifecycle decisions are made on
    data, not on ORM objects with hidden save behaviour.
    """
    id: int
    kind: str
    requester_id: int
    owner_id: int
    requested_item_id: int
    offered_item_id: Optional[int]
    points_offered: Optional[int]
    status: str
    message: str
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    timeline: list = field(default_factory=list)

    @property
    def items(self):
        return items_involved(self.kind, self.requested_item_id, self.offered_item_id)

    def is_participant(self, user_id):
        return is_participant(self.requester_id, self.owner_id, user_id)

    def other_participant(self, user_id):
        return other_participant(self.requester_id, self.owner_id, user_id)
