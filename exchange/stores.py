"""
Store contracts consumed by the swap lifecycle engine, and their ORM backends.

Each mutation is a single conditional UPDATE (compare-and-set), so the
invariants hold under concurrent callers without read-then-write races:

- LedgerStore.debit only matches rows whose balance covers the amount.
- ItemAvailabilityStore.compare_and_set only matches the expected status.
- SwapRecordStore.transition only matches the expected swap status.

Database failures other than integrity violations surface as StoreUnavailable.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Protocol, Sequence

from django.db import DatabaseError, IntegrityError, InterfaceError, transaction
from django.db.models import F, Q
from django.utils import timezone

from . import lifecycle
from .errors import (
    DuplicateActiveSwap,
    InsufficientBalance,
    InvalidCommand,
    InvalidTransition,
    ItemNotFound,
    StoreUnavailable,
    SwapNotFound,
)
from .models import Item, Swap, SwapMessage, SwapTimelineEntry, User

logger = logging.getLogger(__name__)


@contextmanager
def store_errors():
    """
    Translate infrastructure failures into StoreUnavailable.

    Integrity errors are left alone: callers decide what a violated
    constraint means.
    """
    try:
        yield
    except IntegrityError:
        raise
    except (DatabaseError, InterfaceError) as exc:
        logger.error(f"Swap store unavailable: {exc}", exc_info=True)
        raise StoreUnavailable() from exc


def _require_positive(amount):
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidCommand(f'Point amounts must be positive integers, got {amount!r}.')


# ============================================================================
# Contracts
# ============================================================================

class LedgerStore(Protocol):
    def balance(self, user_id: int) -> int: ...
    def credit(self, user_id: int, amount: int) -> None: ...
    def debit(self, user_id: int, amount: int) -> None: ...
    def record_swap(self, user_id: int, earned: int = 0, spent: int = 0) -> None: ...


class ItemAvailabilityStore(Protocol):
    def get(self, item_id: int) -> lifecycle.ItemRecord: ...
    def compare_and_set(self, item_id: int, expected: str, new: str) -> bool: ...


class SwapRecordStore(Protocol):
    def insert(self, **fields) -> lifecycle.SwapRecord: ...
    def find_by_id(self, swap_id: int, lock: bool = False) -> lifecycle.SwapRecord: ...
    def find_active_for(self, requester_id: int, item_id: int) -> Optional[lifecycle.SwapRecord]: ...
    def list_for(self, user_id: int, status: Optional[str] = None, kind: Optional[str] = None) -> Sequence[lifecycle.SwapRecord]: ...
    def pending_for_item(self, item_id: int) -> list: ...
    def expired_pending_ids(self, now) -> list: ...
    def transition(self, swap_id: int, expected: str, new: str, at, note: str = '', **fields) -> bool: ...


# ============================================================================
# Ledger
# ============================================================================

class DjangoLedgerStore:
    """Points balances kept on the User row."""

    def balance(self, user_id):
        with store_errors():
            try:
                return User.objects.values_list('points', flat=True).get(pk=user_id)
            except User.DoesNotExist:
                raise InvalidCommand(f'User {user_id} does not exist.')

    def credit(self, user_id, amount):
        _require_positive(amount)
        with store_errors():
            updated = User.objects.filter(pk=user_id).update(points=F('points') + amount)
        if not updated:
            raise InvalidCommand(f'User {user_id} does not exist.')

    def debit(self, user_id, amount):
        """
        Subtract amount from the balance, never below zero.

        The balance check and the subtraction are one UPDATE statement; the
        user_points_non_negative constraint backs it up.

        Raises:
            InsufficientBalance: If the balance does not cover amount
        """
        _require_positive(amount)
        with store_errors():
            try:
                with transaction.atomic():
                    updated = User.objects.filter(pk=user_id, points__gte=amount).update(
                        points=F('points') - amount
                    )
            except IntegrityError as exc:
                raise InsufficientBalance(user_id=user_id, amount=amount) from exc
            if updated:
                return
            if not User.objects.filter(pk=user_id).exists():
                raise InvalidCommand(f'User {user_id} does not exist.')
        raise InsufficientBalance(user_id=user_id, amount=amount)

    def record_swap(self, user_id, earned=0, spent=0):
        with store_errors():
            User.objects.filter(pk=user_id).update(
                items_swapped=F('items_swapped') + 1,
                points_earned=F('points_earned') + earned,
                points_spent=F('points_spent') + spent,
            )


# ============================================================================
# Item availability
# ============================================================================

class DjangoItemAvailabilityStore:

    def get(self, item_id):
        with store_errors():
            try:
                row = Item.objects.values(
                    'id', 'owner_id', 'availability', 'point_value'
                ).get(pk=item_id)
            except Item.DoesNotExist:
                raise ItemNotFound(item_id=item_id)
        return lifecycle.ItemRecord(**row)

    def compare_and_set(self, item_id, expected, new):
        """
        Move an item from expected to new availability.

        Returns:
            bool: False if the item was not in the expected state (someone else
            got there first); True if the update applied
        """
        if not lifecycle.can_change_availability(expected, new):
            raise InvalidTransition(f'Items cannot move from {expected} to {new}.')
        with store_errors():
            updated = Item.objects.filter(pk=item_id, availability=expected).update(
                availability=new,
                updated_at=timezone.now(),
            )
        return updated == 1


# ============================================================================
# Swap records
# ============================================================================

def _timeline(swap):
    return [
        lifecycle.TimelineEntry(status=entry.status, timestamp=entry.created_at, note=entry.note)
        for entry in swap.timeline_entries.all()
    ]


def _to_record(swap, with_timeline=True):
    return lifecycle.SwapRecord(
        id=swap.pk,
        kind=swap.kind,
        requester_id=swap.requester_id,
        owner_id=swap.owner_id,
        requested_item_id=swap.requested_item_id,
        offered_item_id=swap.offered_item_id,
        points_offered=swap.points_offered,
        status=swap.status,
        message=swap.message,
        created_at=swap.created_at,
        expires_at=swap.expires_at,
        accepted_at=swap.accepted_at,
        completed_at=swap.completed_at,
        timeline=_timeline(swap) if with_timeline else [],
    )


def _to_message(message):
    return lifecycle.ConversationMessage(
        id=message.pk,
        swap_id=message.swap_id,
        sender_id=message.sender_id,
        body=message.body,
        is_read=message.is_read,
        created_at=message.created_at,
    )


class SwapRecordList:
    """
    Lazy, sliceable view of a swap queryset that yields SwapRecords.

    Supports count() and slicing so DRF pagination can page through it with
    one COUNT and one LIMIT/OFFSET query instead of loading every row.
    """

    def __init__(self, queryset):
        self.queryset = queryset

    def count(self):
        with store_errors():
            return self.queryset.count()

    def __len__(self):
        return self.count()

    def __getitem__(self, index):
        with store_errors():
            if isinstance(index, slice):
                return [_to_record(swap) for swap in self.queryset[index]]
            return _to_record(self.queryset[index])

    def __iter__(self):
        with store_errors():
            records = [_to_record(swap) for swap in self.queryset]
        return iter(records)


class DjangoSwapRecordStore:

    def insert(self, kind, requester_id, owner_id, requested_item_id, created_at, expires_at,
               offered_item_id=None, points_offered=None, message='', note=''):
        """
        Store a new pending swap with its first timeline entry.

        Raises:
            DuplicateActiveSwap: If the one-active-swap constraint rejects the row
        """
        with store_errors():
            try:
                with transaction.atomic():
                    swap = Swap.objects.create(
                        kind=kind,
                        requester_id=requester_id,
                        owner_id=owner_id,
                        requested_item_id=requested_item_id,
                        offered_item_id=offered_item_id,
                        points_offered=points_offered,
                        message=message,
                        status=lifecycle.PENDING,
                        active_marker=True,
                        created_at=created_at,
                        updated_at=created_at,
                        expires_at=expires_at,
                    )
                    SwapTimelineEntry.objects.create(
                        swap=swap,
                        status=lifecycle.PENDING,
                        note=note,
                        created_at=created_at,
                    )
            except IntegrityError as exc:
                # Locking read: sees rows committed after this transaction's snapshot
                with transaction.atomic():
                    duplicate = Swap.objects.select_for_update().filter(
                        requester_id=requester_id,
                        requested_item_id=requested_item_id,
                        active_marker=True,
                    ).exists()
                if duplicate:
                    raise DuplicateActiveSwap(item_id=requested_item_id) from exc
                raise
        return self.find_by_id(swap.pk)

    def find_by_id(self, swap_id, lock=False):
        """
        Load a swap snapshot.

        With lock=True the row is locked until the surrounding transaction
        ends (SELECT ... FOR UPDATE); callers must be inside transaction.atomic().
        """
        queryset = Swap.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        with store_errors():
            try:
                swap = queryset.get(pk=swap_id)
            except Swap.DoesNotExist:
                raise SwapNotFound(swap_id=swap_id)
            return _to_record(swap)

    def find_active_for(self, requester_id, item_id):
        with store_errors():
            swap = Swap.objects.filter(
                requester_id=requester_id,
                requested_item_id=item_id,
                status__in=lifecycle.ACTIVE_STATUSES,
            ).first()
            return _to_record(swap, with_timeline=False) if swap else None

    def list_for(self, user_id, status=None, kind=None):
        """Swaps where the user is either party, newest first, evaluated lazily."""
        queryset = Swap.objects.filter(Q(requester_id=user_id) | Q(owner_id=user_id))
        if status:
            queryset = queryset.filter(status=status)
        if kind:
            queryset = queryset.filter(kind=kind)
        return SwapRecordList(
            queryset.prefetch_related('timeline_entries').order_by('-created_at', '-id')
        )

    def pending_for_item(self, item_id):
        queryset = Swap.objects.filter(
            requested_item_id=item_id,
            status=lifecycle.PENDING,
        ).prefetch_related('timeline_entries').order_by('-created_at', '-id')
        with store_errors():
            return [_to_record(swap) for swap in queryset]

    def expired_pending_ids(self, now):
        with store_errors():
            return list(
                Swap.objects.filter(status=lifecycle.PENDING, expires_at__lte=now)
                .order_by('expires_at', 'id')
                .values_list('id', flat=True)
            )

    def transition(self, swap_id, expected, new, at, note='', **fields):
        """
        Compare-and-set the swap status and append a timeline entry.

        Args:
            swap_id: Swap primary key
            expected: Status the swap must currently have
            new: Status to move to
            at: Timestamp recorded on the timeline
            note: Optional timeline note
            **fields: Extra columns to set (accepted_at, completed_at)

        Returns:
            bool: False if the swap was no longer in the expected status
        """
        if not lifecycle.can_transition(expected, new):
            raise InvalidTransition(f'Swaps cannot move from {expected} to {new}.')

        values = dict(fields, status=new, updated_at=at)
        if new in lifecycle.TERMINAL_STATUSES:
            values['active_marker'] = None

        with store_errors():
            with transaction.atomic():
                updated = Swap.objects.filter(pk=swap_id, status=expected).update(**values)
                if not updated:
                    return False
                SwapTimelineEntry.objects.create(
                    swap_id=swap_id,
                    status=new,
                    note=note,
                    created_at=at,
                )
        return True

    # Conversation

    def add_message(self, swap_id, sender_id, body, at):
        with store_errors():
            message = SwapMessage.objects.create(
                swap_id=swap_id,
                sender_id=sender_id,
                body=body,
                created_at=at,
            )
        return _to_message(message)

    def list_messages(self, swap_id):
        with store_errors():
            return [
                _to_message(message)
                for message in SwapMessage.objects.filter(swap_id=swap_id).order_by('created_at', 'id')
            ]

    def mark_read(self, swap_id, reader_id):
        """Mark messages sent by the other party as read; return how many changed."""
        with store_errors():
            return SwapMessage.objects.filter(
                swap_id=swap_id,
                is_read=False,
            ).exclude(sender_id=reader_id).update(is_read=True)

    def unread_count(self, swap_id, reader_id):
        with store_errors():
            return SwapMessage.objects.filter(
                swap_id=swap_id,
                is_read=False,
            ).exclude(sender_id=reader_id).count()
