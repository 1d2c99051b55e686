"""
Swap lifecycle engine.

Orchestrates creation, response, completion and cancellation of swaps. Every
multi-record mutation runs inside one ``transaction.atomic()`` block with the
swap row locked, and each store write is a compare-and-set, so a failed check
rolls back everything the command already wrote.

State machine (per swap):

    pending -> accepted -> completed
    pending -> rejected
    pending -> cancelled      (requester, or reap() once expires_at has passed)

Item availability follows the swap: available -> reserved on acceptance,
reserved -> swapped on completion. Points move on completion only.

Events are queued with ``transaction.on_commit`` and delivered fire-and-forget.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import lifecycle
from . import notifications
from .errors import (
    DuplicateActiveSwap,
    InsufficientBalance,
    InsufficientOffer,
    InvalidCommand,
    InvalidTransition,
    ItemUnavailable,
    NotParticipant,
    OwnershipMismatch,
    SelfSwap,
    StaleSwapState,
)
from .stores import (
    DjangoItemAvailabilityStore,
    DjangoLedgerStore,
    DjangoSwapRecordStore,
    store_errors,
)

logger = logging.getLogger(__name__)


def default_ttl():
    return timedelta(days=getattr(settings, 'SWAP_REQUEST_TTL_DAYS', 7))


class SwapLifecycleEngine:
    """
    Command handler for the swap state machine.

    Args:
        ledger: LedgerStore implementation
        items: ItemAvailabilityStore implementation
        swaps: SwapRecordStore implementation
        notifier: Notifier receiving domain events
        clock: Callable returning the current aware datetime
        ttl: timedelta after which a pending swap expires
    """

    def __init__(self, ledger, items, swaps, notifier, clock=None, ttl=None):
        self.ledger = ledger
        self.items = items
        self.swaps = swaps
        self.notifier = notifier
        self.clock = clock or timezone.now
        self.ttl = ttl if ttl is not None else default_ttl()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, requester_id, requested_item_id, kind, offered_item_id=None,
               points_offered=None, message=''):
        """
        Submit a new swap request.

        Items stay available and no points move: reservation happens when the
        owner accepts.

        Returns:
            SwapRecord: The pending swap

        Raises:
            InvalidCommand, ItemUnavailable, ItemNotFound, SelfSwap,
            OwnershipMismatch, InsufficientBalance, DuplicateActiveSwap
        """
        message = (message or '').strip()
        self._check_create_shape(requested_item_id, kind, offered_item_id, points_offered, message)

        with store_errors(), transaction.atomic():
            # Also confirms the requester exists before any row references it
            balance = self.ledger.balance(requester_id)
            requested = self.items.get(requested_item_id)

            if requested.owner_id == requester_id:
                raise self._refuse(SelfSwap(), 'create', requester_id, item_id=requested_item_id)

            if not requested.is_available:
                raise self._refuse(
                    ItemUnavailable('The requested item is not available.', item_id=requested.id),
                    'create', requester_id,
                )

            if kind == lifecycle.DIRECT:
                offered = self.items.get(offered_item_id)
                if offered.owner_id != requester_id:
                    raise self._refuse(OwnershipMismatch(item_id=offered.id), 'create', requester_id)
                if not offered.is_available:
                    raise self._refuse(
                        ItemUnavailable('The offered item is not available.', item_id=offered.id),
                        'create', requester_id,
                    )
            else:
                if points_offered < requested.point_value:
                    raise self._refuse(
                        InsufficientOffer(
                            f'Minimum {requested.point_value} points required for this item.',
                            required=requested.point_value,
                            offered=points_offered,
                        ),
                        'create', requester_id,
                    )
                if balance < points_offered:
                    raise self._refuse(
                        InsufficientBalance(balance=balance, required=points_offered),
                        'create', requester_id,
                    )

            if self.swaps.find_active_for(requester_id, requested_item_id) is not None:
                raise self._refuse(DuplicateActiveSwap(item_id=requested_item_id), 'create', requester_id)

            now = self.clock()
            swap = self.swaps.insert(
                kind=kind,
                requester_id=requester_id,
                owner_id=requested.owner_id,
                requested_item_id=requested_item_id,
                offered_item_id=offered_item_id if kind == lifecycle.DIRECT else None,
                points_offered=points_offered if kind == lifecycle.POINTS else None,
                message=message,
                created_at=now,
                expires_at=now + self.ttl,
                note='Swap requested',
            )

            logger.info(
                f"Swap requested. "
                f"Swap ID: {swap.id}, "
                f"Kind: {kind}, "
                f"Requester ID: {requester_id}, "
                f"Owner ID: {swap.owner_id}, "
                f"Requested Item ID: {requested_item_id}"
            )
            self._emit(notifications.SWAP_REQUESTED, swap.owner_id, swap)
        return swap

    def respond(self, swap_id, acting_user_id, action, note=''):
        """
        Accept or reject a pending swap (item owner only).

        Acceptance re-checks that every involved item is still available and,
        for points swaps, that the requester can still pay; if anything
        changed since the request, the swap is left pending and
        StaleSwapState is raised.

        Returns:
            SwapRecord: The accepted or rejected swap
        """
        if action not in (lifecycle.ACCEPT, lifecycle.REJECT):
            raise InvalidCommand(f'Unknown action {action!r}. Expected accept or reject.')
        note = (note or '').strip()
        if len(note) > lifecycle.NOTE_MAX_LENGTH:
            raise InvalidCommand(f'Note cannot exceed {lifecycle.NOTE_MAX_LENGTH} characters.')

        with store_errors(), transaction.atomic():
            swap = self.swaps.find_by_id(swap_id, lock=True)

            if acting_user_id != swap.owner_id:
                raise self._refuse(
                    NotParticipant('Only the item owner can respond to this swap.'),
                    action, acting_user_id, swap_id=swap_id,
                )
            now = self.clock()
            self._require_pending(swap, now, action, acting_user_id)

            if action == lifecycle.REJECT:
                self._transition(swap, lifecycle.REJECTED, now, note or 'Rejected by owner')
                event = notifications.SWAP_REJECTED
            else:
                if swap.kind == lifecycle.POINTS:
                    balance = self.ledger.balance(swap.requester_id)
                    if balance < swap.points_offered:
                        raise self._stale(
                            swap, acting_user_id,
                            'The requester no longer has enough points for this swap.',
                        )
                self._move_items(swap, lifecycle.AVAILABLE, lifecycle.RESERVED, acting_user_id)
                self._transition(swap, lifecycle.ACCEPTED, now, note or 'Accepted by owner', accepted_at=now)
                event = notifications.SWAP_ACCEPTED

            swap = self.swaps.find_by_id(swap_id)
            logger.info(
                f"Swap {swap.status}. "
                f"Swap ID: {swap_id}, "
                f"Owner ID: {acting_user_id}, "
                f"Requester ID: {swap.requester_id}"
            )
            self._emit(event, swap.requester_id, swap, note=note)
        return swap

    def complete(self, swap_id, acting_user_id):
        """
        Complete an accepted swap (either participant).

        Marks the items swapped and, for points swaps, debits the requester
        and credits the owner. A requester who can no longer pay gets
        InsufficientBalance and the swap stays accepted with its items
        reserved.

        Returns:
            SwapRecord: The completed swap
        """
        with store_errors(), transaction.atomic():
            swap = self.swaps.find_by_id(swap_id, lock=True)

            if not swap.is_participant(acting_user_id):
                raise self._refuse(NotParticipant(), 'complete', acting_user_id, swap_id=swap_id)
            if swap.status != lifecycle.ACCEPTED:
                raise self._refuse(
                    InvalidTransition(
                        'Swap must be accepted before it can be completed.',
                        status=swap.status,
                    ),
                    'complete', acting_user_id, swap_id=swap_id,
                )

            now = self.clock()
            self._move_items(swap, lifecycle.RESERVED, lifecycle.SWAPPED, acting_user_id)

            if swap.kind == lifecycle.POINTS:
                try:
                    self.ledger.debit(swap.requester_id, swap.points_offered)
                except InsufficientBalance as exc:
                    logger.warning(
                        f"Swap completion refused: requester cannot pay. "
                        f"Swap ID: {swap_id}, "
                        f"Requester ID: {swap.requester_id}, "
                        f"Points: {swap.points_offered}"
                    )
                    raise InsufficientBalance(
                        'The requester no longer has enough points to complete this swap.',
                        swap_id=swap_id,
                        required=swap.points_offered,
                    ) from exc
                self.ledger.credit(swap.owner_id, swap.points_offered)
                self.ledger.record_swap(swap.requester_id, spent=swap.points_offered)
                self.ledger.record_swap(swap.owner_id, earned=swap.points_offered)
            else:
                self.ledger.record_swap(swap.requester_id)
                self.ledger.record_swap(swap.owner_id)

            self._transition(swap, lifecycle.COMPLETED, now, 'Swap completed', completed_at=now)

            swap = self.swaps.find_by_id(swap_id)
            logger.info(
                f"Swap completed. "
                f"Swap ID: {swap_id}, "
                f"Kind: {swap.kind}, "
                f"Completed By: {acting_user_id}"
            )
            self._emit(notifications.SWAP_COMPLETED, swap.requester_id, swap)
            self._emit(notifications.SWAP_COMPLETED, swap.owner_id, swap)
        return swap

    def cancel(self, swap_id, acting_user_id):
        """
        Withdraw a pending swap (requester only).

        Accepted swaps cannot be cancelled: the owner has already reserved
        the items.

        Returns:
            SwapRecord: The cancelled swap
        """
        with store_errors(), transaction.atomic():
            swap = self.swaps.find_by_id(swap_id, lock=True)

            if acting_user_id != swap.requester_id:
                raise self._refuse(
                    NotParticipant('Only the requester can cancel this swap.'),
                    'cancel', acting_user_id, swap_id=swap_id,
                )
            if swap.status == lifecycle.ACCEPTED:
                raise self._refuse(
                    InvalidTransition('Accepted swaps cannot be cancelled.', status=swap.status),
                    'cancel', acting_user_id, swap_id=swap_id,
                )
            if swap.status != lifecycle.PENDING:
                raise self._refuse(
                    InvalidTransition('Only pending swaps can be cancelled.', status=swap.status),
                    'cancel', acting_user_id, swap_id=swap_id,
                )

            now = self.clock()
            self._transition(swap, lifecycle.CANCELLED, now, 'Cancelled by requester')

            swap = self.swaps.find_by_id(swap_id)
            logger.info(
                f"Swap cancelled. "
                f"Swap ID: {swap_id}, "
                f"Requester ID: {acting_user_id}"
            )
            self._emit(notifications.SWAP_CANCELLED, swap.owner_id, swap)
        return swap

    def reap(self, now=None):
        """
        Cancel every pending swap whose expires_at has passed.

        Each swap is transitioned in its own transaction with a compare-and-set
        on status=pending, so concurrent reapers and human actions are safe: a
        swap already moved out of pending is skipped.

        Args:
            now: Reference time (defaults to the engine clock)

        Returns:
            list: Ids of the swaps this call cancelled
        """
        now = now or self.clock()
        note = self.expiry_note()
        reaped = []

        for swap_id in self.swaps.expired_pending_ids(now):
            with store_errors(), transaction.atomic():
                swap = self.swaps.find_by_id(swap_id, lock=True)
                if not lifecycle.is_expired(swap.status, swap.expires_at, now):
                    continue
                if not self.swaps.transition(swap_id, lifecycle.PENDING, lifecycle.CANCELLED, now, note):
                    continue
                swap = self.swaps.find_by_id(swap_id)
                self._emit(notifications.SWAP_EXPIRED, swap.requester_id, swap)
                self._emit(notifications.SWAP_EXPIRED, swap.owner_id, swap)
            reaped.append(swap_id)

        if reaped:
            logger.info(f"Reaped {len(reaped)} expired swap(s): {reaped}")
        return reaped

    def expiry_note(self):
        days = self.ttl.days
        if days:
            return f'Expired: no response within {days} day{"s" if days != 1 else ""}'
        return f'Expired: no response within {int(self.ttl.total_seconds())} seconds'

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def post_message(self, swap_id, acting_user_id, body):
        """
        Add a message to the swap conversation and notify the other party.

        Returns:
            ConversationMessage: The stored message
        """
        body = (body or '').strip()
        if not body:
            raise InvalidCommand('Message cannot be empty.')
        if len(body) > lifecycle.CONVERSATION_MESSAGE_MAX_LENGTH:
            raise InvalidCommand(
                f'Message cannot exceed {lifecycle.CONVERSATION_MESSAGE_MAX_LENGTH} characters.'
            )

        with store_errors(), transaction.atomic():
            swap = self.get(swap_id, acting_user_id)
            message = self.swaps.add_message(swap_id, acting_user_id, body, self.clock())
            recipient = swap.other_participant(acting_user_id)
            self._emit(notifications.SWAP_MESSAGE, recipient, swap, sender_id=acting_user_id, body=body)
        return message

    def messages(self, swap_id, acting_user_id):
        self.get(swap_id, acting_user_id)
        return self.swaps.list_messages(swap_id)

    def mark_messages_read(self, swap_id, acting_user_id):
        """Mark the other party's messages as read. Returns the number updated."""
        self.get(swap_id, acting_user_id)
        return self.swaps.mark_read(swap_id, acting_user_id)

    def unread_count(self, swap_id, acting_user_id):
        self.get(swap_id, acting_user_id)
        return self.swaps.unread_count(swap_id, acting_user_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, swap_id, acting_user_id=None):
        """
        Load a swap; when acting_user_id is given it must be a participant.

        Raises:
            SwapNotFound, NotParticipant
        """
        swap = self.swaps.find_by_id(swap_id)
        if acting_user_id is not None and not swap.is_participant(acting_user_id):
            raise NotParticipant('You do not have permission to view this swap.')
        return swap

    def list_for(self, user_id, status=None, kind=None):
        if status and status not in dict(lifecycle.STATUS_CHOICES):
            raise InvalidCommand(f'Unknown status filter {status!r}.')
        if kind and kind not in dict(lifecycle.KIND_CHOICES):
            raise InvalidCommand(f'Unknown kind filter {kind!r}.')
        return self.swaps.list_for(user_id, status=status, kind=kind)

    def pending_for_item(self, item_id, acting_user_id=None):
        """Pending requests for an item; only its owner may look when acting_user_id is given."""
        item = self.items.get(item_id)
        if acting_user_id is not None and item.owner_id != acting_user_id:
            raise NotParticipant('Only the item owner can view its swap requests.')
        return self.swaps.pending_for_item(item_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_create_shape(self, requested_item_id, kind, offered_item_id, points_offered, message):
        if kind not in (lifecycle.DIRECT, lifecycle.POINTS):
            raise InvalidCommand(f'Invalid swap kind {kind!r}.')
        if kind == lifecycle.DIRECT:
            if offered_item_id is None:
                raise InvalidCommand('Offered item is required for direct swaps.')
            if points_offered is not None:
                raise InvalidCommand('Direct swaps cannot offer points.')
            if offered_item_id == requested_item_id:
                raise InvalidCommand('An item cannot be swapped for itself.')
        else:
            if offered_item_id is not None:
                raise InvalidCommand('Points swaps cannot offer an item.')
            if (points_offered is None or isinstance(points_offered, bool)
                    or not isinstance(points_offered, int) or points_offered <= 0):
                raise InvalidCommand('Points offered must be a positive integer.')
        if len(message) > lifecycle.MESSAGE_MAX_LENGTH:
            raise InvalidCommand(
                f'Message cannot exceed {lifecycle.MESSAGE_MAX_LENGTH} characters.'
            )

    def _require_pending(self, swap, now, action, acting_user_id):
        if swap.status != lifecycle.PENDING:
            raise self._refuse(
                InvalidTransition('Swap has already been responded to.', status=swap.status),
                action, acting_user_id, swap_id=swap.id,
            )
        if lifecycle.is_expired(swap.status, swap.expires_at, now):
            raise self._refuse(
                InvalidTransition('This swap request has expired.', status=swap.status),
                action, acting_user_id, swap_id=swap.id,
            )

    def _move_items(self, swap, expected, new, acting_user_id):
        for item_id in swap.items:
            if not self.items.compare_and_set(item_id, expected, new):
                raise self._stale(
                    swap, acting_user_id,
                    f'Item {item_id} is no longer {expected}.',
                )

    def _transition(self, swap, new_status, now, note, **fields):
        if not self.swaps.transition(swap.id, swap.status, new_status, now, note, **fields):
            raise self._stale(swap, None, f'Swap is no longer {swap.status}.')

    def _stale(self, swap, acting_user_id, reason):
        logger.warning(
            f"Stale swap state. "
            f"Swap ID: {swap.id}, "
            f"Status: {swap.status}, "
            f"User ID: {acting_user_id}, "
            f"Reason: {reason}"
        )
        return StaleSwapState(reason, swap_id=swap.id)

    def _refuse(self, error, command, acting_user_id, **context):
        logger.warning(
            f"Swap command refused. "
            f"Command: {command}, "
            f"User ID: {acting_user_id}, "
            f"Code: {error.code}, "
            f"Context: {context or error.details}"
        )
        return error

    def _emit(self, event, target_user_id, swap, **extra):
        if target_user_id is None:
            return
        payload = {
            'swap_id': swap.id,
            'kind': swap.kind,
            'status': swap.status,
            'requester_id': swap.requester_id,
            'owner_id': swap.owner_id,
            'requested_item_id': swap.requested_item_id,
        }
        payload.update(extra)
        transaction.on_commit(
            lambda: notifications.deliver(self.notifier, event, target_user_id, payload)
        )


def build_engine(notifier=None, clock=None, ttl=None):
    """Wire the engine to the ORM stores and the signal notifier."""
    return SwapLifecycleEngine(
        ledger=DjangoLedgerStore(),
        items=DjangoItemAvailabilityStore(),
        swaps=DjangoSwapRecordStore(),
        notifier=notifier or notifications.SignalNotifier(),
        clock=clock,
        ttl=ttl,
    )

