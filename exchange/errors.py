"""
Typed failures raised by the swap lifecycle engine and its stores.

Every error carries a stable ``code``, a ``category`` and the HTTP status the
API layer answers with. Validation and conflict errors are the caller's to
handle; ``StoreUnavailable`` is the only retryable kind.
"""


class ErrorCategory:
    VALIDATION = 'validation'
    NOT_FOUND = 'not_found'
    PERMISSION = 'permission'
    CONFLICT = 'conflict'
    INFRASTRUCTURE = 'infrastructure'


class SwapError(Exception):
    """Base class for every failure the engine reports."""

    code = 'swap_error'
    category = ErrorCategory.VALIDATION
    http_status = 400
    retryable = False
    default_message = 'The swap command could not be processed.'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_response(self):
        """
        Build the JSON error envelope returned to API callers.

        Returns:
            dict: {'error': {'code', 'message', 'category', 'retryable', ...details}}
        """
        body = {
            'code': self.code,
            'message': self.message,
            'category': self.category,
            'retryable': self.retryable,
        }
        if self.details:
            body['details'] = self.details
        return {'error': body}


# ============================================================================
# Validation errors
# ============================================================================

class InvalidCommand(SwapError):
    code = 'invalid_command'
    default_message = 'The swap command is malformed.'


class SelfSwap(SwapError):
    code = 'self_swap'
    default_message = 'You cannot request a swap for your own item.'


class OwnershipMismatch(SwapError):
    code = 'ownership_mismatch'
    http_status = 403
    default_message = 'You can only offer items you own.'


class ItemUnavailable(SwapError):
    code = 'item_unavailable'
    default_message = 'The item is not available for swapping.'


class ItemNotFound(ItemUnavailable):
    code = 'item_not_found'
    category = ErrorCategory.NOT_FOUND
    http_status = 404
    default_message = 'The item does not exist.'


class InsufficientBalance(SwapError):
    code = 'insufficient_balance'
    default_message = 'Insufficient points balance.'


class InsufficientOffer(InsufficientBalance):
    code = 'insufficient_offer'
    default_message = 'The points offered are below the point value of the item.'


class DuplicateActiveSwap(SwapError):
    code = 'duplicate_active_swap'
    category = ErrorCategory.CONFLICT
    http_status = 409
    default_message = 'You already have an active swap request for this item.'


class InvalidTransition(SwapError):
    code = 'invalid_transition'
    default_message = 'The swap is not in a state that allows this action.'


class NotParticipant(SwapError):
    code = 'not_participant'
    category = ErrorCategory.PERMISSION
    http_status = 403
    default_message = 'You do not have permission to perform this action on the swap.'


class SwapNotFound(SwapError):
    code = 'swap_not_found'
    category = ErrorCategory.NOT_FOUND
    http_status = 404
    default_message = 'The swap does not exist.'


# ============================================================================
# Consistency errors
# ============================================================================

class StaleSwapState(SwapError):
    code = 'stale_swap_state'
    category = ErrorCategory.CONFLICT
    http_status = 409
    default_message = 'The swap or its items changed since the request was made. Please try again.'


# ============================================================================
# Infrastructure errors
# ============================================================================

class StoreUnavailable(SwapError):
    code = 'store_unavailable'
    category = ErrorCategory.INFRASTRUCTURE
    http_status = 503
    retryable = True
    default_message = 'The swap store is temporarily unavailable. Please retry.'
