"""
Tests for the swap error hierarchy and its API envelope.
"""

import pytest

from exchange import errors


def test_envelope_contains_code_message_category():
    exc = errors.DuplicateActiveSwap(item_id=7)

    assert exc.to_response() == {
        'error': {
            'code': 'duplicate_active_swap',
            'message': 'You already have an active swap request for this item.',
            'category': 'conflict',
            'retryable': False,
            'details': {'item_id': 7},
        }
    }


def test_envelope_omits_empty_details():
    body = errors.SelfSwap().to_response()['error']

    assert 'details' not in body
    assert body['code'] == 'self_swap'


def test_custom_message_overrides_default():
    exc = errors.InvalidCommand('Points offered must be a positive integer.')

    assert str(exc) == 'Points offered must be a positive integer.'
    assert exc.message == str(exc)


@pytest.mark.parametrize('error_class,http_status', [
    (errors.InvalidCommand, 400),
    (errors.SelfSwap, 400),
    (errors.OwnershipMismatch, 403),
    (errors.ItemUnavailable, 400),
    (errors.ItemNotFound, 404),
    (errors.InsufficientBalance, 400),
    (errors.InsufficientOffer, 400),
    (errors.DuplicateActiveSwap, 409),
    (errors.InvalidTransition, 400),
    (errors.NotParticipant, 403),
    (errors.SwapNotFound, 404),
    (errors.StaleSwapState, 409),
    (errors.StoreUnavailable, 503),
])
def test_http_status_mapping(error_class, http_status):
    assert error_class.http_status == http_status
    assert issubclass(error_class, errors.SwapError)


def test_only_store_unavailable_is_retryable():
    assert errors.StoreUnavailable.retryable
    assert errors.StoreUnavailable.category == errors.ErrorCategory.INFRASTRUCTURE
    assert not errors.StaleSwapState.retryable


def test_subclass_relationships():
    assert issubclass(errors.ItemNotFound, errors.ItemUnavailable)
    assert issubclass(errors.InsufficientOffer, errors.InsufficientBalance)
