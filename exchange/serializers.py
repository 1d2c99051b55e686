"""
Serializers for the clothing exchange API.

Command serializers check request shape only (types, lengths, required
fields). Every business rule is enforced by the swap engine.
"""

from rest_framework import serializers

from . import lifecycle


# ============================================================================
# Command serializers
# ============================================================================

class SwapCreateSerializer(serializers.Serializer):
    """
    Serializer for swap creation requests.

    Fields:
    - kind: direct or points
    - requested_item: Item id the requester wants
    - offered_item: Item id offered in exchange (direct only)
    - points_offered: Points offered (points only)
    - message: Optional note, max 500 characters
    """

    kind = serializers.ChoiceField(choices=lifecycle.KIND_CHOICES)
    requested_item = serializers.IntegerField(min_value=1)
    offered_item = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    points_offered = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    message = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
        max_length=lifecycle.MESSAGE_MAX_LENGTH,
    )

    def validate(self, attrs):
        """
        Check the payload matches the swap kind.

        Raises:
            ValidationError: If offered_item / points_offered do not fit kind
        """
        kind = attrs.get('kind')
        offered_item = attrs.get('offered_item')
        points_offered = attrs.get('points_offered')

        if kind == lifecycle.DIRECT:
            if offered_item is None:
                raise serializers.ValidationError({
                    'offered_item': 'Offered item is required for direct swaps.'
                })
            if points_offered is not None:
                raise serializers.ValidationError({
                    'points_offered': 'Direct swaps cannot offer points.'
                })
            if offered_item == attrs.get('requested_item'):
                raise serializers.ValidationError({
                    'offered_item': 'An item cannot be swapped for itself.'
                })
        elif kind == lifecycle.POINTS:
            if points_offered is None:
                raise serializers.ValidationError({
                    'points_offered': 'Points offered is required for points swaps.'
                })
            if offered_item is not None:
                raise serializers.ValidationError({
                    'offered_item': 'Points swaps cannot offer an item.'
                })

        return attrs


class SwapRespondSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=lifecycle.ACTION_CHOICES)
    note = serializers.CharField(required=False, allow_blank=True, default='', max_length=lifecycle.NOTE_MAX_LENGTH)


class SwapMessageCreateSerializer(serializers.Serializer):
    body = serializers.CharField(max_length=lifecycle.CONVERSATION_MESSAGE_MAX_LENGTH)


class SwapListQuerySerializer(serializers.Serializer):
    """Query-string filters for the swap list endpoint."""

    status = serializers.ChoiceField(choices=lifecycle.STATUS_CHOICES, required=False)
    kind = serializers.ChoiceField(choices=lifecycle.KIND_CHOICES, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, required=False)


# ============================================================================
# Output serializers (read engine snapshots)
# ============================================================================

class TimelineEntrySerializer(serializers.Serializer):
    status = serializers.CharField()
    timestamp = serializers.DateTimeField()
    note = serializers.CharField()


class SwapSerializer(serializers.Serializer):
    """
    Read-only representation of a SwapRecord.

    Example:
    {
        "id": 1,
        "kind": "points",
        "requester": 3,
        "owner": 2,
        "requested_item": 7,
        "offered_item": null,
        "points_offered": 120,
        "status": "accepted",
        "message": "Would love this jacket",
        "created_at": "2025-03-01T10:00:00Z",
        "expires_at": "2025-03-08T10:00:00Z",
        "accepted_at": "2025-03-02T09:00:00Z",
        "completed_at": null,
        "timeline": [{"status": "pending", "timestamp": "...", "note": "Swap requested"}, ...]
    }
    """

    id = serializers.IntegerField()
    kind = serializers.CharField()
    requester = serializers.IntegerField(source='requester_id')
    owner = serializers.IntegerField(source='owner_id')
    requested_item = serializers.IntegerField(source='requested_item_id')
    offered_item = serializers.IntegerField(source='offered_item_id', allow_null=True)
    points_offered = serializers.IntegerField(allow_null=True)
    status = serializers.CharField()
    message = serializers.CharField()
    created_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()
    accepted_at = serializers.DateTimeField(allow_null=True)
    completed_at = serializers.DateTimeField(allow_null=True)
    timeline = TimelineEntrySerializer(many=True)


class SwapMessageSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    swap = serializers.IntegerField(source='swap_id')
    sender = serializers.IntegerField(source='sender_id')
    body = serializers.CharField()
    is_read = serializers.BooleanField()
    created_at = serializers.DateTimeField()
