"""
API views for the clothing exchange.

Each view validates request shape with a serializer, hands the command to the
swap lifecycle engine and maps engine errors to their HTTP status. No view
touches swap, item or balance rows directly.
"""

import logging

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .engine import build_engine
from .errors import SwapError
from .permissions import IsItemOwner, IsSwapParticipant
from .serializers import (
    SwapCreateSerializer,
    SwapListQuerySerializer,
    SwapMessageCreateSerializer,
    SwapMessageSerializer,
    SwapRespondSerializer,
    SwapSerializer,
)

logger = logging.getLogger(__name__)


class SwapEngineView(APIView):
    """
    Base view wiring the swap engine and the shared error mapping.
    """

    permission_classes = [IsAuthenticated]

    def get_engine(self):
        return build_engine()

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip

    def error_response(self, request, exc):
        """
        Turn a SwapError into its JSON envelope and HTTP status.
        """
        log = logger.error if exc.http_status >= 500 else logger.info
        log(
            f"Swap API request failed. "
            f"Path: {request.path}, "
            f"User ID: {request.user.pk}, "
            f"Code: {exc.code}, "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(exc.to_response(), status=exc.http_status)

    def denied_response(self, request, permission, **context):
        logger.warning(
            f"Unauthorized swap access attempt. "
            f"Path: {request.path}, "
            f"User ID: {request.user.pk}, "
            f"Context: {context}, "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)


class SwapPagination(PageNumberPagination):
    """Page through a user's swaps: ?page=2&limit=20 (10 by default, at most 50)."""

    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 50


class SwapListCreateView(SwapEngineView):
    """
    GET /api/swaps/?status=pending&kind=points&page=1&limit=10
        List swaps where the user is requester or owner, newest first.
        Paginated: {"count", "next", "previous", "results"}; limit caps at 50.

    POST /api/swaps/
    Request body: {
        "kind": "direct",
        "requested_item": 7,
        "offered_item": 4,
        "message": "Swap for my denim jacket?"
    }
    or {"kind": "points", "requested_item": 7, "points_offered": 120}

    Success response (201): the pending swap.

    Error responses:
    - 400: Malformed command, self-swap, unavailable item, insufficient points
    - 401: Missing or invalid JWT token
    - 403: Offered item not owned by the requester
    - 404: Requested or offered item does not exist
    - 409: An active swap for this item already exists
    - 503: Store unavailable (retryable)
    """

    pagination_class = SwapPagination

    def get(self, request, *args, **kwargs):
        query = SwapListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        paginator = self.pagination_class()
        try:
            swaps = self.get_engine().list_for(
                request.user.pk,
                status=query.validated_data.get('status'),
                kind=query.validated_data.get('kind'),
            )
            page = paginator.paginate_queryset(swaps, request, view=self)
        except SwapError as exc:
            return self.error_response(request, exc)

        return paginator.get_paginated_response(SwapSerializer(page, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = SwapCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            swap = self.get_engine().create(
                requester_id=request.user.pk,
                requested_item_id=data['requested_item'],
                kind=data['kind'],
                offered_item_id=data.get('offered_item'),
                points_offered=data.get('points_offered'),
                message=data.get('message', ''),
            )
        except SwapError as exc:
            return self.error_response(request, exc)

        logger.info(
            f"Swap request submitted via API. "
            f"Swap ID: {swap.id}, "
            f"User: {request.user.email} (ID: {request.user.pk}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(SwapSerializer(swap).data, status=status.HTTP_201_CREATED)


class SwapDetailView(SwapEngineView):
    """
    GET /api/swaps/<id>/

    Participants only. Returns the swap with its timeline.
    """

    def get(self, request, pk, *args, **kwargs):
        try:
            swap = self.get_engine().get(pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        permission = IsSwapParticipant()
        if not permission.has_object_permission(request, self, swap):
            return self.denied_response(request, permission, swap_id=pk)

        return Response(SwapSerializer(swap).data, status=status.HTTP_200_OK)


class SwapRespondView(SwapEngineView):
    """
    POST /api/swaps/<id>/respond/
    Request body: {"action": "accept" | "reject", "note": "optional"}

    Item owner only. Acceptance reserves the items; a 409 with
    code stale_swap_state means an item or the requester's balance changed
    since the request and the swap is still pending.
    """

    def post(self, request, pk, *args, **kwargs):
        serializer = SwapRespondSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            swap = self.get_engine().respond(
                pk,
                request.user.pk,
                serializer.validated_data['action'],
                note=serializer.validated_data.get('note', ''),
            )
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(SwapSerializer(swap).data, status=status.HTTP_200_OK)


class SwapCompleteView(SwapEngineView):
    """
    POST /api/swaps/<id>/complete/

    Either participant. Marks the items swapped and, for points swaps,
    transfers the points.
    """

    def post(self, request, pk, *args, **kwargs):
        try:
            swap = self.get_engine().complete(pk, request.user.pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(SwapSerializer(swap).data, status=status.HTTP_200_OK)


class SwapCancelView(SwapEngineView):
    """
    POST /api/swaps/<id>/cancel/

    Requester only, pending swaps only.
    """

    def post(self, request, pk, *args, **kwargs):
        try:
            swap = self.get_engine().cancel(pk, request.user.pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(SwapSerializer(swap).data, status=status.HTTP_200_OK)


class SwapMessagesView(SwapEngineView):
    """
    GET /api/swaps/<id>/messages/
        Conversation thread plus the caller's unread count.

    POST /api/swaps/<id>/messages/
    Request body: {"body": "Is the jacket still in good shape?"}
    """

    def get(self, request, pk, *args, **kwargs):
        engine = self.get_engine()
        try:
            messages = engine.messages(pk, request.user.pk)
            unread = engine.unread_count(pk, request.user.pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(
            {
                'unread_count': unread,
                'results': SwapMessageSerializer(messages, many=True).data,
            },
            status=status.HTTP_200_OK
        )

    def post(self, request, pk, *args, **kwargs):
        serializer = SwapMessageCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            message = self.get_engine().post_message(
                pk,
                request.user.pk,
                serializer.validated_data['body'],
            )
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(SwapMessageSerializer(message).data, status=status.HTTP_201_CREATED)


class SwapMessagesReadView(SwapEngineView):
    """POST /api/swaps/<id>/messages/read/ marks the other party's messages read."""

    def post(self, request, pk, *args, **kwargs):
        try:
            updated = self.get_engine().mark_messages_read(pk, request.user.pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response({'marked_read': updated}, status=status.HTTP_200_OK)


class ItemPendingSwapsView(SwapEngineView):
    """
    GET /api/items/<id>/swaps/pending/

    Item owner only. Lists pending requests for the item so the owner can
    pick one to accept.
    """

    def get(self, request, pk, *args, **kwargs):
        engine = self.get_engine()
        try:
            item = engine.items.get(pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        permission = IsItemOwner()
        if not permission.has_object_permission(request, self, item):
            return self.denied_response(request, permission, item_id=pk)

        try:
            swaps = engine.pending_for_item(pk)
        except SwapError as exc:
            return self.error_response(request, exc)

        return Response(
            {
                'count': len(swaps),
                'results': SwapSerializer(swaps, many=True).data,
            },
            status=status.HTTP_200_OK
        )
