"""
URL configuration for clothing_swap_marketplace project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)
from exchange.views import (
    ItemPendingSwapsView,
    SwapCancelView,
    SwapCompleteView,
    SwapDetailView,
    SwapListCreateView,
    SwapMessagesReadView,
    SwapMessagesView,
    SwapRespondView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Swap endpoints
    path('api/swaps/', SwapListCreateView.as_view(), name='swap_list_create'),
    path('api/swaps/<int:pk>/', SwapDetailView.as_view(), name='swap_detail'),
    path('api/swaps/<int:pk>/respond/', SwapRespondView.as_view(), name='swap_respond'),
    path('api/swaps/<int:pk>/complete/', SwapCompleteView.as_view(), name='swap_complete'),
    path('api/swaps/<int:pk>/cancel/', SwapCancelView.as_view(), name='swap_cancel'),
    path('api/swaps/<int:pk>/messages/', SwapMessagesView.as_view(), name='swap_messages'),
    path('api/swaps/<int:pk>/messages/read/', SwapMessagesReadView.as_view(), name='swap_messages_read'),

    # Item endpoints
    path('api/items/<int:pk>/swaps/pending/', ItemPendingSwapsView.as_view(), name='item_pending_swaps'),

    # JWT Authentication endpoints
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
]
