"""
Django admin configuration for the clothing exchange.

Balances, item availability and swap lifecycle fields are owned by the swap
engine, so they are read-only here.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Item, Swap, SwapMessage, SwapTimelineEntry, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the points balance and swap counters.
    """

    list_display = [
        'email',
        'username',
        'points',
        'items_swapped',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
    ]

    ordering = ['-created_at']

    readonly_fields = [
        'points',
        'items_swapped',
        'points_earned',
        'points_spent',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('first_name', 'last_name', 'email')
        }),
        (_('Points'), {
            'fields': ('points', 'items_swapped', 'points_earned', 'points_spent')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'password1', 'password2'),
        }),
    )


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'category', 'size', 'condition', 'point_value', 'availability', 'created_at']
    list_filter = ['category', 'condition', 'availability', 'created_at']
    search_fields = ['title', 'description', 'owner__email']
    readonly_fields = ['availability', 'created_at', 'updated_at']
    raw_id_fields = ['owner']
    ordering = ['-created_at']


class SwapTimelineEntryInline(admin.TabularInline):
    model = SwapTimelineEntry
    extra = 0
    can_delete = False
    readonly_fields = ['status', 'note', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


class SwapMessageInline(admin.TabularInline):
    model = SwapMessage
    extra = 0
    readonly_fields = ['sender', 'body', 'is_read', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Swap)
class SwapAdmin(admin.ModelAdmin):
    """
    Read-only view of swaps for moderators.

    Status changes must go through the engine (API or reap_swaps), never
    through an admin form, so every lifecycle field is read-only.
    """

    list_display = ['id', 'kind', 'requester', 'owner', 'requested_item', 'status', 'created_at', 'expires_at']
    list_filter = ['kind', 'status', 'created_at']
    search_fields = ['requester__email', 'owner__email', 'requested_item__title']
    ordering = ['-created_at']
    inlines = [SwapTimelineEntryInline, SwapMessageInline]
    readonly_fields = [
        'kind',
        'requester',
        'owner',
        'requested_item',
        'offered_item',
        'points_offered',
        'status',
        'message',
        'created_at',
        'expires_at',
        'accepted_at',
        'completed_at',
        'updated_at',
    ]

    def has_add_permission(self, request):
        return False
