"""
Storage models for the clothing swap marketplace.

Models are a persistence boundary: they declare fields, field validation and
the database constraints that back the swap invariants. Lifecycle behaviour
lives in ``exchange.engine``.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from . import lifecycle


def default_signup_points():
    """Starting balance granted to every new account."""
    return getattr(settings, 'SIGNUP_POINTS', 100)


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - points: Non-negative points balance, changed only through the ledger store
    - items_swapped / points_earned / points_spent: activity counters
    - created_at / updated_at: timestamps
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    points = models.PositiveIntegerField(
        _('points'),
        default=default_signup_points,
        help_text=_('Points balance. Mutated only by the swap ledger.')
    )

    items_swapped = models.PositiveIntegerField(
        _('items swapped'),
        default=0,
        help_text=_('Number of completed swaps the user took part in.')
    )

    points_earned = models.PositiveIntegerField(
        _('points earned'),
        default=0,
        help_text=_('Total points received from points swaps.')
    )

    points_spent = models.PositiveIntegerField(
        _('points spent'),
        default=0,
        help_text=_('Total points paid for points swaps.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(points__gte=0),
                name='user_points_non_negative',
            ),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def clean(self):
        """
        Validate model fields.

        Ensures email is provided and lowercased for case-insensitive uniqueness.

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """Normalize email before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Item(models.Model):
    """
    A listed garment.

    Fields:
    - owner: Foreign key to User
    - title, description, category, size, condition: listing attributes
    - point_value: Points required to redeem the item (1-500, fixed at creation)
    - availability: available, reserved or swapped (engine-owned)
    - created_at / updated_at: timestamps
    """

    CATEGORY_CHOICES = [
        ('tops', 'Tops'),
        ('bottoms', 'Bottoms'),
        ('dresses', 'Dresses'),
        ('outerwear', 'Outerwear'),
        ('shoes', 'Shoes'),
        ('accessories', 'Accessories'),
    ]

    CONDITION_CHOICES = [
        ('new', 'New'),
        ('like_new', 'Like New'),
        ('good', 'Good'),
        ('fair', 'Fair'),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='items',
        help_text=_('User who listed this item')
    )

    title = models.CharField(
        _('title'),
        max_length=100,
        help_text=_('Title of the listing')
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(1000)],
        help_text=_('Description of the garment')
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
        help_text=_('Garment category')
    )

    size = models.CharField(
        _('size'),
        max_length=20,
        help_text=_('Size label, e.g. M or 42')
    )

    condition = models.CharField(
        _('condition'),
        max_length=20,
        choices=CONDITION_CHOICES,
        help_text=_('Condition of the garment')
    )

    point_value = models.PositiveIntegerField(
        _('point value'),
        validators=[
            MinValueValidator(1, message=_('Point value must be at least 1.')),
            MaxValueValidator(500, message=_('Point value cannot exceed 500.')),
        ],
        help_text=_('Points required to redeem this item')
    )

    availability = models.CharField(
        _('availability'),
        max_length=20,
        choices=lifecycle.AVAILABILITY_CHOICES,
        default=lifecycle.AVAILABLE,
        help_text=_('Whether the item can still be swapped')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the item was listed')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the item was last updated')
    )

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'availability'], name='item_owner_avail_idx'),
            models.Index(fields=['category', 'availability'], name='item_category_avail_idx'),
            models.Index(fields=['point_value'], name='item_point_value_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(point_value__gt=0),
                name='item_point_value_positive',
            ),
        ]

    def __str__(self):
        """Return title as string representation."""
        return self.title

    def clean(self):
        """
        Validate model fields.

        Raises:
            ValidationError: If the title is blank
        """
        super().clean()

        if not self.title or not self.title.strip():
            raise ValidationError({
                'title': _('Title cannot be empty.')
            })

    def save(self, *args, **kwargs):
        """Run full_clean before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class Swap(models.Model):
    """
    A swap request and its current lifecycle state.

    ``active_marker`` is True while the swap is pending or accepted and NULL
    once it reaches a terminal status. The unique constraint over
    (requester, requested_item, active_marker) therefore admits at most one
    active swap per pair on every backend, since NULLs never collide.
    """

    kind = models.CharField(
        _('kind'),
        max_length=10,
        choices=lifecycle.KIND_CHOICES,
        help_text=_('Direct item swap or points redemption')
    )

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='swaps_requested',
        help_text=_('User asking for the item')
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='swaps_received',
        help_text=_('Owner of the requested item')
    )

    requested_item = models.ForeignKey(
        Item,
        on_delete=models.PROTECT,
        related_name='swap_requests',
        help_text=_('Item the requester wants')
    )

    offered_item = models.ForeignKey(
        Item,
        on_delete=models.PROTECT,
        related_name='swap_offers',
        null=True,
        blank=True,
        help_text=_('Item offered in exchange (direct swaps only)')
    )

    points_offered = models.PositiveIntegerField(
        _('points offered'),
        null=True,
        blank=True,
        help_text=_('Points offered (points swaps only)')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=lifecycle.STATUS_CHOICES,
        default=lifecycle.PENDING,
        help_text=_('Current status of the swap')
    )

    active_marker = models.BooleanField(
        _('active marker'),
        null=True,
        default=True,
        editable=False,
        help_text=_('True while pending or accepted, NULL once terminal')
    )

    message = models.TextField(
        _('message'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(lifecycle.MESSAGE_MAX_LENGTH)],
        help_text=_('Optional note from the requester')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now,
        help_text=_('Timestamp when the swap was requested')
    )

    expires_at = models.DateTimeField(
        _('expires at'),
        help_text=_('Pending swaps are cancelled after this time')
    )

    accepted_at = models.DateTimeField(
        _('accepted at'),
        null=True,
        blank=True,
        help_text=_('Timestamp when the owner accepted')
    )

    completed_at = models.DateTimeField(
        _('completed at'),
        null=True,
        blank=True,
        help_text=_('Timestamp when the swap was completed')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        default=timezone.now,
        help_text=_('Timestamp of the last status change')
    )

    class Meta:
        verbose_name = _('swap')
        verbose_name_plural = _('swaps')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['requester', 'status'], name='swap_requester_status_idx'),
            models.Index(fields=['owner', 'status'], name='swap_owner_status_idx'),
            models.Index(fields=['requested_item'], name='swap_requested_item_idx'),
            models.Index(fields=['offered_item'], name='swap_offered_item_idx'),
            models.Index(fields=['status', 'expires_at'], name='swap_status_expires_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'requested_item', 'active_marker'],
                name='one_active_swap_per_requester_item',
            ),
            models.CheckConstraint(
                condition=~models.Q(requester=models.F('owner')),
                name='swap_requester_not_owner',
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        kind=lifecycle.DIRECT,
                        offered_item__isnull=False,
                        points_offered__isnull=True,
                    )
                    | models.Q(
                        kind=lifecycle.POINTS,
                        offered_item__isnull=True,
                        points_offered__isnull=False,
                    )
                ),
                name='swap_kind_payload_consistent',
            ),
            models.CheckConstraint(
                condition=models.Q(points_offered__isnull=True) | models.Q(points_offered__gt=0),
                name='swap_points_offered_positive',
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status__in=lifecycle.ACTIVE_STATUSES,
                        active_marker__isnull=False,
                        active_marker=True,
                    )
                    | models.Q(status__in=lifecycle.TERMINAL_STATUSES, active_marker__isnull=True)
                ),
                name='swap_active_marker_matches_status',
            ),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Swap #{self.pk} ({self.kind}, {self.status})"


class SwapTimelineEntry(models.Model):
    """One recorded status transition of a swap (audit trail)."""

    swap = models.ForeignKey(
        Swap,
        on_delete=models.CASCADE,
        related_name='timeline_entries',
        help_text=_('Swap this entry belongs to')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=lifecycle.STATUS_CHOICES,
        help_text=_('Status the swap moved into')
    )

    note = models.CharField(
        _('note'),
        max_length=500,
        blank=True,
        default='',
        help_text=_('Optional note recorded with the transition')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now,
        help_text=_('Timestamp of the transition')
    )

    class Meta:
        verbose_name = _('swap timeline entry')
        verbose_name_plural = _('swap timeline entries')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['swap', 'created_at'], name='timeline_swap_created_idx'),
        ]

    def __str__(self):
        return f"Swap #{self.swap_id} -> {self.status}"


class SwapMessage(models.Model):
    """A message in the conversation between the two parties of a swap."""

    swap = models.ForeignKey(
        Swap,
        on_delete=models.CASCADE,
        related_name='messages',
        help_text=_('Swap this message belongs to')
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='swap_messages',
        help_text=_('Participant who wrote the message')
    )

    body = models.TextField(
        _('body'),
        validators=[MaxLengthValidator(lifecycle.CONVERSATION_MESSAGE_MAX_LENGTH)],
        help_text=_('Message text')
    )

    is_read = models.BooleanField(
        _('is read'),
        default=False,
        help_text=_('Whether the recipient has read the message')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now,
        help_text=_('Timestamp when the message was sent')
    )

    class Meta:
        verbose_name = _('swap message')
        verbose_name_plural = _('swap messages')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['swap', 'is_read'], name='message_swap_read_idx'),
        ]

    def __str__(self):
        return f"Message on swap #{self.swap_id} from {self.sender_id}"
