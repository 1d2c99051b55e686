"""
Shared fixtures for swap tests: users, items and an engine wired to the ORM
stores with a notifier that records events instead of sending them.
"""

from django.contrib.auth import get_user_model

from exchange.engine import build_engine
from exchange.models import Item

User = get_user_model()


class RecordingNotifier:
    """Notifier double that keeps every emitted event."""

    def __init__(self):
        self.events = []

    def emit(self, event, target_user_id, payload):
        self.events.append((event, target_user_id, payload))

    def names(self):
        return [event for event, _, _ in self.events]

    def for_user(self, user_id):
        return [event for event, target, _ in self.events if target == user_id]


class SwapFixturesMixin:
    """
    Creates an owner with a listed item, a requester with an item of their
    own, and a bystander. Call from setUp.
    """

    def create_user(self, name, points=None):
        extra = {} if points is None else {'points': points}
        return User.objects.create_user(
            username=name,
            email=f'{name}@example.com',
            password='testpass123',
            **extra
        )

    def create_item(self, owner, title='Denim Jacket', point_value=100, **kwargs):
        fields = {
            'category': 'outerwear',
            'size': 'M',
            'condition': 'good',
        }
        fields.update(kwargs)
        return Item.objects.create(
            owner=owner,
            title=title,
            point_value=point_value,
            **fields
        )

    def set_up_swap_fixtures(self, clock=None, ttl=None):
        self.owner = self.create_user('owner')
        self.requester = self.create_user('requester')
        self.bystander = self.create_user('bystander')

        self.wanted = self.create_item(self.owner, 'Denim Jacket', point_value=100)
        self.offered = self.create_item(self.requester, 'Wool Sweater', point_value=80, category='tops')

        self.notifier = RecordingNotifier()
        self.engine = build_engine(notifier=self.notifier, clock=clock, ttl=ttl)

    def create_direct_swap(self, message=''):
        return self.engine.create(
            self.requester.id,
            self.wanted.id,
            'direct',
            offered_item_id=self.offered.id,
            message=message,
        )

    def create_points_swap(self, points=100):
        return self.engine.create(
            self.requester.id,
            self.wanted.id,
            'points',
            points_offered=points,
        )

    def refresh(self, *objects):
        for obj in objects:
            obj.refresh_from_db()
