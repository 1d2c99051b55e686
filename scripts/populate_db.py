import os
import sys
import django
import random
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clothing_swap_marketplace.settings')
django.setup()

from exchange import lifecycle
from exchange.engine import build_engine
from exchange.errors import SwapError
from exchange.models import User, Item
from exchange.notifications import NullNotifier

fake = Faker()

def create_users(num_users=20):
    print(f"Creating {num_users} users...")
    users = []

    for _ in range(num_users):
        email = fake.unique.email()
        username = email.split('@')[0]
        user = User.objects.create_user(
            username=username,
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
        )
        users.append(user)

    print(f"Created {len(users)} users.")
    return users

def create_items(users):
    print("Creating clothing items...")
    items = []

    garments = {
        'tops': ["T-Shirt", "Blouse", "Sweater", "Hoodie"],
        'bottoms': ["Jeans", "Chinos", "Skirt", "Shorts"],
        'dresses': ["Maxi Dress", "Sundress", "Cocktail Dress"],
        'outerwear': ["Denim Jacket", "Trench Coat", "Puffer Jacket"],
        'shoes': ["Sneakers", "Ankle Boots", "Loafers"],
        'accessories': ["Scarf", "Leather Belt", "Tote Bag"],
    }
    sizes = ['XS', 'S', 'M', 'L', 'XL']
    conditions = [choice for choice, _ in Item.CONDITION_CHOICES]

    for user in users:
        # Each user lists 1-4 items
        for _ in range(random.randint(1, 4)):
            category = random.choice(list(garments))
            item = Item.objects.create(
                owner=user,
                title=f"{fake.color_name()} {random.choice(garments[category])}",
                description=fake.paragraph(),
                category=category,
                size=random.choice(sizes),
                condition=random.choice(conditions),
                point_value=random.randint(10, 150),
            )
            items.append(item)

    print(f"Created {len(items)} items.")
    return items

def create_swaps(users, items, engine):
    """Drive swaps through the engine so every record has a real timeline."""
    print("Creating swaps...")
    swaps = []

    for requester in users:
        # Each user requests 0-2 swaps
        for _ in range(random.randint(0, 2)):
            wanted = random.choice([i for i in items if i.owner_id != requester.id])
            own_items = [i for i in items if i.owner_id == requester.id]

            try:
                if own_items and random.random() < 0.5:
                    swap = engine.create(
                        requester.id,
                        wanted.id,
                        lifecycle.DIRECT,
                        offered_item_id=random.choice(own_items).id,
                        message=fake.sentence(),
                    )
                else:
                    swap = engine.create(
                        requester.id,
                        wanted.id,
                        lifecycle.POINTS,
                        points_offered=wanted.point_value,
                        message=fake.sentence(),
                    )
            except SwapError as exc:
                print(f"  Skipped request by {requester.email}: {exc.message}")
                continue

            # Owners answer about half of the requests
            outcome = random.random()
            try:
                if outcome < 0.25:
                    swap = engine.respond(swap.id, swap.owner_id, lifecycle.REJECT)
                elif outcome < 0.5:
                    swap = engine.respond(swap.id, swap.owner_id, lifecycle.ACCEPT)
                    if random.random() < 0.6:
                        swap = engine.complete(swap.id, swap.owner_id)
            except SwapError as exc:
                print(f"  Swap {swap.id} left {swap.status}: {exc.message}")

            swaps.append(swap)

    print(f"Created {len(swaps)} swaps.")
    return swaps

def main():
    print("Starting database population...")

    engine = build_engine(notifier=NullNotifier())

    # Create Users
    users = create_users(num_users=20)

    # Create Items
    items = create_items(users)

    # Create Swaps
    create_swaps(users, items, engine)

    print("Database population completed successfully!")

if __name__ == '__main__':
    main()
