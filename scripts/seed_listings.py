#!/usr/bin/env python3
"""Seed the database with demo users, listings and reviews.

Usage:
    python scripts/seed_listings.py [number_of_users]
"""

import random
import sys
import os

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from faker import Faker

from commongood import create_app, db
from commongood.models import User, Listing, Review
from commongood.models.listing import LISTING_TYPES

fake = Faker()

DEMO_PASSWORD = 'password123'

# Category -> sample tags
CATEGORIES = {
    'Gardening': ['plants', 'seeds', 'compost', 'outdoor'],
    'Home Repair': ['tools', 'plumbing', 'painting', 'carpentry'],
    'Tutoring': ['math', 'languages', 'homework', 'music'],
    'Cooking': ['baking', 'meal prep', 'preserves'],
    'Tech Help': ['computers', 'phones', 'wifi'],
    'Crafts': ['sewing', 'knitting', 'woodwork'],
    'Transport': ['bike', 'moving', 'errands'],
}

# Rough city centres so radius search has something to find
CITIES = {
    'Portland': (45.5152, -122.6784),
    'Seattle': (47.6062, -122.3321),
    'San Francisco': (37.7749, -122.4194),
}


def _jitter(value):
    return value + random.uniform(-0.05, 0.05)


def seed_listings(num_users=10):
    """Create demo users, a few listings each, and reviews between them."""
    app = create_app(os.getenv('FLASK_ENV', 'development'))

    with app.app_context():
        print("Starting demo seeding...")

        users = []
        for _ in range(num_users):
            city, (lat, lng) = random.choice(list(CITIES.items()))
            user = User(
                name=fake.name()[:50],
                email=fake.unique.email(),
                bio=fake.sentence(nb_words=12),
                location=city,
                latitude=_jitter(lat),
                longitude=_jitter(lng),
                skills_offered=random.sample(sorted({t for tags in CATEGORIES.values() for t in tags}), 3),
                skills_sought=random.sample(sorted(CATEGORIES), 2),
            )
            user.set_password(DEMO_PASSWORD)
            db.session.add(user)
            users.append(user)
        db.session.flush()
        print(f"  Added {len(users)} users (password: {DEMO_PASSWORD})")

        listings = []
        for user in users:
            for _ in range(random.randint(1, 4)):
                category = random.choice(list(CATEGORIES))
                listing = Listing(
                    user_id=user.id,
                    listing_type=random.choice(LISTING_TYPES),
                    title=fake.sentence(nb_words=5).rstrip('.')[:100],
                    description=fake.paragraph(nb_sentences=4)[:1000],
                    category=category,
                    tags=random.sample(CATEGORIES[category], 2),
                    photos=[],
                    estimated_effort=random.choice(['1 hour', 'Half a day', 'Small task', None]),
                    exchange_preference=random.choice(['Skill for Skill', 'Item for Item', 'Open to offers']),
                    location=user.location,
                    latitude=_jitter(user.latitude),
                    longitude=_jitter(user.longitude),
                )
                db.session.add(listing)
                listings.append(listing)
        db.session.flush()
        print(f"  Added {len(listings)} listings")

        review_count = 0
        seen = set()
        reviewed = random.sample(listings, min(len(listings), num_users * 2)) if len(users) > 1 else []
        for listing in reviewed:
            reviewer = random.choice([u for u in users if u.id != listing.user_id])
            key = (listing.id, reviewer.id, listing.user_id)
            if key in seen:
                continue
            seen.add(key)
            db.session.add(Review(
                listing_id=listing.id,
                reviewer_id=reviewer.id,
                reviewee_id=listing.user_id,
                rating=random.randint(3, 5),
                comment=fake.sentence(nb_words=10),
            ))
            review_count += 1

        db.session.commit()
        print(f"  Added {review_count} reviews")
        print("\nSeeding complete!")


if __name__ == '__main__':
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    seed_listings(count)
