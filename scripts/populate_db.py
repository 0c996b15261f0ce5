import os
import random
import sys
from datetime import timedelta
from decimal import Decimal

import django
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'studio_marketplace.settings')
django.setup()

from django.utils import timezone  # noqa: E402

from core.bookings import BookingEngine, BookingRequest  # noqa: E402
from core.models import Account, Availability, BookingStatus, Listing, Review, Visibility  # noqa: E402

fake = Faker()

STUDIO_KINDS = [
    "Recording Studio", "Photo Studio", "Podcast Booth", "Dance Studio",
    "Rehearsal Room", "Film Stage", "Mixing Suite",
]

FEATURES = [
    "Soundproofing", "Green screen", "Natural light", "Parking", "Wi-Fi",
    "Grand piano", "Lighting kit", "Changing room", "Air conditioning",
]


def create_accounts(num_clients=10, num_owners=5):
    print(f"Creating {num_clients} clients and {num_owners} studio owners...")

    def make(role):
        email = fake.unique.email()
        return Account.objects.create_user(
            username=email,
            email=email,
            password='password123',
            name=fake.name(),
            role=role,
        )

    clients = [make(Account.Role.CLIENT) for _ in range(num_clients)]
    owners = [make(Account.Role.STUDIO_OWNER) for _ in range(num_owners)]

    admin_email = 'admin@studio-marketplace.test'
    admin = Account.objects.filter(email=admin_email).first()
    if admin is None:
        admin = Account.objects.create_superuser(admin_email, admin_email, 'password123', name='Admin')

    print(f"Created {len(clients)} clients and {len(owners)} owners.")
    return clients, owners, admin


def create_listings(owners):
    print("Creating listings...")
    listings = []
    cities = [fake.city() for _ in range(6)]

    for owner in owners:
        # Each owner runs 1-3 studios
        for _ in range(random.randint(1, 3)):
            listing = Listing.objects.create(
                owner=owner,
                name=f"{fake.last_name()} {random.choice(STUDIO_KINDS)}",
                description=fake.paragraph(),
                location=random.choice(cities),
                hourly_rate=Decimal(random.uniform(15.0, 150.0)).quantize(Decimal('0.01')),
                images=[fake.image_url() for _ in range(random.randint(0, 3))],
                features=random.sample(FEATURES, random.randint(1, 4)),
                availability=random.choice(Availability.values),
                visibility=random.choice([Visibility.PUBLIC, Visibility.PUBLIC, Visibility.PENDING, Visibility.SUSPENDED]),
            )
            listings.append(listing)

    print(f"Created {len(listings)} listings.")
    return listings


def create_bookings(clients, listings):
    print("Creating bookings...")
    engine = BookingEngine()
    bookings = []

    for _ in range(len(clients) * 2):
        listing = random.choice(listings)
        # A third of the bookings come from guests
        actor = random.choice(clients) if random.random() > 0.33 else None

        start = timezone.now() + timedelta(days=random.randint(-30, 30), hours=random.randint(8, 18))
        end = start + timedelta(minutes=random.choice([60, 90, 120, 150, 240]))

        booking = engine.create_booking(
            BookingRequest(
                listing_id=listing.id,
                start=start,
                end=end,
                guest_name='' if actor else fake.name(),
                message=fake.sentence() if random.random() < 0.5 else '',
                payment_method=random.choice(['card', 'cash', 'transfer']),
                payer_phone=fake.phone_number()[:30],
            ),
            actor=actor,
        )

        status = random.choice(BookingStatus.values)
        if status != BookingStatus.PENDING:
            engine.update_status(booking.id, status, listing.owner)

        bookings.append(booking)

    print(f"Created {len(bookings)} bookings.")
    return bookings


def create_reviews(clients, listings):
    print("Creating reviews...")
    reviews = []

    for listing in listings:
        # 70% chance a listing has reviews
        if random.random() < 0.7:
            for author in random.sample(clients, random.randint(1, min(4, len(clients)))):
                reviews.append(Review.objects.create(
                    listing=listing,
                    author=author,
                    rating=random.randint(3, 5),
                    comment=fake.paragraph(),
                ))

    print(f"Created {len(reviews)} reviews.")
    return reviews


def main():
    print("Starting database population...")

    clients, owners, _admin = create_accounts(num_clients=20, num_owners=8)
    listings = create_listings(owners)
    create_bookings(clients, listings)
    create_reviews(clients, listings)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
