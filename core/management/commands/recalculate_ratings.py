# Recalculate Ratings Management Command
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Avg, Count

from core.models import Listing


class Command(BaseCommand):
    help = 'Recalculates listing ratings from reviews to repair drifted aggregates.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report the changes without saving them.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk updates.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        changed = self.recalculate_listings(dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS(f'Dry run completed. {changed} listing(s) would change.'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Recalculation completed. {changed} listing(s) updated.'))

    def recalculate_listings(self, dry_run, batch_size):
        self.stdout.write('Recalculating listing ratings...')
        listings = Listing.objects.annotate(
            review_avg=Avg('reviews__rating'),
            review_count=Count('reviews'),
        ).iterator(chunk_size=batch_size)

        updates = []
        changed = 0
        count = 0

        for listing in listings:
            if listing.review_avg is None:
                new_rating = Decimal('0.00')
            else:
                new_rating = Decimal(str(listing.review_avg)).quantize(Decimal('0.01'))
            new_total = listing.review_count or 0

            if listing.rating != new_rating or listing.total_reviews != new_total:
                changed += 1
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] Listing {listing.id} ({listing.name}): '
                        f'Rating {listing.rating} -> {new_rating}, '
                        f'Count {listing.total_reviews} -> {new_total}'
                    )
                listing.rating = new_rating
                listing.total_reviews = new_total
                updates.append(listing)

            if len(updates) >= batch_size:
                if not dry_run:
                    Listing.objects.bulk_update(updates, ['rating', 'total_reviews'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} listings...')

        if updates and not dry_run:
            Listing.objects.bulk_update(updates, ['rating', 'total_reviews'])

        self.stdout.write(f'Processed {count} listings total.')
        return changed
