from django.core.management.base import BaseCommand

from keychains.orders.images import ImageProcessingError, compress_data_uri
from keychains.orders.models import Order


class Command(BaseCommand):
    help = 'Run stored order photos through the image compressor again'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report the savings without writing anything',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        orders = Order.objects.exclude(image_url__isnull=True).exclude(image_url='').only('id', 'image_url')

        updated_count = 0
        skipped_count = 0
        error_count = 0
        saved_chars = 0

        self.stdout.write(f'Found {orders.count()} orders with photos')

        for order in orders.iterator():
            try:
                compressed = compress_data_uri(order.image_url)
            except ImageProcessingError as e:
                error_count += 1
                self.stdout.write(self.style.ERROR(f'  ✗ Order {order.id}: {str(e)}'))
                continue

            if len(compressed) >= len(order.image_url):
                skipped_count += 1
                continue

            saved_chars += len(order.image_url) - len(compressed)
            updated_count += 1
            if not dry_run:
                order.image_url = compressed
                order.save(update_fields=['image_url', 'updated_at'])
            self.stdout.write(f'  ✓ Order {order.id}: {len(compressed)} chars')

        prefix = '[dry run] ' if dry_run else ''
        self.stdout.write(self.style.SUCCESS(
            f'\n{prefix}Completed: {updated_count} photos recompressed, {skipped_count} already small, '
            f'{error_count} errors, {saved_chars} characters saved'
        ))
