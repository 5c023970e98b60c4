"""
Management command to create demo order groups and orders
"""
import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from keychains.core.cache_signals import suspend_cache_signals
from keychains.core.cache_utils import invalidate_order_groups_cache
from keychains.orders.models import OrderGroup, Order


class Command(BaseCommand):
    help = "Creates demo order groups filled with keychain orders"

    def add_arguments(self, parser):
        parser.add_argument(
            '--groups',
            type=int,
            default=3,
            help='Number of order groups to create',
        )
        parser.add_argument(
            '--orders',
            type=int,
            default=5,
            help='Number of orders per group',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete all existing groups (and their orders) first',
        )

    def handle(self, *args, **options):
        group_count = options['groups']
        orders_per_group = options['orders']

        customers = ['Anna', 'Boris', 'Dina', 'Emil', 'Farida', 'Gleb', 'Inna', 'Kamil']
        sources = ['Instagram', 'Telegram', 'In person', 'Facebook']
        phrases = ['Forever yours', 'Home sweet home', 'Best dad', 'Lucky charm', 'Drive safe']
        keychain_types = [value for value, _ in Order.KEYCHAIN_TYPE_CHOICES]
        statuses = [value for value, _ in Order.STATUS_CHOICES]

        today = timezone.localdate()
        created_orders = 0

        with suspend_cache_signals():
            with transaction.atomic():
                if options['clear']:
                    deleted, _ = OrderGroup.objects.all().delete()
                    self.stdout.write(self.style.WARNING(f'Deleted {deleted} existing rows'))

                for index in range(group_count):
                    week_start = today + timedelta(weeks=index)
                    group = OrderGroup.objects.create(
                        name=f'Week of {week_start.strftime("%b %d")}'
                    )
                    for _ in range(orders_per_group):
                        delivery_type = random.choice([Order.DELIVERY_TO_DELIVER, Order.DELIVERY_PICKUP])
                        done = random.random() < 0.4
                        Order.objects.create(
                            group=group,
                            date_accepted=week_start,
                            date_delivery=week_start + timedelta(days=random.randint(1, 6)),
                            customer_name=random.choice(customers),
                            order_source=random.choice(sources),
                            phrase=random.choice(phrases),
                            keychain_type=random.choice(keychain_types),
                            address=f'{random.randint(1, 99)} Market Street' if delivery_type == Order.DELIVERY_TO_DELIVER else '',
                            delivery_type=delivery_type,
                            amount=random.choice([100, 150, 200, 250]),
                            status=random.choice(statuses),
                            accepted=done or random.random() < 0.5,
                            done=done,
                        )
                        created_orders += 1
                    self.stdout.write(f'  ✓ Created group "{group.name}"')

        invalidate_order_groups_cache()

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {group_count} groups and {created_orders} orders created'
        ))
