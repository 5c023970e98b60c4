"""
Aggregate stats across all order groups
"""
from django.db.models import Count, Exists, OuterRef, Q, Sum

from keychains.core.cache_utils import cached_query, ORDER_GROUPS_NAMESPACE, ORDER_SUMMARY_CACHE_TTL
from .models import OrderGroup, Order


@cached_query(cache_ttl=ORDER_SUMMARY_CACHE_TTL, key_prefix=ORDER_GROUPS_NAMESPACE)
def get_order_summary():
    """Group and order counts for the list header"""
    undone = Order.objects.filter(group=OuterRef('pk'), done=False)
    any_order = Order.objects.filter(group=OuterRef('pk'))

    groups = OrderGroup.objects.annotate(
        has_orders=Exists(any_order),
        has_undone=Exists(undone),
    )
    group_stats = {
        'total_groups': groups.count(),
        'active_groups': groups.filter(has_undone=True).count(),
        'completed_groups': groups.filter(has_orders=True, has_undone=False).count(),
        'empty_groups': groups.filter(has_orders=False).count(),
    }

    order_stats = Order.objects.aggregate(
        total_orders=Count('id'),
        completed_orders=Count('id', filter=Q(done=True)),
        accepted_orders=Count('id', filter=Q(accepted=True)),
        critical_orders=Count('id', filter=Q(status=Order.STATUS_CRITICAL)),
        total_amount=Sum('amount'),
    )

    by_keychain_type = {value: 0 for value, _ in Order.KEYCHAIN_TYPE_CHOICES}
    for row in Order.objects.values('keychain_type').annotate(count=Count('id')):
        by_keychain_type[row['keychain_type']] = row['count']

    total_orders = order_stats['total_orders']
    completed_orders = order_stats['completed_orders']
    progress = (completed_orders / total_orders * 100) if total_orders else 0.0

    return {
        **group_stats,
        'total_orders': total_orders,
        'completed_orders': completed_orders,
        'accepted_orders': order_stats['accepted_orders'],
        'critical_orders': order_stats['critical_orders'],
        'total_amount': order_stats['total_amount'] or 0,
        'progress': progress,
        'by_keychain_type': by_keychain_type,
    }
