"""
Cache invalidation signals
Automatically invalidate order group caches when groups or orders change
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_order_groups_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver(post_save, sender='orders.OrderGroup')
@receiver(post_delete, sender='orders.OrderGroup')
def invalidate_on_group_change(sender, instance, **kwargs):
    if is_suspended():
        return
    logger.debug(f"Order group {instance.pk} changed - invalidating cache")
    invalidate_order_groups_cache()


@receiver(post_save, sender='orders.Order')
@receiver(post_delete, sender='orders.Order')
def invalidate_on_order_change(sender, instance, **kwargs):
    if is_suspended():
        return
    logger.debug(f"Order {instance.pk} (group {instance.group_id}) changed - invalidating cache")
    invalidate_order_groups_cache()
