"""
Caching utilities for order group reads
Uses Redis (django-redis) in production and local memory in development

Keys live in versioned namespaces: invalidating a namespace bumps its
version, so every filtered variant of a list drops out at once on any
cache backend.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
ORDER_GROUP_LIST_CACHE_TTL = 120  # 2 minutes
ORDER_GROUP_DETAIL_CACHE_TTL = 300  # 5 minutes
ORDER_SUMMARY_CACHE_TTL = 120  # 2 minutes

# Namespaces
ORDER_GROUPS_NAMESPACE = 'order_groups'

NAMESPACE_VERSION_PREFIX = 'ns_version:'


def get_namespace_version(namespace):
    """Current version number of a cache namespace"""
    version = cache.get(f"{NAMESPACE_VERSION_PREFIX}{namespace}")
    if version is None:
        version = 1
        cache.add(f"{NAMESPACE_VERSION_PREFIX}{namespace}", version, None)
    return version


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:v{get_namespace_version(prefix)}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="order_groups")
        def get_expensive_data(filters):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_namespace(namespace):
    """Drop every key of a namespace by bumping its version"""
    version_key = f"{NAMESPACE_VERSION_PREFIX}{namespace}"
    try:
        cache.incr(version_key)
    except ValueError:
        # Version key missing or evicted
        cache.set(version_key, get_namespace_version(namespace) + 1, None)
    logger.info(f"Invalidated cache namespace: {namespace}")


def get_cached_order_groups(filters_dict):
    """
    Get cached order group list for a set of filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(ORDER_GROUPS_NAMESPACE, 'list', **filters_dict)
    return cache.get(cache_key), cache_key


def cache_order_groups(cache_key, data, ttl=ORDER_GROUP_LIST_CACHE_TTL):
    """Cache order group list data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached order group list: {cache_key}")


def get_cached_order_group(group_id):
    """Get cached order group detail. Returns tuple: (cached_data, cache_key)"""
    cache_key = make_cache_key(ORDER_GROUPS_NAMESPACE, 'detail', int(group_id))
    return cache.get(cache_key), cache_key


def cache_order_group(cache_key, data, ttl=ORDER_GROUP_DETAIL_CACHE_TTL):
    """Cache order group detail data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached order group detail: {cache_key}")


def invalidate_order_groups_cache():
    """Invalidate all order group lists, details and summaries"""
    invalidate_namespace(ORDER_GROUPS_NAMESPACE)
