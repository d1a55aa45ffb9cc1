"""
Caching utilities for expensive list and report queries.

Keys are namespaced and versioned: invalidating a namespace bumps its
version so stale entries are never read again, and on Redis the old keys
are also removed by pattern.
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
REVENUE_DASHBOARD_CACHE_TTL = 300  # 5 minutes

PRODUCTS_LIST_NAMESPACE = 'products_list'
REVENUE_DASHBOARD_NAMESPACE = 'revenue_dashboard'


def _namespace_version(namespace):
    return cache.get_or_set(f'{namespace}-version', 1, None)


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique, versioned cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:v{_namespace_version(prefix)}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=300, key_prefix="revenue_dashboard")
        def get_dashboard_metrics(day):
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


def uses_redis():
    return 'django_redis' in settings.CACHES.get('default', {}).get('BACKEND', '')


def invalidate_cache_pattern(pattern):
    """
    Delete all Redis keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_namespace(namespace):
    """Make every cached entry of a namespace unreachable"""
    version_key = f'{namespace}-version'
    try:
        cache.incr(version_key)
    except ValueError:
        cache.set(version_key, 2, None)
    if uses_redis():
        invalidate_cache_pattern(f'{namespace}:v')


def get_cached_products_list(filters_dict):
    """
    Get cached products list with filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_NAMESPACE, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data, ttl=PRODUCTS_LIST_CACHE_TTL):
    """Cache products list data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached products list: {cache_key}")


def invalidate_products_cache():
    """Invalidate all products-related cache"""
    invalidate_namespace(PRODUCTS_LIST_NAMESPACE)
    logger.info("Invalidated products cache")


def invalidate_revenue_dashboard_cache():
    invalidate_namespace(REVENUE_DASHBOARD_NAMESPACE)
    logger.info("Invalidated revenue dashboard cache")
