"""
Caching utilities for dashboards and subscription lookups
Uses Redis when configured, the local-memory cache otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_CACHE_TTL = 300  # 5 minutes
SUBSCRIPTION_STATUS_CACHE_TTL = 120  # 2 minutes
PLANS_LIST_CACHE_TTL = 600  # 10 minutes

DASHBOARD_KEY_PREFIX = 'dashboard'
SUBSCRIPTION_KEY_PREFIX = 'subscription_status'
PLANS_KEY_PREFIX = 'plans_list'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Uses Redis SCAN; other cache backends are cleared entirely
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
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}; clearing cache")
        cache.clear()


def dashboard_cache_key(service_type, vendor_id):
    return make_cache_key(DASHBOARD_KEY_PREFIX, service_type, vendor_id)


def get_cached_dashboard(service_type, vendor_id):
    """Returns tuple: (cached_data, cache_key)"""
    cache_key = dashboard_cache_key(service_type, vendor_id)
    return cache.get(cache_key), cache_key


def cache_dashboard(cache_key, data, ttl=DASHBOARD_CACHE_TTL):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard: {cache_key}")


def invalidate_dashboard_cache(service_type, vendor_id):
    cache.delete(dashboard_cache_key(service_type, vendor_id))


def subscription_cache_key(user_id, service_type):
    return make_cache_key(SUBSCRIPTION_KEY_PREFIX, user_id, service_type)


def invalidate_subscription_cache(user_id, service_type):
    cache.delete(subscription_cache_key(user_id, service_type))


def plans_cache_key(vendor_type):
    return make_cache_key(PLANS_KEY_PREFIX, vendor_type)


def invalidate_plans_cache(vendor_type):
    cache.delete(plans_cache_key(vendor_type))
    logger.info(f"Invalidated {vendor_type} plans cache")
