"""
Caching for data read on nearly every request: the role set of a user and
garage detail payloads.

Entries are invalidated by the signal receivers in ``cache_signals`` so a
cached value never outlives a change to the rows it was built from.
"""
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
USER_ROLES_KEY_PREFIX = 'user_roles:'
GARAGE_KEY_PREFIX = 'garage:'

# Cache TTL (Time To Live) in seconds
USER_ROLES_CACHE_TTL = 300  # 5 minutes
GARAGE_CACHE_TTL = 600  # 10 minutes


# ==================== USER ROLES CACHING ====================

def get_user_roles_cache_key(user_id: str) -> str:
    """Get cache key for the role set of a user"""
    return f"{USER_ROLES_KEY_PREFIX}{user_id}"


def cache_user_roles(user_id: str, roles, ttl: int = None):
    """Cache the role list of a user"""
    ttl = ttl or USER_ROLES_CACHE_TTL
    cache.set(get_user_roles_cache_key(user_id), list(roles), ttl)
    logger.debug(f"Cached roles for user {user_id}: {roles}")


def get_cached_user_roles(user_id: str):
    """Return the cached role list for a user, or None on a miss"""
    cached_data = cache.get(get_user_roles_cache_key(user_id))
    if cached_data is not None:
        logger.debug(f"Cache hit for user roles: {user_id}")
    return cached_data


def invalidate_user_roles(user_id: str):
    """Drop the cached role list of a user"""
    if not user_id:
        return
    cache.delete(get_user_roles_cache_key(user_id))
    logger.debug(f"Invalidated cached roles for user {user_id}")


# ==================== GARAGE CACHING ====================

def get_garage_cache_key(garage_id: int) -> str:
    """Get cache key for garage detail by ID"""
    return f"{GARAGE_KEY_PREFIX}{garage_id}"


def cache_garage_data(garage_id: int, data, ttl: int = None):
    """Cache a serialized garage detail payload"""
    ttl = ttl or GARAGE_CACHE_TTL
    cache.set(get_garage_cache_key(garage_id), data, ttl)
    logger.debug(f"Cached garage data (ID: {garage_id})")


def get_cached_garage(garage_id: int):
    """Get cached garage detail payload by ID"""
    cached_data = cache.get(get_garage_cache_key(garage_id))
    if cached_data:
        logger.debug(f"Cache hit for garage: {garage_id}")
    return cached_data


def invalidate_garage_cache(garage_id: int):
    """Invalidate the cached detail payload of a garage"""
    if not garage_id:
        return
    cache.delete(get_garage_cache_key(garage_id))
    logger.debug(f"Invalidated cache for garage {garage_id}")
