"""
Cache utilities for the Prode application

Rankings are cached per group. Instead of deleting keys by pattern (which
SimpleCache cannot do), each group has a version number that is part of every
ranking key; bumping the version makes all of the group's cached rankings
unreachable.
"""

import functools

from flask import current_app

from app import cache


def _version_key(group_id):
    return f"ranking_version_{group_id}"


def get_group_version(group_id):
    return cache.get(_version_key(group_id)) or 0


def invalidate_group_rankings(group_id):
    """Drop every cached ranking of a group"""
    version = get_group_version(group_id) + 1
    cache.set(_version_key(group_id), version, timeout=0)
    current_app.logger.debug(f"Ranking cache invalidated for group {group_id}")


def cached_group_ranking(key_prefix):
    """
    Decorator for caching ranking computations keyed by group

    The decorated function must take group_id as its first argument.
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(group_id, *args):
            version = get_group_version(group_id)
            args_str = "_".join(str(arg) for arg in args)
            cache_key = f"{key_prefix}_{group_id}_v{version}_{args_str}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(group_id, *args)
            cache.set(
                cache_key,
                result,
                timeout=current_app.config.get("RANKING_CACHE_TIMEOUT", 120),
            )
            current_app.logger.debug(f"Cache set for key: {cache_key}")
            return result

        return wrapped

    return decorator


def get_cache_stats():
    """Basic cache information for the status command"""
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
        "ranking_timeout": current_app.config.get("RANKING_CACHE_TIMEOUT", 120),
    }
