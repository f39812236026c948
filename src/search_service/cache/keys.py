"""Cache key schema.

Key format: search:{raw_query}

The "search:" prefix is reserved. Every key under it is swept by bulk
invalidation whenever the index changes, so other users of the same Redis
database must not write keys with this prefix.
"""

SEARCH_PREFIX = "search:"

_GLOB_SPECIAL = frozenset("*?[]\\")


def search_key(query: str) -> str:
    """Key for the cached result set of a raw query string."""
    return f"{SEARCH_PREFIX}{query}"


def prefix_pattern(prefix: str) -> str:
    """Glob pattern matching every key that starts with prefix.

    Glob metacharacters in the prefix are escaped so they match literally.
    """
    escaped = "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in prefix)
    return f"{escaped}*"
