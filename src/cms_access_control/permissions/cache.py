"""Decision cache for permission checks.

Memoises :class:`PermissionCheckResult` values keyed by user, resource,
action, the decision-relevant options and a hash of the request context.
Entries never expire on their own: the cache is cleared wholesale whenever a
user's permission set is replaced, or on demand.

Thread-safety is achieved with a ``threading.Lock``.  Concurrent writes for
the same key store equal results, so a race only costs a recomputation.
Each clear bumps a generation counter; a write carrying an older generation
is dropped, so a check that started before a clear cannot repopulate the
cache with a decision computed from the replaced permission set.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading

from cms_access_control.permissions.model import (
    PermissionCheckOptions,
    PermissionCheckResult,
    PermissionContext,
)

logger = logging.getLogger(__name__)


_SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool, type(None))


def _canonical(value: object, active: set[int]) -> object:
    """Return a JSON-ready form of ``value`` tagged with its container types.

    Only ``dict`` (with ``str`` keys), ``list``, ``tuple`` and the scalar
    types are accepted, matched by exact type.  Anything else cannot be
    keyed faithfully and raises.
    """
    value_type = type(value)
    if value_type in _SCALAR_TYPES:
        return value
    if value_type not in (dict, list, tuple):
        raise TypeError(f"Context value of type {value_type.__name__} cannot be cached.")

    marker = id(value)
    if marker in active:
        raise ValueError("Context contains a circular reference.")
    active.add(marker)
    try:
        if value_type is dict:
            items: dict[str, object] = {}
            for key, item in value.items():  # type: ignore[attr-defined]
                if type(key) is not str:
                    raise TypeError(f"Context keys must be str; got {type(key).__name__}.")
                items[key] = _canonical(item, active)
            return {"dict": items}
        return {value_type.__name__: [_canonical(item, active) for item in value]}  # type: ignore[attr-defined]
    finally:
        active.discard(marker)


def hash_context(context: PermissionContext | None) -> str | None:
    """Return a stable digest of ``context``, or None when absent.

    Keys are serialised in sorted order so equal contexts hash equally.
    Lists and tuples hash differently, as condition evaluation tells them
    apart.

    Raises
    ------
    TypeError
        If the context holds a value other than a plain dict, list, tuple,
        str, int, float, bool or None.
    ValueError
        If the context contains a circular reference.
    """
    if context is None:
        return None
    payload = json.dumps(_canonical(context, set()), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]


def make_cache_key(
    user_id: str,
    resource: str,
    action: str,
    options: PermissionCheckOptions,
    revision: int = 0,
) -> str:
    """Compose the cache key for one check.

    ``revision`` identifies the permission-set instance the decision was
    computed from.
    """
    options_part = json.dumps(
        {
            "strict": bool(options.strict),
            "fallback": bool(options.fallback),
            "context": hash_context(options.context),
        },
        sort_keys=True,
    )
    return f"{user_id}#{revision}:{resource}:{action}:{options_part}"


class DecisionCache:
    """Thread-safe key/value store of permission decisions."""

    def __init__(self) -> None:
        self._entries: dict[str, PermissionCheckResult] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._generation = 0

    def get(self, key: str) -> PermissionCheckResult | None:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self._misses += 1
            else:
                self._hits += 1
        return result

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def set(
        self,
        key: str,
        result: PermissionCheckResult,
        generation: int | None = None,
    ) -> bool:
        """Store ``result``; returns False if ``generation`` is stale."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entries[key] = result
        return True

    def clear(self) -> None:
        """Drop every cached decision."""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.debug("Decision cache cleared (%d entries dropped)", dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> dict[str, int]:
        """Return hit/miss counters and the current size."""
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }
