#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Render state cache
==================
Memoised state kept between renders of the same content, partitioned by a
render-context identifier (typically the path of the page being edited).

A full render clears its context before scanning; preview renders leave it
alone so unchanged tags can skip re-resolution.  Values are opaque here.

Each context has its own lock and different contexts never wait on each
other.  Every clear bumps the context's generation.  A resolver notes the
generation before it reads and passes it back to ``set``, so a
result computed before a clear is dropped rather than outliving it.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Hashable, Optional

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

class _Partition:
    __slots__ = ("lock", "entries", "generation")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.entries: dict[Hashable, Any] = {}
        self.generation = 0

    def clear(self) -> None:
        with self.lock:
            self.entries.clear()
            self.generation += 1


# -----------------------------------------------------------------------------

class StateCacheHandle:
    """Mutable view onto one context's entries."""

    def __init__(self, context_id: str, partition: _Partition) -> None:
        self.context_id = context_id
        self._partition = partition

    @property
    def generation(self) -> int:
        """Number of times this context has been cleared."""
        with self._partition.lock:
            return self._partition.generation

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._partition.lock:
            return self._partition.entries.get(key, default)

    def set(self, key: Hashable, value: Any, generation: Optional[int] = None) -> bool:
        """
        Store *value* under *key*.

        When *generation* is given and the context has been cleared since it
        was read, nothing is stored and False is returned.
        """
        with self._partition.lock:
            if generation is not None and generation != self._partition.generation:
                return False
            self._partition.entries[key] = value
            return True

    def __contains__(self, key: Hashable) -> bool:
        with self._partition.lock:
            return key in self._partition.entries

    def __len__(self) -> int:
        with self._partition.lock:
            return len(self._partition.entries)


# -----------------------------------------------------------------------------

class RenderStateCache:
    """Per-context caches, at most *max_contexts* of them (LRU)."""

    def __init__(self, max_contexts: int = 256) -> None:
        if max_contexts < 1:
            raise ValueError("max_contexts must be at least 1")
        self.max_contexts = max_contexts
        self._partitions: OrderedDict[str, _Partition] = OrderedDict()
        self._guard = threading.Lock()

    def _partition(self, context_id: str, create: bool = True) -> Optional[_Partition]:
        with self._guard:
            partition = self._partitions.get(context_id)
            if partition is not None:
                self._partitions.move_to_end(context_id)
            elif create:
                partition = self._partitions[context_id] = _Partition()
                while len(self._partitions) > self.max_contexts:
                    evicted, _ = self._partitions.popitem(last=False)
                    log.debug("render cache evicted context '%s'", evicted)
            return partition

    def get_cache(self, context_id: str) -> StateCacheHandle:
        return StateCacheHandle(context_id, self._partition(context_id))

    def clear_all(self, context_id: str) -> None:
        """Discard everything memoised for *context_id*."""
        partition = self._partition(context_id, create=False)
        if partition is not None:
            partition.clear()
        log.debug("render cache cleared for context '%s'", context_id)

    def clear_all_state_caches(self) -> None:
        """Discard every context.  Safe to call repeatedly."""
        with self._guard:
            partitions = list(self._partitions.values())
        for partition in partitions:
            partition.clear()

    def __len__(self) -> int:
        """Total number of entries across all contexts."""
        with self._guard:
            partitions = list(self._partitions.values())
        total = 0
        for partition in partitions:
            with partition.lock:
                total += len(partition.entries)
        return total


# -----------------------------------------------------------------------------
