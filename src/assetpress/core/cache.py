"""Cache identities, lazy content tags and the in-memory cache."""

from __future__ import annotations

import inspect
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Protocol

from assetpress.core.assets import RawSource

_REGEX_FLAGS = ((re.IGNORECASE, "i"), (re.MULTILINE, "m"), (re.DOTALL, "s"), (re.VERBOSE, "x"))


def _describe_callable(value: Any) -> dict[str, Any]:
    module = getattr(value, "__module__", None) or ""
    qualname = getattr(value, "__qualname__", None) or type(value).__qualname__
    try:
        source = inspect.getsource(value)
    except (OSError, TypeError):
        source = None
    return {"function": f"{module}:{qualname}", "source": source}


def _encode(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        flags = "".join(letter for flag, letter in _REGEX_FLAGS if value.flags & flag)
        return f"/{value.pattern}/{flags}"
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if isinstance(value, (bytes, bytearray)):
        return {"bytes": sha256(value).hexdigest()}
    if isinstance(value, Mapping):
        return dict(value)
    if callable(value):
        return _describe_callable(value)
    raise TypeError(f"Cannot serialize {type(value).__name__} into a cache identity")


def serialize(value: Any) -> str:
    """Deterministic text form of ``value``; mapping keys are sorted."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_encode)


def identity(name: str, algorithm: Any, compression_options: Mapping[str, Any]) -> str:
    """Cache key for compressing ``name`` with ``algorithm`` and its options."""

    return serialize(
        {
            "name": name,
            "algorithm": algorithm,
            "compressionOptions": dict(compression_options),
        }
    )


class LazyContentTag:
    """sha256 fingerprint of a source, computed on first use."""

    __slots__ = ("_source", "_digest")

    def __init__(self, source: RawSource | bytes | str) -> None:
        self._source = source
        self._digest: str | None = None

    @property
    def computed(self) -> bool:
        return self._digest is not None

    def __str__(self) -> str:
        if self._digest is None:
            data = self._source
            if isinstance(data, str):
                data = data.encode("utf-8")
            elif not isinstance(data, (bytes, bytearray)):
                data = data.buffer()
            self._digest = sha256(data).hexdigest()
        return self._digest

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (LazyContentTag, str)):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))

    def __repr__(self) -> str:
        return f"LazyContentTag({self._digest or 'pending'})"


@dataclass(frozen=True, slots=True)
class CachedResult:
    """Cached outcome of one compression.

    ``source`` is only present once the result was accepted and wrapped for emission.
    """

    compressed: bytes | None = None
    source: RawSource | None = None


class CacheItem(Protocol):
    """Handle on one cache entry."""

    async def get(self) -> CachedResult | None:
        """Return the entry, or None when missing or stale."""

    async def store(self, result: CachedResult) -> None:
        """Replace the entry."""


class Cache(Protocol):
    """Cache store consumed by the compressor."""

    def get_item_cache(self, key: str, tag: LazyContentTag | str) -> CacheItem:
        """Return a handle for ``key`` validated against ``tag``."""


@dataclass(slots=True)
class MemoryCacheItem:
    cache: MemoryCache
    key: str
    tag: LazyContentTag | str

    async def get(self) -> CachedResult | None:
        return self.cache.lookup(self.key, self.tag)

    async def store(self, result: CachedResult) -> None:
        self.cache.put(self.key, self.tag, result)


class MemoryCache:
    """Process-local cache; one entry per key, validated by content tag."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, CachedResult]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_item_cache(self, key: str, tag: LazyContentTag | str) -> MemoryCacheItem:
        return MemoryCacheItem(cache=self, key=key, tag=tag)

    def lookup(self, key: str, tag: LazyContentTag | str) -> CachedResult | None:
        entry = self._entries.get(key)
        # the tag is only hashed when an entry exists for the key
        if entry is None or entry[0] != str(tag):
            self.misses += 1
            return None
        self.hits += 1
        return entry[1]

    def put(self, key: str, tag: LazyContentTag | str, result: CachedResult) -> None:
        self._entries[key] = (str(tag), result)
