"""Tests for cache identities, content tags and the memory cache."""

from __future__ import annotations

import re

import pytest

from assetpress.core.assets import RawSource
from assetpress.core.cache import CachedResult, LazyContentTag, MemoryCache, identity, serialize


def test_serialize_sorts_mapping_keys():
    assert serialize({"b": 1, "a": {"d": 2, "c": 3}}) == serialize({"a": {"c": 3, "d": 2}, "b": 1})


def test_serialize_handles_functions_and_patterns():
    def compress(buffer, options):
        return buffer

    first = serialize({"algorithm": compress, "rule": re.compile(r"\.js$", re.I)})
    second = serialize({"algorithm": compress, "rule": re.compile(r"\.js$", re.I)})

    assert first == second
    assert "compress" in first
    assert "/\\\\.js$/i" in first


def test_identity_changes_with_every_component():
    base = identity("app.js", "gzip", {"level": 9})

    assert base == identity("app.js", "gzip", {"level": 9})
    assert base != identity("app.css", "gzip", {"level": 9})
    assert base != identity("app.js", "deflate", {"level": 9})
    assert base != identity("app.js", "gzip", {"level": 1})


def test_content_tag_is_lazy_and_memoised():
    class CountingSource(RawSource):
        __slots__ = ()
        calls: list[int] = []

        def buffer(self) -> bytes:
            CountingSource.calls.append(1)
            return self.data

    tag = LazyContentTag(CountingSource(b"payload"))

    assert not tag.computed
    assert CountingSource.calls == []
    digest = str(tag)
    assert tag.computed
    assert str(tag) == digest
    assert len(CountingSource.calls) == 1
    assert tag == LazyContentTag(b"payload")
    assert tag != LazyContentTag(b"other")


@pytest.mark.asyncio
async def test_memory_cache_miss_then_hit():
    cache = MemoryCache()
    item = cache.get_item_cache("key", LazyContentTag(b"payload"))

    assert await item.get() is None
    await item.store(CachedResult(compressed=b"zz"))

    again = cache.get_item_cache("key", LazyContentTag(b"payload"))
    assert await again.get() == CachedResult(compressed=b"zz")
    assert cache.hits == 1
    assert cache.misses == 1


@pytest.mark.asyncio
async def test_memory_cache_misses_on_changed_content():
    cache = MemoryCache()
    await cache.get_item_cache("key", LazyContentTag(b"old")).store(CachedResult(compressed=b"zz"))

    assert await cache.get_item_cache("key", LazyContentTag(b"new")).get() is None


@pytest.mark.asyncio
async def test_memory_cache_does_not_hash_without_entry():
    cache = MemoryCache()
    tag = LazyContentTag(b"payload")

    assert await cache.get_item_cache("missing", tag).get() is None
    assert not tag.computed
