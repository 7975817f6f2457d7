"""Tests for per-asset scheduling."""

from __future__ import annotations

import logging

import pytest

from assetpress.core import (
    CachedResult,
    CompressionScheduler,
    LazyContentTag,
    MemoryAssetStore,
    MemoryCache,
    RawSource,
    identity,
    resolve_algorithm,
)
from assetpress.core.naming import StaticTemplate
from assetpress.core.policy import EmissionPolicy
from assetpress.core.rules import RuleMatcher
from assetpress.core.scheduler import Outcome, read_buffer

LOGGER = logging.getLogger("assetpress-test")


def _scheduler(store, cache, *, threshold=0, algorithm="gzip"):
    resolved = resolve_algorithm(algorithm)
    return CompressionScheduler(
        store=store,
        cache=cache,
        algorithm=resolved,
        algorithm_key=algorithm,
        compression_options=resolved.options,
        matcher=RuleMatcher(),
        relation="gzipped",
        threshold=threshold,
        policy=EmissionPolicy(
            filename=StaticTemplate("[path][base].gz"),
            min_ratio=0.8,
            delete_original_assets=False,
            logger=LOGGER,
        ),
        logger=LOGGER,
    )


def test_read_buffer_accepts_plain_values():
    assert read_buffer(RawSource(b"abc")) == b"abc"
    assert read_buffer("é") == "é".encode("utf-8")
    assert read_buffer(bytearray(b"xy")) == b"xy"


@pytest.mark.asyncio
async def test_prepare_skips_missing_asset():
    scheduler = _scheduler(MemoryAssetStore(), MemoryCache())

    assert await scheduler.prepare("gone.js") is None


@pytest.mark.asyncio
async def test_prepare_reads_buffer_on_cache_miss():
    store = MemoryAssetStore.from_mapping({"app.js": bytes(100)})
    task = await _scheduler(store, MemoryCache()).prepare("app.js")

    assert task is not None
    assert task.buffer == bytes(100)
    assert task.cached == CachedResult()
    assert task.relation == "gzipped"


@pytest.mark.asyncio
async def test_cached_emission_skips_threshold_and_algorithm():
    source = RawSource(bytes(100))
    store = MemoryAssetStore.from_mapping({"app.js": bytes(100)})
    cache = MemoryCache()
    cache.put(
        identity("app.js", "gzip", {"level": 9}),
        LazyContentTag(source),
        CachedResult(compressed=b"gz", source=RawSource(b"gz")),
    )

    scheduler = _scheduler(store, cache, threshold=10_000)
    task = await scheduler.prepare("app.js")
    outcome = await scheduler.run(task)

    assert task.buffer is None
    assert outcome.outcome is Outcome.EMITTED
    assert store.get("app.js.gz").source.buffer() == b"gz"
    assert cache.hits == 1


@pytest.mark.asyncio
async def test_schedule_reports_every_name():
    store = MemoryAssetStore.from_mapping({"a.js": bytes(1024), "b.js": b"x"})
    outcomes = await _scheduler(store, MemoryCache(), threshold=10).schedule(store.list())

    assert {item.name: item.outcome for item in outcomes} == {
        "a.js": Outcome.EMITTED,
        "b.js": Outcome.SKIPPED,
    }
