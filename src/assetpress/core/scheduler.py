"""Concurrent per-asset compression with isolated failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from assetpress.core.algorithms import Algorithm
from assetpress.core.assets import AssetInfo, AssetStore, RawSource
from assetpress.core.cache import Cache, CachedResult, CacheItem, LazyContentTag, identity
from assetpress.core.policy import Emission, EmissionPolicy


class CompressionError(Exception):
    """Raised (and recorded on the asset store) when compressing one asset fails."""

    def __init__(self, asset_name: str, cause: BaseException) -> None:
        super().__init__(f"Compressing {asset_name!r} failed: {cause}")
        self.asset_name = asset_name
        self.__cause__ = cause


class Outcome(str, Enum):
    """Result of scheduling one asset."""

    SKIPPED = "skipped"
    REJECTED = "rejected"
    EMITTED = "emitted"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CompressionTask:
    """Work item owned by a single asset's coroutine."""

    name: str
    source: RawSource
    info: AssetInfo
    buffer: bytes | None
    cached: CachedResult
    cache_item: CacheItem
    relation: str


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    name: str
    outcome: Outcome
    emission: Emission | None = None
    error: CompressionError | None = None


def read_buffer(source: Any) -> bytes:
    """Bytes of an asset source; plain ``str``/``bytes`` sources are accepted too."""

    if hasattr(source, "buffer") and callable(source.buffer):
        data = source.buffer()
    else:
        data = source
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


@dataclass(slots=True)
class CompressionScheduler:
    """Prepares and runs one coroutine per eligible asset."""

    store: AssetStore
    cache: Cache
    algorithm: Algorithm
    algorithm_key: Any
    compression_options: Mapping[str, Any]
    matcher: Callable[[str], bool]
    relation: str
    threshold: int
    policy: EmissionPolicy
    logger: logging.Logger

    async def prepare(self, name: str) -> CompressionTask | None:
        """Return a task for ``name``, or None when the asset is not compressed this pass."""

        asset = self.store.get(name)
        if asset is None:
            return None

        if asset.info.compressed:
            return None

        if not self.matcher(name):
            return None

        if asset.info.related.get(self.relation):
            self.logger.debug("Skipping %s: already related as %s", name, self.relation)
            return None

        cache_item = self.cache.get_item_cache(
            identity(name, self.algorithm_key, self.compression_options),
            LazyContentTag(asset.source),
        )
        cached = await cache_item.get() or CachedResult()

        buffer: bytes | None = None
        # cached emissions do not need the original bytes
        if cached.source is None:
            buffer = read_buffer(asset.source)
            if len(buffer) < self.threshold:
                self.logger.debug(
                    "Skipping %s: %s bytes is below threshold %s", name, len(buffer), self.threshold
                )
                return None

        return CompressionTask(
            name=name,
            source=asset.source,
            info=asset.info,
            buffer=buffer,
            cached=cached,
            cache_item=cache_item,
            relation=self.relation,
        )

    async def run(self, task: CompressionTask) -> TaskOutcome:
        """Compress, apply the ratio policy, persist to cache and emit."""

        output = task.cached.source
        if output is None:
            buffer = task.buffer if task.buffer is not None else read_buffer(task.source)
            compressed = task.cached.compressed
            if compressed is None:
                try:
                    compressed = await self.algorithm.compress(buffer)
                except Exception as exc:  # pylint: disable=broad-except
                    return self._fail(task.name, exc)
            else:
                self.logger.debug("Reusing cached compression of %s", task.name)

            if not self.policy.accepts(len(compressed), len(buffer)):
                await task.cache_item.store(CachedResult(compressed=compressed))
                self.logger.debug(
                    "Rejected %s: %s of %s bytes exceeds ratio %s",
                    task.name,
                    len(compressed),
                    len(buffer),
                    self.policy.min_ratio,
                )
                return TaskOutcome(name=task.name, outcome=Outcome.REJECTED)

            output = RawSource(compressed)
            await task.cache_item.store(CachedResult(compressed=compressed, source=output))

        emission = self.policy.emit(
            self.store,
            name=task.name,
            source=task.source,
            info=task.info,
            relation=task.relation,
            output=output,
        )
        return TaskOutcome(name=task.name, outcome=Outcome.EMITTED, emission=emission)

    def _fail(self, name: str, exc: Exception) -> TaskOutcome:
        error = CompressionError(name, exc)
        self.store.errors.append(error)
        self.logger.error("%s", error)
        return TaskOutcome(name=name, outcome=Outcome.FAILED, error=error)

    async def _prepare_isolated(self, name: str) -> CompressionTask | TaskOutcome | None:
        try:
            return await self.prepare(name)
        except Exception as exc:  # pylint: disable=broad-except
            return self._fail(name, exc)

    async def _run_isolated(self, task: CompressionTask) -> TaskOutcome:
        try:
            return await self.run(task)
        except Exception as exc:  # pylint: disable=broad-except
            return self._fail(task.name, exc)

    async def schedule(self, names: Iterable[str]) -> list[TaskOutcome]:
        """Prepare every name, then run every task; returns once all have settled."""

        names = list(names)
        prepared = await asyncio.gather(*(self._prepare_isolated(name) for name in names))

        outcomes: list[TaskOutcome] = []
        tasks: list[CompressionTask] = []
        for name, task in zip(names, prepared):
            if isinstance(task, TaskOutcome):
                outcomes.append(task)
            elif task is None:
                outcomes.append(TaskOutcome(name=name, outcome=Outcome.SKIPPED))
            else:
                tasks.append(task)

        outcomes.extend(await asyncio.gather(*(self._run_isolated(task) for task in tasks)))
        return outcomes
