"""Minimal build host running asset processing stages in order."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from assetpress.core.assets import AssetStore
from assetpress.core.cache import Cache, MemoryCache

PROCESS_ASSETS_STAGE_OPTIMIZE = 100
PROCESS_ASSETS_STAGE_OPTIMIZE_SIZE = 400
PROCESS_ASSETS_STAGE_OPTIMIZE_TRANSFER = 3000
PROCESS_ASSETS_STAGE_REPORT = 5000

ProcessAssets = Callable[[AssetStore, Cache], Awaitable[Any]]


@dataclass(slots=True)
class _Tap:
    name: str
    stage: int
    callback: ProcessAssets


@dataclass(slots=True)
class BuildHooks:
    """Ordered ``process_assets`` stages sharing one asset store and cache."""

    cache: Cache = field(default_factory=MemoryCache)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _taps: list[_Tap] = field(default_factory=list, init=False)

    def tap_process_assets(
        self,
        name: str,
        callback: ProcessAssets,
        *,
        stage: int = PROCESS_ASSETS_STAGE_OPTIMIZE_TRANSFER,
    ) -> None:
        self._taps.append(_Tap(name=name, stage=stage, callback=callback))

    @property
    def taps(self) -> list[tuple[str, int]]:
        return [(tap.name, tap.stage) for tap in self._ordered()]

    def _ordered(self) -> list[_Tap]:
        # sorted() is stable, so taps within a stage keep registration order
        return sorted(self._taps, key=lambda tap: tap.stage)

    async def run(self, store: AssetStore) -> list[Any]:
        """Run every tapped stage against ``store``; returns each callback's result."""

        results: list[Any] = []
        for tap in self._ordered():
            self.logger.debug("Running %s at stage %s", tap.name, tap.stage)
            results.append(await tap.callback(store, self.cache))
        return results
