"""Compressor: one configured compression pass over an asset store."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from assetpress.core.algorithms import resolve_algorithm
from assetpress.core.assets import AssetStore
from assetpress.core.cache import Cache, MemoryCache, identity
from assetpress.core.naming import as_template, relation_name
from assetpress.core.options import ConfigurationError, PluginOptions
from assetpress.core.policy import Emission, EmissionPolicy
from assetpress.core.rules import RuleMatcher
from assetpress.core.scheduler import CompressionScheduler, Outcome, TaskOutcome

if TYPE_CHECKING:
    from assetpress.core.hooks import BuildHooks


@dataclass(slots=True)
class PassReport:
    """Outcome of one compression pass."""

    relation: str
    outcomes: list[TaskOutcome] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def _names(self, outcome: Outcome) -> list[str]:
        return [item.name for item in self.outcomes if item.outcome is outcome]

    @property
    def emitted(self) -> list[Emission]:
        return [item.emission for item in self.outcomes if item.emission is not None]

    @property
    def rejected(self) -> list[str]:
        return self._names(Outcome.REJECTED)

    @property
    def skipped(self) -> list[str]:
        return self._names(Outcome.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self._names(Outcome.FAILED)


class Compressor:
    """Compress eligible assets of a build and emit the accepted results.

    Construction validates the options and resolves the algorithm, so a bad configuration fails
    before any asset is touched.
    """

    name = "assetpress"

    def __init__(
        self,
        options: PluginOptions | None = None,
        *,
        logger: logging.Logger | None = None,
        **overrides: Any,
    ) -> None:
        if options is not None and overrides:
            raise TypeError("Pass either PluginOptions or keyword options, not both.")
        self.options = options if options is not None else PluginOptions(**overrides)
        self.logger = logger or logging.getLogger(__name__)

        self.algorithm = resolve_algorithm(self.options.algorithm, self.options.compression_options)
        try:
            identity("", self.options.algorithm, self.algorithm.options)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Compression options cannot form a cache key: {exc}") from exc
        self.template = as_template(self.options.filename)
        self.relation = relation_name(self.options.algorithm, self.options.filename)
        self.matcher = RuleMatcher(
            test=self.options.test,
            include=self.options.include,
            exclude=self.options.exclude,
        )
        self.policy = EmissionPolicy(
            filename=self.template,
            min_ratio=self.options.min_ratio,
            delete_original_assets=self.options.delete_original_assets,
            logger=self.logger,
        )

    def __repr__(self) -> str:
        return f"Compressor(relation={self.relation!r}, filename={self.options.filename!r})"

    async def compress(self, store: AssetStore, cache: Cache | None = None) -> PassReport:
        """Run one pass; per-asset failures end up in ``store.errors`` and the report."""

        started = time.monotonic()
        errors_before = len(store.errors)
        scheduler = CompressionScheduler(
            store=store,
            cache=cache if cache is not None else MemoryCache(),
            algorithm=self.algorithm,
            algorithm_key=self.options.algorithm,
            compression_options=self.algorithm.options,
            matcher=self.matcher,
            relation=self.relation,
            threshold=self.options.threshold,
            policy=self.policy,
            logger=self.logger,
        )

        names = store.list()
        self.logger.debug("Pass %s considering %s asset(s).", self.relation, len(names))
        outcomes = await scheduler.schedule(names)

        report = PassReport(
            relation=self.relation,
            outcomes=outcomes,
            errors=list(store.errors[errors_before:]),
            elapsed_seconds=time.monotonic() - started,
        )
        self.logger.info(
            "Pass %s finished: emitted=%s rejected=%s skipped=%s failed=%s",
            self.relation,
            len(report.emitted),
            len(report.rejected),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def apply(self, hooks: BuildHooks) -> None:
        """Register this compressor on a build host."""

        hooks.tap_process_assets(self.name, self.compress)
