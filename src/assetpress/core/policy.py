"""Ratio acceptance and emission of compressed assets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from assetpress.core.assets import AssetInfo, AssetStore, RawSource
from assetpress.core.naming import FilenameTemplate, is_content_stable
from assetpress.core.options import KEEP_SOURCE_MAP, DeleteOriginalAssets

SOURCE_MAP_RELATION = "sourceMap"


class Disposition(str, Enum):
    """What happened to the original asset after its compressed copy was emitted."""

    LINKED = "linked"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class Emission:
    original: str
    filename: str
    size: int
    disposition: Disposition


def compression_ratio(compressed_size: int, original_size: int) -> float:
    """``compressed / original``; an empty original never compresses well."""

    if original_size == 0:
        return math.inf
    return compressed_size / original_size


@dataclass(frozen=True, slots=True)
class EmissionPolicy:
    """Decides acceptance and performs the asset store mutations for accepted results."""

    filename: FilenameTemplate
    min_ratio: float
    delete_original_assets: DeleteOriginalAssets
    logger: logging.Logger

    def accepts(self, compressed_size: int, original_size: int) -> bool:
        return compression_ratio(compressed_size, original_size) <= self.min_ratio

    def derived_info(self, original: AssetInfo) -> AssetInfo:
        immutable = original.immutable and is_content_stable(self.filename)
        return AssetInfo(compressed=True, immutable=immutable)

    def emit(
        self,
        store: AssetStore,
        *,
        name: str,
        source: RawSource,
        info: AssetInfo,
        relation: str,
        output: RawSource,
    ) -> Emission:
        """Dispose of the original as configured, then emit the compressed asset."""

        new_filename = self.filename.resolve(name)
        disposition = self._dispose(store, name=name, source=source, relation=relation, target=new_filename)
        store.emit(new_filename, output, self.derived_info(info))
        self.logger.info(
            "Emitted %s (%s -> %s bytes, original %s)",
            new_filename,
            source.size(),
            output.size(),
            disposition.value,
        )
        return Emission(original=name, filename=new_filename, size=output.size(), disposition=disposition)

    def _dispose(
        self,
        store: AssetStore,
        *,
        name: str,
        source: RawSource,
        relation: str,
        target: str,
    ) -> Disposition:
        policy = self.delete_original_assets

        if policy is False:
            store.update(name, source, {"related": {relation: target}})
            return Disposition.LINKED

        if policy == KEEP_SOURCE_MAP:
            store.update(name, source, {"related": {SOURCE_MAP_RELATION: None}})
            store.delete(name)
            return Disposition.DELETED

        if callable(policy) and not policy(name):
            store.update(name, source, {"related": {relation: target}})
            return Disposition.LINKED

        store.delete(name)
        return Disposition.DELETED
