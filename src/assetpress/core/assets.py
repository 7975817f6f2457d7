"""Asset records and the in-memory asset store used by a compression pass."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class AssetConflictError(Exception):
    """Raised (and recorded) when two emissions target one name with different content."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Conflict: multiple assets emit different content to the same name {name!r}")
        self.asset_name = name


@dataclass(frozen=True, slots=True)
class RawSource:
    """Immutable byte payload of an asset."""

    data: bytes

    def buffer(self) -> bytes:
        return self.data

    def size(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class AssetInfo:
    """Metadata flags and relations attached to an asset."""

    compressed: bool = False
    immutable: bool = False
    related: dict[str, str | list[str]] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    def related_names(self) -> Iterator[str]:
        """Yield every asset name this asset points to."""

        for value in self.related.values():
            if isinstance(value, str):
                if value:
                    yield value
            elif value:
                yield from value


@dataclass(slots=True)
class Asset:
    """A named asset as handed out by an asset store."""

    name: str
    source: RawSource
    info: AssetInfo


class AssetStore(Protocol):
    """Interface of the host asset store consumed by the compressor."""

    errors: list[Exception]

    def list(self) -> list[str]:
        """Return the names of all current assets."""

    def get(self, name: str) -> Asset | None:
        """Return the asset stored under ``name``."""

    def update(self, name: str, source: RawSource, info_patch: Mapping[str, Any] | None = None) -> None:
        """Replace an asset's source and merge ``info_patch`` into its info."""

    def delete(self, name: str) -> None:
        """Remove an asset."""

    def emit(self, name: str, source: RawSource, info: AssetInfo | None = None) -> None:
        """Add a new asset."""


def merge_info(info: AssetInfo, patch: Mapping[str, Any] | None) -> AssetInfo:
    """Return ``info`` with ``patch`` applied.

    ``related`` is merged key by key and a ``None`` value removes the relation; other keys replace
    the current value. Unknown keys land in ``extras``.
    """

    if not patch:
        return info

    merged = replace(info, related=dict(info.related), extras=dict(info.extras))
    for key, value in patch.items():
        if key == "related":
            for relation, target in (value or {}).items():
                if target is None:
                    merged.related.pop(relation, None)
                else:
                    merged.related[relation] = target
        elif key in ("compressed", "immutable"):
            setattr(merged, key, bool(value))
        else:
            merged.extras[key] = value
    return merged


class MemoryAssetStore:
    """Dictionary-backed asset store.

    Deleting an asset also deletes the assets it relates to when no remaining asset still points at
    them, so a source map disappears together with its last script unless the relation was cleared.
    """

    def __init__(self, assets: Iterable[Asset] = ()) -> None:
        self._assets: dict[str, Asset] = {}
        self.errors: list[Exception] = []
        for asset in assets:
            self._assets[asset.name] = asset

    @classmethod
    def from_mapping(cls, payloads: Mapping[str, bytes | str]) -> MemoryAssetStore:
        """Build a store from ``name -> content`` pairs."""

        store = cls()
        for name, content in payloads.items():
            data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
            store.emit(name, RawSource(data))
        return store

    def __contains__(self, name: object) -> bool:
        return name in self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def list(self) -> list[str]:
        return list(self._assets)

    def get(self, name: str) -> Asset | None:
        return self._assets.get(name)

    def update(self, name: str, source: RawSource, info_patch: Mapping[str, Any] | None = None) -> None:
        asset = self._assets.get(name)
        if asset is None:
            raise KeyError(f"Cannot update unknown asset {name!r}")
        self._assets[name] = Asset(name=name, source=source, info=merge_info(asset.info, info_patch))

    def delete(self, name: str) -> None:
        asset = self._assets.pop(name, None)
        if asset is None:
            return

        for related in asset.info.related_names():
            if related not in self._assets:
                continue
            if any(related in other.info.related_names() for other in self._assets.values()):
                continue
            logger.debug("Deleting %s together with %s", related, name)
            self.delete(related)

    def emit(self, name: str, source: RawSource, info: AssetInfo | None = None) -> None:
        """Add an asset; a compressed asset left from an earlier run is replaced."""

        existing = self._assets.get(name)
        if (
            existing is not None
            and not existing.info.compressed
            and existing.source.buffer() != source.buffer()
        ):
            self.errors.append(AssetConflictError(name))
            return
        self._assets[name] = Asset(name=name, source=source, info=info or AssetInfo())
