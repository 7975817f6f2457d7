"""Load a build output directory into an asset store and write results back."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from assetpress.core.assets import Asset, AssetInfo, AssetStore, MemoryAssetStore, RawSource

logger = logging.getLogger(__name__)

_HASHED_NAME = re.compile(r"[.-][0-9a-f]{8,}\.[^/]+$")
DERIVED_SUFFIXES = (".gz", ".br")


@dataclass(slots=True)
class SyncResult:
    """Files touched by :func:`write_directory`."""

    written: list[str]
    removed: list[str]


def _asset_name(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


def load_directory(root: Path) -> MemoryAssetStore:
    """Read every file below ``root`` into a :class:`MemoryAssetStore`.

    Names are relative POSIX paths. ``x.map`` next to ``x`` becomes the ``sourceMap`` relation of
    ``x``, and names carrying a content hash (``app.3f2a9c1d.js``) are flagged immutable. ``x.gz``
    and ``x.br`` next to ``x`` are outputs of an earlier run: they are flagged compressed, so they
    are never compressed again and a fresh result may replace them.
    """

    if not root.is_dir():
        raise NotADirectoryError(f"Asset directory not found: {root}")

    assets: dict[str, Asset] = {}
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        name = _asset_name(root, path)
        info = AssetInfo(immutable=_HASHED_NAME.search(name) is not None)
        assets[name] = Asset(name=name, source=RawSource(path.read_bytes()), info=info)

    for name, asset in assets.items():
        source_map = f"{name}.map"
        if source_map in assets:
            asset.info.related["sourceMap"] = source_map
        for suffix in DERIVED_SUFFIXES:
            derived = assets.get(name + suffix)
            if derived is not None:
                derived.info.compressed = True

    logger.debug("Loaded %s asset(s) from %s", len(assets), root)
    return MemoryAssetStore(assets.values())


def write_directory(store: AssetStore, root: Path, original_names: Iterable[str]) -> SyncResult:
    """Write new or changed assets of ``store`` below ``root`` and remove files of deleted assets."""

    originals = set(original_names)
    current = set(store.list())
    written: list[str] = []
    removed: list[str] = []

    for name in sorted(current):
        asset = store.get(name)
        if asset is None:  # pragma: no cover - listed names always resolve
            continue
        target = root / name
        if name in originals and target.is_file() and target.read_bytes() == asset.source.buffer():
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(asset.source.buffer())
        written.append(name)

    for name in sorted(originals - current):
        target = root / name
        if target.exists():
            target.unlink()
            removed.append(name)

    logger.debug("Wrote %s and removed %s file(s) in %s", len(written), len(removed), root)
    return SyncResult(written=written, removed=removed)
