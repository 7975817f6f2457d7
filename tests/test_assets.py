"""Tests for the in-memory asset store."""

from __future__ import annotations

from assetpress.core.assets import (
    Asset,
    AssetConflictError,
    AssetInfo,
    MemoryAssetStore,
    RawSource,
    merge_info,
)


def _store_with_source_map() -> MemoryAssetStore:
    return MemoryAssetStore(
        [
            Asset("app.js", RawSource(b"js"), AssetInfo(related={"sourceMap": "app.js.map"})),
            Asset("app.js.map", RawSource(b"{}"), AssetInfo()),
        ]
    )


def test_merge_info_merges_relations_and_removes_none():
    info = AssetInfo(related={"sourceMap": "app.js.map", "gzipped": "app.js.gz"})

    merged = merge_info(info, {"related": {"sourceMap": None, "brotliCompressed": "app.js.br"}})

    assert merged.related == {"gzipped": "app.js.gz", "brotliCompressed": "app.js.br"}
    # the original record is left alone
    assert info.related["sourceMap"] == "app.js.map"


def test_merge_info_sets_flags_and_extras():
    merged = merge_info(AssetInfo(), {"immutable": True, "minimized": True})

    assert merged.immutable is True
    assert merged.extras == {"minimized": True}


def test_delete_removes_unreferenced_related_assets():
    store = _store_with_source_map()

    store.delete("app.js")

    assert store.list() == []


def test_delete_keeps_related_assets_referenced_elsewhere():
    store = _store_with_source_map()
    store.emit("app.css", RawSource(b"css"), AssetInfo(related={"sourceMap": "app.js.map"}))

    store.delete("app.js")

    assert "app.js.map" in store
    assert "app.css" in store


def test_update_after_clearing_relation_keeps_source_map():
    store = _store_with_source_map()

    store.update("app.js", RawSource(b"js"), {"related": {"sourceMap": None}})
    store.delete("app.js")

    assert store.list() == ["app.js.map"]


def test_emit_conflicting_content_records_error():
    store = MemoryAssetStore.from_mapping({"app.js": "one"})

    store.emit("app.js", RawSource(b"two"))
    store.emit("app.js", RawSource(b"one"))

    assert store.get("app.js").source.buffer() == b"one"
    assert len(store.errors) == 1
    assert isinstance(store.errors[0], AssetConflictError)


def test_emit_replaces_stale_compressed_asset():
    store = MemoryAssetStore([Asset("app.js.gz", RawSource(b"old"), AssetInfo(compressed=True))])

    store.emit("app.js.gz", RawSource(b"new"), AssetInfo(compressed=True))

    assert store.get("app.js.gz").source.buffer() == b"new"
    assert store.errors == []
