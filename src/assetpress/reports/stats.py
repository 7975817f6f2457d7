"""Rich renderables for asset listings."""

from __future__ import annotations

from collections.abc import Iterable

from rich.table import Table, box
from rich.text import Text

from assetpress.core.assets import AssetStore
from assetpress.core.orchestrator import PassReport


def format_compressed_flag(compressed: bool) -> Text:
    """Green ``[compressed]`` flag for compressed assets, empty otherwise."""

    if not compressed:
        return Text("")
    return Text("[compressed]", style="green")


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KiB"
    return f"{size / (1024 * 1024):.2f} MiB"


def render_asset_table(store: AssetStore, *, title: str | None = "Assets") -> Table:
    """Table of every asset with its size, flags and relations."""

    table = Table(title=title, box=box.SIMPLE_HEAD, show_lines=False)
    table.add_column("Asset", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Flags")
    table.add_column("Related", overflow="fold")

    for name in sorted(store.list()):
        asset = store.get(name)
        if asset is None:
            continue
        flags = format_compressed_flag(asset.info.compressed)
        if asset.info.immutable:
            flags.append(" [immutable]", style="cyan")
        related = ", ".join(
            f"{kind} -> {target}" for kind, target in sorted(asset.info.related.items(), key=str)
        )
        table.add_row(name, format_size(asset.source.size()), flags, related)

    return table


def render_pass_table(reports: Iterable[PassReport]) -> Table:
    """One row per compression pass with outcome counts."""

    table = Table(title="Compression passes", box=box.SIMPLE_HEAD)
    table.add_column("Pass")
    table.add_column("Emitted", justify="right")
    table.add_column("Rejected", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Elapsed", justify="right")

    for report in reports:
        failed = Text(str(len(report.failed)), style="red" if report.failed else "")
        table.add_row(
            report.relation,
            str(len(report.emitted)),
            str(len(report.rejected)),
            str(len(report.skipped)),
            failed,
            f"{report.elapsed_seconds:.2f}s",
        )

    return table
