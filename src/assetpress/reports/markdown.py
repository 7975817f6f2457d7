"""Markdown summary of compression passes."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from assetpress.core.orchestrator import PassReport


def write_pass_report(reports: Sequence[PassReport], report_path: Path) -> None:
    """Write a Markdown report describing each pass and its per-asset errors."""

    lines = ["# Assetpress Report", ""]
    generated_at = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines.append(f"Generated: {generated_at}")
    lines.append("")

    if not reports:
        lines.append("No compression passes ran.")

    for report in reports:
        lines.extend(_format_report(report))
        lines.append("")

    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text("\n".join(lines).strip() + "\n", encoding="utf-8")


def _format_report(report: PassReport) -> list[str]:
    lines = [
        f"## Pass `{report.relation}`",
        "",
        f"- Emitted: {len(report.emitted)}",
        f"- Rejected by ratio: {len(report.rejected)}",
        f"- Skipped: {len(report.skipped)}",
        f"- Failed: {len(report.failed)}",
        f"- Elapsed: {report.elapsed_seconds:.2f}s",
    ]

    if report.emitted:
        lines.extend(["", "### Emitted", ""])
        for emission in report.emitted:
            lines.append(
                f"- `{emission.original}` -> `{emission.filename}` "
                f"({emission.size} bytes, original {emission.disposition.value})"
            )

    if report.errors:
        lines.extend(["", "### Errors", ""])
        lines.extend(f"- {error}" for error in report.errors)

    return lines
