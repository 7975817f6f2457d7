"""Human readable output for compression passes."""

from .markdown import write_pass_report
from .stats import format_compressed_flag, render_asset_table, render_pass_table

__all__ = [
    "format_compressed_flag",
    "render_asset_table",
    "render_pass_table",
    "write_pass_report",
]
