"""Per-run compressor options."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from assetpress.core.rules import Rules

KEEP_SOURCE_MAP = "keep-source-map"

AlgorithmFunction = Callable[[bytes, Mapping[str, Any]], Union[Any, Awaitable[Any]]]
FilenameFunction = Callable[["PathData"], str]
DeleteOriginalAssets = Union[bool, Literal["keep-source-map"], Callable[[str], bool]]


class ConfigurationError(ValueError):
    """Raised when compressor options cannot be used; nothing is processed."""


@dataclass(frozen=True, slots=True)
class PathData:
    """Data handed to a filename function."""

    filename: str


@dataclass(frozen=True, slots=True)
class PluginOptions:
    """Validated, immutable options for one compressor instance."""

    test: Rules | None = None
    include: Rules | None = None
    exclude: Rules | None = None
    algorithm: str | AlgorithmFunction = "gzip"
    compression_options: Mapping[str, Any] = field(default_factory=dict)
    filename: str | FilenameFunction | None = None
    threshold: int = 0
    min_ratio: float = 0.8
    delete_original_assets: DeleteOriginalAssets = False

    def __post_init__(self) -> None:
        if not isinstance(self.algorithm, str) and not callable(self.algorithm):
            raise ConfigurationError("algorithm must be an algorithm name or a callable")
        if not isinstance(self.compression_options, Mapping):
            raise ConfigurationError("compression_options must be a mapping")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int) or self.threshold < 0:
            raise ConfigurationError(f"threshold must be a non-negative integer, got {self.threshold!r}")
        if isinstance(self.min_ratio, bool) or not isinstance(self.min_ratio, (int, float)):
            raise ConfigurationError(f"min_ratio must be a number, got {self.min_ratio!r}")
        if not (
            isinstance(self.delete_original_assets, bool)
            or self.delete_original_assets == KEEP_SOURCE_MAP
            or callable(self.delete_original_assets)
        ):
            raise ConfigurationError(
                "delete_original_assets must be a boolean, 'keep-source-map' or a callable, "
                f"got {self.delete_original_assets!r}"
            )

        if self.filename is None:
            default = "[path][base].br" if self.algorithm == "brotliCompress" else "[path][base].gz"
            object.__setattr__(self, "filename", default)
        elif not isinstance(self.filename, str) and not callable(self.filename):
            raise ConfigurationError("filename must be a template string or a callable")
