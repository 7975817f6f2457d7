"""Compression orchestration core for Assetpress."""

from .algorithms import CustomAlgorithm, NamedAlgorithm, resolve_algorithm
from .assets import Asset, AssetConflictError, AssetInfo, AssetStore, MemoryAssetStore, RawSource
from .cache import Cache, CachedResult, LazyContentTag, MemoryCache, identity, serialize
from .hooks import BuildHooks
from .options import ConfigurationError, PathData, PluginOptions
from .orchestrator import Compressor, PassReport
from .scheduler import CompressionError, CompressionScheduler, CompressionTask, Outcome

__all__ = [
    "Asset",
    "AssetConflictError",
    "AssetInfo",
    "AssetStore",
    "BuildHooks",
    "Cache",
    "CachedResult",
    "CompressionError",
    "CompressionScheduler",
    "CompressionTask",
    "Compressor",
    "ConfigurationError",
    "CustomAlgorithm",
    "LazyContentTag",
    "MemoryAssetStore",
    "MemoryCache",
    "NamedAlgorithm",
    "Outcome",
    "PassReport",
    "PathData",
    "PluginOptions",
    "RawSource",
    "identity",
    "resolve_algorithm",
    "serialize",
]
