"""Configuration utilities for Assetpress."""

from .loader import CacheSettings, CompressionProfile, Config, LoggingSettings, load_config

__all__ = ["CacheSettings", "CompressionProfile", "Config", "LoggingSettings", "load_config"]
