"""Configuration loading for Assetpress."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from assetpress.core.algorithms import BUILTIN_ALGORITHMS
from assetpress.core.options import ConfigurationError, PluginOptions
from assetpress.core.rules import RuleMatcher, compile_rule
from assetpress.storage.db import DEFAULT_CACHE_PATH

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
LOCAL_CONFIG_PATH = Path("config/local.yaml")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    path: Path | None = None
    level: str = Field(default="info")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("Logging level must be a string.")
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warn", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported logging level: {value!r}")
        return normalized


class CacheSettings(BaseModel):
    """Persistent compression cache."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    path: Path = DEFAULT_CACHE_PATH


class DeleteMatching(BaseModel):
    """Delete originals whose names match any of the rules."""

    model_config = ConfigDict(extra="forbid")

    matching: list[str] = Field(min_length=1)


def _rule_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise TypeError("Rules must be a string or a list of strings.")
    cleaned: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError("Rules must be strings.")
        rule = item.strip()
        if rule:
            cleaned.append(rule)
    return cleaned


class CompressionProfile(BaseModel):
    """One compressor configuration, e.g. gzip or brotli."""

    model_config = ConfigDict(extra="forbid")

    name: str
    test: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    algorithm: str = "gzip"
    compression_options: dict[str, Any] = Field(default_factory=dict)
    filename: str | None = None
    threshold: int = Field(default=0, ge=0)
    min_ratio: float = Field(default=0.8, gt=0.0)
    delete_original_assets: Union[bool, Literal["keep-source-map"], DeleteMatching] = False

    @field_validator("test", "include", "exclude", mode="before")
    @classmethod
    def _normalize_rules(cls, value: Any) -> list[str]:
        return _rule_list(value)

    @field_validator("algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        if value not in BUILTIN_ALGORITHMS:
            raise ValueError(
                f"Unknown algorithm {value!r}; expected one of {sorted(BUILTIN_ALGORITHMS)}"
            )
        return value

    def to_options(self) -> PluginOptions:
        """Build compressor options, compiling ``/regex/`` rules."""

        delete: Any = self.delete_original_assets
        if isinstance(delete, DeleteMatching):
            delete = RuleMatcher(test=[compile_rule(rule) for rule in delete.matching])

        return PluginOptions(
            test=[compile_rule(rule) for rule in self.test] or None,
            include=[compile_rule(rule) for rule in self.include] or None,
            exclude=[compile_rule(rule) for rule in self.exclude] or None,
            algorithm=self.algorithm,
            compression_options=dict(self.compression_options),
            filename=self.filename,
            threshold=self.threshold,
            min_ratio=self.min_ratio,
            delete_original_assets=delete,
        )


class ConfigModel(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    default_profile: str | None = None
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    profiles: list[CompressionProfile] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_profiles(self) -> ConfigModel:
        names = [profile.name for profile in self.profiles]
        if len(set(names)) != len(names):
            raise ValueError("Profile names must be unique.")
        if self.default_profile is not None and self.default_profile not in names:
            raise ValueError(
                f"Default profile '{self.default_profile}' is not defined in profiles section."
            )
        return self


@dataclass(slots=True)
class Config:
    """Validated configuration with convenience helpers."""

    model: ConfigModel
    raw: Mapping[str, Any] = field(repr=False)
    loaded_from: tuple[str, ...] = field(default_factory=tuple, repr=False)
    _profiles_by_name: dict[str, CompressionProfile] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._profiles_by_name = {profile.name: profile for profile in self.model.profiles}

    @property
    def logging(self) -> LoggingSettings:
        """Return logging settings."""

        return self.model.logging

    @property
    def cache(self) -> CacheSettings:
        """Return cache settings."""

        return self.model.cache

    @property
    def profiles(self) -> list[CompressionProfile]:
        return list(self.model.profiles)

    def get_profile(self, name: str | None = None) -> CompressionProfile:
        """Fetch a profile by name, defaulting to ``default_profile``."""

        target = name or self.model.default_profile
        if target is None:
            raise KeyError("No profile requested and no default_profile configured.")
        try:
            return self._profiles_by_name[target]
        except KeyError as exc:
            raise KeyError(f"Profile '{target}' is not defined.") from exc

    def select_profiles(self, names: list[str] | None = None) -> list[CompressionProfile]:
        """Profiles to run: the named ones in the given order, otherwise all of them."""

        if names:
            return [self.get_profile(name) for name in names]
        return self.profiles

    def model_dump(self) -> Mapping[str, Any]:
        """Expose the parsed configuration as a mapping."""

        return self.model.model_dump(mode="json")


def load_config(path: Path | None = None) -> Config:
    """Load configuration from defaults/local overrides, or from an explicit config document."""

    merged: dict[str, Any] = {}
    loaded_from: list[str] = []

    if path is not None:
        override_path = _resolve_path(path)
        if not override_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        merged = _merge_dicts(merged, _read_yaml(override_path))
        loaded_from.append(str(override_path))
    else:
        default_candidate = _resolve_path(DEFAULT_CONFIG_PATH)
        if default_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(default_candidate))
            loaded_from.append(str(default_candidate))
        else:
            packaged_payload = _read_packaged_yaml("assetpress.config", "default.yaml")
            if packaged_payload is not None:
                merged = _merge_dicts(merged, packaged_payload)
                loaded_from.append("assetpress.config:default.yaml")

        local_candidate = _resolve_path(LOCAL_CONFIG_PATH)
        if local_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(local_candidate))
            loaded_from.append(str(local_candidate))

    if not merged:
        raise FileNotFoundError("No configuration data could be loaded.")

    try:
        model = ConfigModel.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    return Config(model=model, raw=merged, loaded_from=tuple(loaded_from))


def _resolve_path(path: Path) -> Path:
    """Resolve configuration paths relative to the current working directory."""

    return path if path.is_absolute() else Path.cwd() / path


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file into a dictionary."""

    content = path.read_text(encoding="utf-8")
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must define a mapping at the top level.")
    return data


def _read_packaged_yaml(package: str, name: str) -> dict[str, Any] | None:
    """Read YAML embedded in a Python package via importlib.resources."""

    try:
        content = resources.files(package).joinpath(name).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Packaged configuration {package}:{name} must define a mapping at the top level."
        )
    return data


def _merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries, with override values taking precedence."""

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key == "profiles" and isinstance(result.get(key), list) and isinstance(value, list):
            result[key] = _merge_profiles(result[key], value)
        elif key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def _merge_profiles(base: list[Any], override: list[Any]) -> list[Any]:
    """Merge profile lists by name while preserving unspecified fields."""

    result: list[Any] = [deepcopy(entry) for entry in base]
    name_to_index = {
        str(entry["name"]): index
        for index, entry in enumerate(result)
        if isinstance(entry, dict) and "name" in entry
    }

    for entry in override:
        replacement = deepcopy(entry)
        if isinstance(entry, dict) and "name" in entry and str(entry["name"]) in name_to_index:
            index = name_to_index[str(entry["name"])]
            result[index] = _merge_dicts(result[index], replacement)
            continue
        if isinstance(entry, dict) and "name" in entry:
            name_to_index[str(entry["name"])] = len(result)
        result.append(replacement)

    return result
