# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Configuration documents from YAML, TOML or JSON files, with env var overrides."""

from __future__ import annotations

import importlib.resources
import json
import os
import re
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

import yaml  # type: ignore[import-untyped]

from corspolicy.kernel.exceptions import ConfigShapeError, ConfigSourceError

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

_CONFIG_PROPERTIES_ATTR = "__corspolicy_config_prefix__"

_YAML_SUFFIXES = (".yaml", ".yml")


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a Pydantic model as bindable to a configuration prefix.

    Usage:
        @config_properties(prefix="corspolicy.options")
        class PolicyOptions(BaseModel):
            unknown_keys: Literal["lenient", "strict"] = "lenient"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Hierarchical configuration with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (CORSPOLICY_SECTION_KEY format), for ``get()``
    2. Profile overlay files (``cors-{profile}.yaml`` next to ``cors.yaml``)
    3. The configuration file itself
    4. Packaged defaults (corspolicy-defaults.yaml)
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []
        self._source: str | None = None
        self._yaml_text: str | None = None

    @property
    def loaded_sources(self) -> list[str]:
        """List of config file paths that were loaded, in merge order."""
        return list(self._loaded_sources)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load configuration from a YAML, TOML or JSON file.

        Profile overlays are looked up beside the file as
        ``{stem}-{profile}{suffix}`` and merged in the order given.
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigSourceError(f"configuration file not found: {path}", context={"path": str(path)})

        data: dict[str, Any] = {}
        sources: list[str] = []

        if load_defaults:
            data = cls._load_defaults()
            sources.append("corspolicy-defaults.yaml (defaults)")

        data = cls._deep_merge(data, cls._load_config_data(path))
        sources.append(str(path))

        for profile in active_profiles or []:
            profile_path = path.parent / f"{path.stem}-{profile}{path.suffix}"
            if profile_path.is_file():
                data = cls._deep_merge(data, cls._load_config_data(profile_path))
                sources.append(f"{profile_path} (profile: {profile})")

        instance = cls(data)
        instance._loaded_sources = sources
        instance._source = str(path)
        if path.suffix in _YAML_SUFFIXES:
            instance._yaml_text = path.read_text()
        return instance

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        """Load config data from a YAML, TOML or JSON file."""
        try:
            if path.suffix == ".toml":
                with open(path, "rb") as f:
                    data = tomllib.load(f)
            elif path.suffix == ".json":
                with open(path) as f:
                    data = json.load(f)
            else:
                with open(path) as f:
                    data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
            raise ConfigSourceError(
                f"cannot parse configuration file {path}: {exc}", context={"path": str(path)}
            ) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigSourceError(
                f"configuration file {path} must contain a mapping at the top level",
                context={"path": str(path), "type": type(data).__name__},
            )
        return data

    @staticmethod
    def _load_defaults() -> dict[str, Any]:
        """Load built-in defaults from corspolicy.resources."""
        defaults_file = importlib.resources.files("corspolicy.resources").joinpath("corspolicy-defaults.yaml")
        with importlib.resources.as_file(defaults_file) as p, open(p) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, with override values winning."""
        merged = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        String values containing ``${...}`` placeholders are resolved:
        - ``${ENV_VAR}`` is resolved from environment variables
        - ``${config.key}`` is resolved from other config values
        - ``${key:default}`` uses default if key/env not found
        """
        # corspolicy.logging.format -> CORSPOLICY_LOGGING_FORMAT
        env_base = key.removeprefix("corspolicy.")
        env_key = "CORSPOLICY_" + env_base.upper().replace(".", "_").replace("-", "_")
        env_val = os.environ.get(env_key)
        if env_val is not None:
            return env_val

        current = self._walk(key)
        if current is None:
            return default

        if isinstance(current, str) and "${" in current:
            return self._resolve_placeholders(current)

        return current

    def has(self, key: str) -> bool:
        """True when *key* is present in the document, even with a null value."""
        parent, _, leaf = key.rpartition(".")
        node = self._walk(parent)
        return isinstance(node, dict) and leaf in node

    def _walk(self, key: str) -> Any:
        current: Any = self._data
        if not key:
            return current
        for part in key.split("."):
            if isinstance(current, dict):
                current = current.get(part)
                if current is None:
                    return None
            else:
                return None
        return current

    def _resolve_placeholders(self, value: str, _depth: int = 0) -> str:
        """Resolve ``${...}`` placeholders in a string value.

        Supports environment variables, config references, and defaults.
        Guards against circular references with a max recursion depth.
        """
        if _depth > 10:
            raise ConfigSourceError(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references."
            )

        def _replace(match: re.Match[str]) -> str:
            inner = match.group(1)

            if ":" in inner:
                ref_key, default_val = inner.split(":", 1)
            else:
                ref_key, default_val = inner, None

            env_val = os.environ.get(ref_key)
            if env_val is not None:
                return env_val

            current = self._walk(ref_key)
            if current is not None and not isinstance(current, dict):
                resolved = str(current)
                if "${" in resolved:
                    resolved = self._resolve_placeholders(resolved, _depth + 1)
                return resolved

            if default_val is not None:
                return cast(str, default_val)

            raise ConfigSourceError(
                f"Cannot resolve placeholder '${{{inner}}}': not found in environment or config",
                context={"placeholder": inner},
                location=self._source,
            )

        return _PLACEHOLDER_RE.sub(_replace, value)

    def _resolve_tree(self, value: Any) -> Any:
        if isinstance(value, str) and "${" in value:
            return self._resolve_placeholders(value)
        if isinstance(value, list):
            return [self._resolve_tree(item) for item in value]
        if isinstance(value, dict):
            return {k: self._resolve_tree(v) for k, v in value.items()}
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix, with placeholders resolved.

        An empty prefix returns the whole document.
        """
        current = self._walk(prefix)
        if not isinstance(current, dict):
            return {}
        return cast(dict[str, Any], self._resolve_tree(current))

    def key_line(self, section: str, key: str) -> int | None:
        """1-based line of *key* under *section* in the YAML source, if known."""
        if self._yaml_text is None:
            return None
        try:
            node = yaml.compose(self._yaml_text)
        except yaml.YAMLError:
            return None

        path = [p for p in section.split(".") if p] + [key]
        for depth, part in enumerate(path):
            if not isinstance(node, yaml.MappingNode):
                return None
            for key_node, value_node in node.value:
                if key_node.value == part:
                    if depth == len(path) - 1:
                        return key_node.start_mark.line + 1
                    node = value_node
                    break
            else:
                return None
        return None

    def location_of(self, section: str, key: str | None = None) -> str | None:
        """Render ``path:line`` for diagnostics, or just the path."""
        if self._source is None:
            return None
        line = self.key_line(section, key) if key else None
        return f"{self._source}:{line}" if line else self._source

    def bind(self, config_cls: type[T]) -> T:
        """Bind configuration to a @config_properties Pydantic model."""
        from pydantic import BaseModel, ValidationError

        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")
        if not (isinstance(config_cls, type) and issubclass(config_cls, BaseModel)):
            raise ValueError(f"{config_cls.__name__} must be a pydantic BaseModel")

        section = self.get_section(prefix)
        try:
            return cast(T, config_cls.model_validate(section))
        except ValidationError as exc:
            raise ConfigShapeError(
                prefix,
                f"validation failed for {config_cls.__name__}:\n{exc}",
                section,
                location=self.location_of(prefix),
            ) from exc
