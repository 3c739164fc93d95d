"""
Config system - Layered settings for the entitykit harness.

Loads and merges configuration with precedence (later wins):

    defaults < YAML/JSON files < .env file < environment variables < overrides

The merged dictionary is projected onto the typed :class:`EntityKitConfig`.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import MISSING, dataclass, field, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, get_args, get_origin, get_type_hints

import yaml
from dotenv import dotenv_values

from .faults import Fault, FaultDomain

logger = logging.getLogger("entitykit.config")

DEFAULT_FILES = ("entitykit.yaml", "entitykit.yml")


class ConfigError(Fault):
    """Raised when configuration loading or validation fails."""

    code = "CONFIG_INVALID"
    domain = FaultDomain.CONFIG

    def __init__(self, message: str, **metadata: Any):
        super().__init__(message=message, metadata=metadata)


@dataclass
class EntityKitConfig:
    """Typed view of the harness settings."""

    entities: Dict[str, Any] = field(default_factory=dict)
    entity_files: List[str] = field(default_factory=list)
    naming_style: str = "camel"
    hash_algorithm: str = "sha1"
    secret_key: Optional[str] = None
    trusted_fields_argument: str = "__trustedProperties"
    csrf_argument: str = "__csrfToken"
    identity_key: str = "__identity"
    uri_pattern: str = "/{package}/{subpackage}/{controller}/{action}"
    request_protocol: str = "http"
    request_domain: str = "localhost"
    request_subdomain: Optional[str] = None
    request_port: int = 80


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage::

        loader = ConfigLoader.load(["tests/entitykit.yaml"], overrides={"naming_style": "snake"})
        config = loader.get_config()
        config.naming_style  # "snake"
    """

    def __init__(self, env_prefix: str = "ENTITYKIT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "ENTITYKIT_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from all sources.

        Args:
            paths: Config file paths (glob patterns supported). When omitted,
                ``entitykit.yaml``/``entitykit.yml`` in the working directory
                is used if present.
            env_prefix: Prefix for environment variables.
            env_file: Path to a ``.env`` file.
            overrides: Manual overrides (highest precedence).
        """
        loader = cls(env_prefix=env_prefix)

        if not paths:
            paths = [name for name in DEFAULT_FILES if Path(name).exists()][:1]

        for pattern in paths:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        for entity_file in loader.config_data.get("entity_files") or []:
            loader._load_entity_file(entity_file)

        return loader

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        matched = sorted(glob(pattern))
        if not matched:
            raise ConfigError(f"Config file '{pattern}' does not exist", path=pattern)

        for path_str in matched:
            path = Path(path_str)
            if path.suffix == ".json":
                self._merge_dict(self.config_data, self._read_json(path))
            elif path.suffix in (".yaml", ".yml"):
                self._merge_dict(self.config_data, self._read_yaml(path))
            else:
                raise ConfigError(f"Unsupported config file type '{path.suffix}'", path=str(path))
            logger.debug("Loaded settings from %s", path)

    def _read_json(self, path: Path) -> dict:
        with open(path) as f:
            return json.load(f) or {}

    def _read_yaml(self, path: Path) -> dict:
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in '{path}': {exc}", path=str(path)) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping", path=str(path))
        return data

    def _load_entity_file(self, path_str: str):
        """Merge the ``entities`` of an extra file (or the whole file) into ``entities``."""
        path = Path(path_str)
        if not path.exists():
            raise ConfigError(f"Entity configuration file '{path}' does not exist", path=str(path))
        data = self._read_json(path) if path.suffix == ".json" else self._read_yaml(path)
        entities = data.get("entities", data)
        self._merge_dict(self.config_data.setdefault("entities", {}), entities)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert ENTITYKIT_ENTITIES__ORDER__REPOSITORY to a nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        if value.lower() in ("null", "none"):
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def get_config(self, config_class: Type[EntityKitConfig] = EntityKitConfig) -> EntityKitConfig:
        """Instantiate the typed config, validating every known field."""
        hints = get_type_hints(config_class)
        kwargs = {}

        for field_info in fields(config_class):
            name = field_info.name
            if name in self.config_data:
                value = self.config_data[name]
                if not self._check_type(value, hints[name]):
                    raise ConfigError(
                        f"Config field '{name}' expected {hints[name]}, got {type(value).__name__}",
                        field=name,
                    )
                kwargs[name] = value
            elif field_info.default is MISSING and field_info.default_factory is MISSING:
                raise ConfigError(f"Required config field '{name}' not provided", field=name)

        unknown = set(self.config_data) - {f.name for f in fields(config_class)}
        if unknown:
            logger.debug("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))

        return config_class(**kwargs)

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        import types

        origin = get_origin(expected_type)
        if origin is types.UnionType or str(origin) == "typing.Union":
            if value is None:
                return type(None) in get_args(expected_type)
            return any(
                self._check_type(value, arg)
                for arg in get_args(expected_type)
                if arg is not type(None)
            )

        if origin:
            return isinstance(value, origin)

        if expected_type is Any:
            return True
        if expected_type is int and isinstance(value, bool):
            return False
        try:
            return isinstance(value, expected_type)
        except TypeError:
            return True

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()


def load_config(
    paths: Optional[List[str]] = None,
    *,
    env_file: Optional[str] = None,
    **overrides: Any,
) -> EntityKitConfig:
    """Shortcut: ``ConfigLoader.load(...).get_config()``."""
    return ConfigLoader.load(paths, env_file=env_file, overrides=overrides or None).get_config()


__all__ = ["ConfigError", "EntityKitConfig", "ConfigLoader", "load_config"]
