"""
Config system - layered typed configuration with validation.

Merge order (later overrides earlier):
1. Dataclass defaults
2. .env file (only keys carrying the prefix)
3. Environment variables (MINIMVC_* prefix, ``__`` for nesting)
4. Explicit overrides
"""

from typing import Any, Dict, Optional, Tuple, Type, TypeVar, get_type_hints, get_origin, get_args
from dataclasses import dataclass, fields, is_dataclass, MISSING
from pathlib import Path
import json
import os
import types

from dotenv import dotenv_values

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration validation error."""
    pass


@dataclass(frozen=True)
class MvcConfig:
    """
    Settings of the MVC dispatch core.

    Attributes:
        fault_status: Status written when a dispatch fails for any reason
        form_methods: Methods whose requests may carry a form body
        max_body_size: Largest request body read, in bytes
        json_max_depth: Deepest JSON nesting accepted in a body
        views_folder: Root folder of view templates
        views_autoescape: HTML-escape template output
        slow_request_ms: LoggingMiddleware warns above this duration
    """

    fault_status: int = 500
    form_methods: Tuple[str, ...] = ("POST", "PUT", "PATCH", "DELETE")
    max_body_size: int = 10_485_760  # 10 MiB
    json_max_depth: int = 64
    views_folder: str = "Views"
    views_autoescape: bool = True
    slow_request_ms: float = 1000.0

    def __post_init__(self):
        if not 100 <= self.fault_status <= 599:
            raise ConfigError(f"fault_status must be an HTTP status code, got {self.fault_status}")
        object.__setattr__(self, "form_methods", tuple(m.upper() for m in self.form_methods))


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Example:
        loader = ConfigLoader.load(env_file=".env", overrides={"fault_status": 400})
        config = loader.get_config(MvcConfig)
    """

    def __init__(self, env_prefix: str = "MINIMVC_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        env_prefix: str = "MINIMVC_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping (defaults to os.environ)
        """
        loader = cls(env_prefix=env_prefix)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ):
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert MINIMVC_VIEWS__FOLDER to {"views": {"folder": ...}}."""
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
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

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

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def get_config(self, config_class: Type[T] = MvcConfig, section: Optional[str] = None) -> T:
        """
        Build and validate a dataclass config from the loaded data.

        Args:
            config_class: Dataclass to instantiate
            section: Dot path of a nested section (root when None)
        """
        data = self.get(section, {}) if section else self.config_data
        if not is_dataclass(config_class):
            raise ConfigError(f"{config_class.__name__} is not a dataclass")
        return self._instantiate_dataclass(config_class, data)

    def _instantiate_dataclass(self, config_class: Type, data: dict):
        """Instantiate dataclass config with validation."""
        hints = get_type_hints(config_class)
        kwargs = {}

        for field_info in fields(config_class):
            field_name = field_info.name
            field_type = hints.get(field_name, field_info.type)

            if field_name in data:
                value = self._coerce(data[field_name], field_type)

                if not self._check_type(value, field_type):
                    raise ConfigError(
                        f"Config field '{field_name}' expected {field_type}, "
                        f"got {type(value).__name__}"
                    )

                kwargs[field_name] = value
            elif field_info.default is MISSING and field_info.default_factory is MISSING:
                raise ConfigError(
                    f"Required config field '{field_name}' not provided"
                )

        return config_class(**kwargs)

    def _coerce(self, value: Any, expected_type: Type) -> Any:
        """Lossless adjustments between parsed and declared shapes."""
        origin = get_origin(expected_type)
        if origin is tuple and isinstance(value, list):
            return tuple(value)
        if origin is tuple and isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if expected_type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def _check_type(self, value: Any, expected_type: Type) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin is types.UnionType or str(origin) == "typing.Union":
            if value is None:
                return True
            return any(self._check_type(value, arg) for arg in get_args(expected_type))

        if origin:
            return isinstance(value, origin)

        if expected_type is int and isinstance(value, bool):
            return False

        try:
            return isinstance(value, expected_type)
        except TypeError:
            # For complex types, skip validation
            return True

    def to_dict(self) -> dict:
        return dict(self.config_data)
