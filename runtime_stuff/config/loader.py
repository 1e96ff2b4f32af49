"""
Configuration Loader

Loads and validates YAML/JSON engine configuration: cache bounds, name
resolution rules, conversion tables, construction fallbacks and logging.
Supports environment variable substitution for deployment-specific values.
"""

import os
import re
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from runtime_stuff.core.errors import ConfigError


# Load environment variables from .env file if present
load_dotenv()


class CacheConfig(BaseModel):
    """Process-wide cache settings."""

    max_entries: int | None = Field(
        default=None,
        ge=1,
        description="Bound on entries per cache (None = unbounded)",
    )


class ResolutionConfig(BaseModel):
    """Name resolution settings."""

    ignore_chars: str = Field(
        default=" -_.",
        description="Characters ignored by fuzzy name matching",
    )
    prefer_exact_case: bool = Field(
        default=True,
        description="Prefer an exact-case structural match over a case-insensitive one",
    )


class ConversionConfig(BaseModel):
    """Value conversion settings."""

    true_values: list[str] = Field(
        default_factory=lambda: ["true", "yes", "1", "y", "t", "on", "si", "oui", "ja"],
        description="Strings converted to True",
    )
    false_values: list[str] = Field(
        default_factory=lambda: ["false", "no", "0", "n", "f", "off", "non", "nein"],
        description="Strings converted to False",
    )
    date_formats: list[str] = Field(
        default_factory=lambda: [
            "%Y-%m-%d",       # ISO format
            "%d/%m/%Y",       # European
            "%m/%d/%Y",       # American
            "%d-%m-%Y",
            "%Y/%m/%d",
            "%d.%m.%Y",       # German
            "%d %b %Y",       # 25 Dec 2024
            "%d %B %Y",       # 25 December 2024
            "%Y%m%d",         # Compact
        ],
        description="strptime formats tried after ISO parsing",
    )
    use_pandas_fallback: bool = Field(
        default=True,
        description="Fall back to pandas.to_datetime for unrecognized date strings",
    )

    @field_validator("true_values", "false_values")
    @classmethod
    def lowercase_values(cls, v: list[str]) -> list[str]:
        return [s.strip().lower() for s in v]


class ConstructionConfig(BaseModel):
    """Fallbacks used when constructing abstract types."""

    interface_map: dict[str, str] = Field(
        default_factory=lambda: {
            "collections.abc.Iterable": "builtins.list",
            "collections.abc.Collection": "builtins.list",
            "collections.abc.Sequence": "builtins.list",
            "collections.abc.MutableSequence": "builtins.list",
            "collections.abc.Set": "builtins.set",
            "collections.abc.MutableSet": "builtins.set",
            "collections.abc.Mapping": "builtins.dict",
            "collections.abc.MutableMapping": "builtins.dict",
        },
        description="Abstract type path -> concrete type path",
    )

    @field_validator("interface_map")
    @classmethod
    def validate_paths(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure both sides are dotted paths."""
        for abstract, concrete in v.items():
            for path in (abstract, concrete):
                if "." not in path.strip():
                    raise ValueError(f"Expected a dotted type path, got '{path}'")
        return v


class LoggingConfig(BaseModel):
    """Diagnostics configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="WARNING")
    console: bool = Field(default=False, description="Print trace entries to the console")
    buffer_size: int = Field(default=1000, ge=1, description="Trace entries kept in memory")
    trace_enabled: bool = Field(default=True, description="Record engine events")


class EngineConfig(BaseModel):
    """Root engine configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str = Field(default="runtime_stuff", description="Configuration name")
    version: str = Field(default="1.0", description="Configuration version")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    construction: ConstructionConfig = Field(default_factory=ConstructionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigLoader:
    """
    Loads and validates engine configuration from YAML/JSON files.

    Supports environment variable substitution using ${VAR_NAME} syntax.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load("runtime_stuff.yaml")
        >>> print(config.cache.max_entries)
    """

    # Pattern for environment variable substitution
    ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def __init__(self, env_file: Path | None = None):
        """
        Initialize config loader.

        Args:
            env_file: Optional path to .env file
        """
        if env_file:
            load_dotenv(env_file)

    def load(self, config_path: str | Path) -> EngineConfig:
        """
        Load configuration from file.

        Args:
            config_path: Path to YAML or JSON config file

        Returns:
            Validated EngineConfig object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If config is invalid
        """
        path = Path(config_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        # Substitute environment variables
        content = self._substitute_env_vars(content)

        # Parse YAML (also handles JSON as subset of YAML)
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a dictionary")

        return self.load_dict(data)

    def load_dict(self, data: dict) -> EngineConfig:
        """Validate an already parsed configuration mapping."""
        try:
            return EngineConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e}") from e

    def _substitute_env_vars(self, content: str) -> str:
        """
        Replace ${VAR_NAME} with environment variable values.

        Args:
            content: Configuration content string

        Returns:
            Content with substituted values
        """
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            value = os.environ.get(var_name)
            if value is None:
                raise ConfigError(
                    f"Environment variable '{var_name}' is not set. "
                    f"Please set it or update the configuration."
                )
            return value

        return self.ENV_PATTERN.sub(replace, content)

    def validate_file(self, config_path: str | Path) -> list[str]:
        """
        Validate a configuration file and return any errors.

        Args:
            config_path: Path to config file

        Returns:
            List of error messages (empty if valid)
        """
        errors: list[str] = []

        try:
            self.load(config_path)
        except (FileNotFoundError, ConfigError) as e:
            errors.append(str(e))

        return errors

    @staticmethod
    def create_example_config(output_path: str | Path) -> None:
        """
        Create an example configuration file.

        Args:
            output_path: Where to write the example config
        """
        defaults = EngineConfig()
        example = {
            "name": "runtime_stuff",
            "version": "1.0",
            "cache": {
                "max_entries": None,
            },
            "resolution": {
                "ignore_chars": defaults.resolution.ignore_chars,
                "prefer_exact_case": True,
            },
            "conversion": {
                "true_values": defaults.conversion.true_values,
                "false_values": defaults.conversion.false_values,
                "date_formats": defaults.conversion.date_formats,
                "use_pandas_fallback": True,
            },
            "construction": {
                "interface_map": defaults.construction.interface_map,
            },
            "logging": {
                "level": "WARNING",
                "console": False,
                "buffer_size": 1000,
                "trace_enabled": True,
            },
        }

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(example, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


_active_config: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Active process configuration (defaults until ``configure`` is called)."""
    global _active_config
    if _active_config is None:
        _active_config = EngineConfig()
    return _active_config


def configure(config: EngineConfig | dict | str | Path | None = None) -> EngineConfig:
    """
    Set the active process configuration.

    Args:
        config: An EngineConfig, a mapping, a path to a YAML/JSON file, or
            None to restore the defaults

    Returns:
        The configuration now in effect
    """
    global _active_config
    loader = ConfigLoader()
    if config is None:
        new_config = EngineConfig()
    elif isinstance(config, EngineConfig):
        new_config = config
    elif isinstance(config, dict):
        new_config = loader.load_dict(config)
    else:
        new_config = loader.load(config)
    _active_config = new_config
    return new_config
