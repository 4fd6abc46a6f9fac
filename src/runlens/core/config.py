# src/runlens/core/config.py
"""
Configuration schema and loading for runlens.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class TelemetrySettings(BaseModel):
    """Live telemetry buffer sizing."""

    model_config = {"frozen": True}

    max_entries: int = Field(
        default=10_000,
        gt=0,
        description="Capacity of each telemetry ring buffer (oldest entries evicted first)",
    )


class DurableSettings(BaseModel):
    """Durable workflow shape extraction."""

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Allow describing durable task bodies")
    describe_timeout_ms: int = Field(
        default=800,
        gt=0,
        description="Wall-clock budget for running one durable body against the recorder",
    )


class PathRootSettings(BaseModel):
    """One named root for source path redaction."""

    model_config = {"frozen": True}

    name: str = Field(description="Label shown in place of the root's absolute path")
    path: str = Field(description="Absolute directory the label stands for")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("path root name must not be empty")
        if ":" in v:
            raise ValueError(f"path root name must not contain ':' (got {v!r})")
        return v


class PathSettings(BaseModel):
    """Source path redaction.

    Example YAML:
        paths:
          roots:
            - name: vendor
              path: /opt/vendor/lib
    """

    model_config = {"frozen": True}

    include_defaults: bool = Field(
        default=True,
        description="Add workspace, site-packages and home roots before operator roots",
    )
    roots: tuple[PathRootSettings, ...] = Field(
        default=(),
        description="Operator-defined roots; a repeated name replaces the earlier root",
    )


class IntrospectionSettings(BaseModel):
    """Registry introspection behavior."""

    model_config = {"frozen": True}

    legacy_tunnel_tag_matching: bool = Field(
        default=False,
        description="Also treat any tag id containing the word 'tunnel' as a tunnel tag",
    )


class CoverageSettings(BaseModel):
    """Optional statement coverage report shown next to source paths."""

    model_config = {"frozen": True}

    report_path: Path | None = Field(
        default=None,
        description="istanbul-style coverage JSON; missing report means zero coverage",
    )


class LoggingSettings(BaseModel):
    """runlens's own diagnostic logging."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console text")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class RunlensSettings(BaseModel):
    """Top-level runlens configuration.

    All sections have defaults, so an empty settings file is valid.
    """

    model_config = {"frozen": True}

    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    durable: DurableSettings = Field(default_factory=DurableSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    introspection: IntrospectionSettings = Field(default_factory=IntrospectionSettings)
    coverage: CoverageSettings = Field(default_factory=CoverageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_unique_operator_roots(self) -> "RunlensSettings":
        """Reject a root name that maps to two different directories.

        Repeating a name with the same path is harmless and allowed.
        """
        seen: dict[str, str] = {}
        for root in self.paths.roots:
            previous = seen.get(root.name)
            if previous is not None and previous != root.path:
                raise ValueError(f"path root '{root.name}' defined twice with different paths: {previous!r} and {root.path!r}")
            seen[root.name] = root.path
        return self


def load_settings(config_path: Path) -> RunlensSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (RUNLENS_*) - highest priority
    2. Config file (runlens.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: RUNLENS_TELEMETRY__MAX_ENTRIES for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated RunlensSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="RUNLENS",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; nested dicts keep their file casing
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return RunlensSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def dump_settings(settings: RunlensSettings) -> str:
    """Render resolved settings (defaults included) as YAML.

    Args:
        settings: Validated settings

    Returns:
        YAML document suitable for a settings file
    """
    return yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False)
