# tests/unit/core/test_config.py
"""Tests for settings schema and loading.

Tests cover:
- Defaults of every section
- Field validation (capacity, timeouts, root names, log level)
- Duplicate root detection
- load_settings(): YAML file, RUNLENS_* environment overrides, missing file
- dump_settings(): YAML rendering of resolved settings
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from runlens.core.config import (
    DurableSettings,
    LoggingSettings,
    PathRootSettings,
    RunlensSettings,
    TelemetrySettings,
    dump_settings,
    load_settings,
)


class TestDefaults:
    """An empty configuration is valid."""

    def test_section_defaults(self) -> None:
        """Defaults match the documented values."""
        settings = RunlensSettings()

        assert settings.telemetry.max_entries == 10_000
        assert settings.durable.describe_timeout_ms == 800
        assert settings.durable.enabled is True
        assert settings.paths.include_defaults is True
        assert settings.paths.roots == ()
        assert settings.introspection.legacy_tunnel_tag_matching is False
        assert settings.coverage.report_path is None
        assert settings.logging.level == "INFO"

    def test_settings_are_frozen(self) -> None:
        """Settings cannot be mutated after construction."""
        settings = RunlensSettings()

        with pytest.raises(ValidationError):
            settings.telemetry.max_entries = 5  # type: ignore[misc]


class TestValidation:
    """Field and model validators."""

    def test_capacity_must_be_positive(self) -> None:
        """A zero-capacity buffer is rejected."""
        with pytest.raises(ValidationError):
            TelemetrySettings(max_entries=0)

    def test_timeout_must_be_positive(self) -> None:
        """A zero describe budget is rejected."""
        with pytest.raises(ValidationError):
            DurableSettings(describe_timeout_ms=0)

    @pytest.mark.parametrize("name", ["", "   ", "a:b"])
    def test_bad_root_names(self, name: str) -> None:
        """Root names must be non-empty and free of ':'."""
        with pytest.raises(ValidationError):
            PathRootSettings(name=name, path="/x")

    def test_log_level_is_normalized(self) -> None:
        """Lowercase levels are accepted."""
        assert LoggingSettings(level="debug").level == "DEBUG"  # type: ignore[arg-type]

    def test_conflicting_root_definitions(self) -> None:
        """One root name cannot point at two directories."""
        with pytest.raises(ValidationError, match="defined twice"):
            RunlensSettings.model_validate(
                {"paths": {"roots": [{"name": "vendor", "path": "/a"}, {"name": "vendor", "path": "/b"}]}}
            )

    def test_repeated_identical_root_is_allowed(self) -> None:
        """Repeating a root with the same path is harmless."""
        settings = RunlensSettings.model_validate(
            {"paths": {"roots": [{"name": "vendor", "path": "/a"}, {"name": "vendor", "path": "/a"}]}}
        )

        assert len(settings.paths.roots) == 2

    def test_builtin_root_name_can_be_reused(self) -> None:
        """An operator root may take a built-in name to move that root."""
        settings = RunlensSettings.model_validate({"paths": {"roots": [{"name": "workspace", "path": "/srv/app"}]}})

        assert settings.paths.roots[0].name == "workspace"


class TestLoadSettings:
    """Dynaconf-backed loading."""

    def test_load_yaml_file(self, tmp_path: Path) -> None:
        """Values from the file override defaults."""
        config_file = tmp_path / "runlens.yaml"
        config_file.write_text(
            "telemetry:\n  max_entries: 50\npaths:\n  roots:\n    - name: vendor\n      path: /opt/vendor\n"
        )

        settings = load_settings(config_file)

        assert settings.telemetry.max_entries == 50
        assert settings.paths.roots[0].name == "vendor"
        assert settings.durable.describe_timeout_ms == 800

    def test_environment_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """RUNLENS_<SECTION>__<KEY> overrides the file."""
        config_file = tmp_path / "runlens.yaml"
        config_file.write_text("telemetry:\n  max_entries: 50\n")
        monkeypatch.setenv("RUNLENS_TELEMETRY__MAX_ENTRIES", "7")

        settings = load_settings(config_file)

        assert settings.telemetry.max_entries == 7

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is an error, not silent defaults."""
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Invalid values surface as ValidationError."""
        config_file = tmp_path / "runlens.yaml"
        config_file.write_text("telemetry:\n  max_entries: -1\n")

        with pytest.raises(ValidationError):
            load_settings(config_file)


class TestDumpSettings:
    """YAML rendering."""

    def test_dump_contains_resolved_values(self) -> None:
        """The dump is loadable YAML holding every section."""
        dumped = yaml.safe_load(dump_settings(RunlensSettings()))

        assert dumped["telemetry"]["max_entries"] == 10_000
        assert dumped["logging"]["level"] == "INFO"
        assert set(dumped) == {"telemetry", "durable", "paths", "introspection", "coverage", "logging"}
