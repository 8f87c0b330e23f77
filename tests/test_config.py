"""
Tests for the Configuration Management Module.

Covers:
- SettingsLoader: defaults, YAML/JSON files, environment overrides, validation.
- SchemaRegistry: schema loading, registration and validation.
- XraySettings: helpers and secret redaction.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from xray_sync.config.loader import ConfigurationError, SettingsLoader, XraySettings
from xray_sync.config.schema_registry import SchemaRegistry, SchemaValidationError


# ---------------------------------------------------------------------------
# SettingsLoader Tests
# ---------------------------------------------------------------------------


class TestSettingsLoader:
    """Tests for the SettingsLoader class."""

    def test_defaults_without_file_or_env(self) -> None:
        """Test that defaults load and validate with an empty environment."""
        settings = SettingsLoader().load(env={})

        assert settings.project_key == "XSP"
        assert settings.test_type == "Cucumber"
        assert settings.default_labels == ("automation", "e2e", "cucumber")
        assert settings.client_id == ""
        assert settings.auto_create_test_execution is True

    def test_load_yaml_section(self, tmp_path: Path) -> None:
        """Test loading a YAML file with an 'xray' section."""
        path = tmp_path / "xray_settings.yaml"
        path.write_text(yaml.safe_dump({
            "xray": {
                "jira_url": "https://acme.atlassian.net",
                "project_key": "SHOP",
                "default_labels": ["regression"],
                "connect_timeout_sec": 5,
            }
        }), encoding="utf-8")

        settings = SettingsLoader().load(path, env={})

        assert settings.jira_url == "https://acme.atlassian.net"
        assert settings.project_key == "SHOP"
        assert settings.default_labels == ("regression",)
        assert settings.timeout == (5, 60.0)

    def test_load_flat_json(self, tmp_path: Path) -> None:
        """Test loading a flat JSON file."""
        path = tmp_path / "xray_settings.json"
        path.write_text(json.dumps({"project_key": "WEB", "test_type": "Manual"}),
                        encoding="utf-8")

        settings = SettingsLoader().load(path, env={})
        assert settings.project_key == "WEB"
        assert settings.test_type == "Manual"

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        """Test that environment variables take precedence over the file."""
        path = tmp_path / "xray_settings.yaml"
        path.write_text("project_key: FILE\nupload_results_enabled: true\n", encoding="utf-8")
        env = {
            "XRAY_PROJECT_KEY": "ENV",
            "XRAY_CLIENT_ID": "id",
            "XRAY_CLIENT_SECRET": "secret",
            "XRAY_UPLOAD_RESULTS_ENABLED": "no",
            "XRAY_DEFAULT_LABELS": "a, b,,c",
            "XRAY_READ_TIMEOUT_SEC": "12.5",
            "XRAY_BASE_URL": "https://xray.example.com",
        }

        settings = SettingsLoader().load(path, env=env)

        assert settings.project_key == "ENV"
        assert settings.client_id == "id"
        assert settings.client_secret == "secret"
        assert settings.upload_results_enabled is False
        assert settings.default_labels == ("a", "b", "c")
        assert settings.read_timeout_sec == 12.5
        assert settings.xray_base_url == "https://xray.example.com"

    def test_env_names(self) -> None:
        """Test the environment variable naming rule."""
        assert SettingsLoader.env_name("client_id") == "XRAY_CLIENT_ID"
        assert SettingsLoader.env_name("xray_base_url") == "XRAY_BASE_URL"

    def test_invalid_boolean_env(self) -> None:
        """Test that a non-boolean flag value is rejected."""
        with pytest.raises(ConfigurationError, match="XRAY_CREATE_TESTS_ENABLED"):
            SettingsLoader().load(env={"XRAY_CREATE_TESTS_ENABLED": "maybe"})

    def test_invalid_number_env(self) -> None:
        """Test that a non-numeric timeout is rejected."""
        with pytest.raises(ConfigurationError, match="must be a number"):
            SettingsLoader().load(env={"XRAY_CONNECT_TIMEOUT_SEC": "soon"})

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing settings file is reported."""
        with pytest.raises(ConfigurationError, match="not found"):
            SettingsLoader().load(tmp_path / "absent.yaml", env={})

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        """Test that unsupported file formats are rejected."""
        path = tmp_path / "settings.ini"
        path.write_text("[xray]\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Unsupported file format"):
            SettingsLoader().load(path, env={})

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        """Test that unparseable YAML is reported."""
        path = tmp_path / "settings.yaml"
        path.write_text("xray: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            SettingsLoader().load(path, env={})

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        """Test that a list at the top level is rejected."""
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            SettingsLoader().load(path, env={})

    def test_unknown_key_fails_validation(self, tmp_path: Path) -> None:
        """Test that unknown settings keys fail schema validation."""
        path = tmp_path / "settings.yaml"
        path.write_text("xray:\n  project_kee: XSP\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid Xray settings"):
            SettingsLoader().load(path, env={})

    def test_bad_project_key_fails_validation(self) -> None:
        """Test that a lowercase project key fails validation."""
        with pytest.raises(ConfigurationError):
            SettingsLoader().load(env={"XRAY_PROJECT_KEY": "xsp"})

    def test_example_settings_file_is_valid(self) -> None:
        """Test that the shipped example settings file validates."""
        example = Path(__file__).parent.parent / "config" / "xray_settings.example.yaml"
        settings = SettingsLoader().load(example, env={})
        assert settings.project_key == "XSP"


# ---------------------------------------------------------------------------
# XraySettings Tests
# ---------------------------------------------------------------------------


class TestXraySettings:
    """Tests for the XraySettings dataclass."""

    def test_url_join(self) -> None:
        """Test that base URL trailing slashes are handled."""
        settings = XraySettings()
        assert settings.url("https://jira.example.com/", "/rest/api/2/issue") == (
            "https://jira.example.com/rest/api/2/issue"
        )

    def test_secret_redacted(self) -> None:
        """Test that the client secret is masked when serialized."""
        settings = XraySettings(client_secret="top-secret")
        assert settings.to_dict()["client_secret"] == "***"
        assert settings.to_dict(redact_secrets=False)["client_secret"] == "top-secret"

    def test_immutable(self) -> None:
        """Test that settings cannot be changed after loading."""
        settings = XraySettings()
        with pytest.raises(AttributeError):
            settings.project_key = "OTHER"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# SchemaRegistry Tests
# ---------------------------------------------------------------------------


class TestSchemaRegistry:
    """Tests for the SchemaRegistry class."""

    def test_bundled_schema_loads(self) -> None:
        """Test that the bundled settings schema is found."""
        schema = SchemaRegistry().get_schema("xray_settings_schema")
        assert schema["type"] == "object"

    def test_missing_schema(self, tmp_path: Path) -> None:
        """Test that a missing schema raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            SchemaRegistry(tmp_path).get_schema("nope")

    def test_register_and_validate(self) -> None:
        """Test validation against an in-memory schema."""
        registry = SchemaRegistry()
        registry.register("thing", {"type": "object", "required": ["key"]})

        registry.validate({"key": "XSP-1"}, "thing")
        assert registry.is_valid({"key": "XSP-1"}, "thing")
        assert not registry.is_valid({}, "thing")

    def test_validation_error_lists_paths(self) -> None:
        """Test that validation errors name the failing path."""
        registry = SchemaRegistry()
        registry.register("labels", {
            "type": "object",
            "properties": {"labels": {"type": "array", "items": {"type": "string"}}},
        })

        with pytest.raises(SchemaValidationError) as exc_info:
            registry.validate({"labels": ["ok", 3]}, "labels")
        assert len(exc_info.value.errors) == 1
        assert "labels -> 1" in exc_info.value.errors[0]
