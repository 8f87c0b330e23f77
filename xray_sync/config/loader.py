"""
Settings Loader Module.

Provides the settings model and loader for the Xray integration:
- Built-in defaults matching Xray Cloud and a Jira Cloud site.
- Optional YAML or JSON settings file (flat, or nested under an ``xray`` key).
- Environment variable overrides (``XRAY_CLIENT_ID``, ``XRAY_PROJECT_KEY``, ...).
- Schema validation of the merged result using JSON Schema.

Settings are loaded once at process start and passed explicitly into the
components that need them.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from loguru import logger

from xray_sync.config.schema_registry import SchemaRegistry, SchemaValidationError


class ConfigurationError(Exception):
    """Raised when a settings file is invalid or cannot be loaded."""

    pass


@dataclass(frozen=True)
class XraySettings:
    """
    Immutable settings for one synchronization run.

    Attributes:
        jira_url: Jira site base URL (execution issues are created here).
        xray_base_url: Xray Cloud API base URL.
        project_key: Jira project key (e.g., "XSP").
        client_id: Xray API client id. Empty means "not configured".
        client_secret: Xray API client secret. Empty means "not configured".
        issue_type: Issue type name used for test issues.
        test_type: Xray test type value (e.g., "Cucumber").
        create_tests_enabled: Whether test issue creation runs at all.
        update_existing_tests: Whether scenarios already tagged with an issue
            key are re-submitted (updating the existing issue).
        auto_create_test_execution: Whether a successful upload is followed
            by creation of a Test Execution issue.
        upload_results_enabled: Whether result upload runs at all.
        test_environment: Environment label for Test Execution issues.
        default_version: Version label for Test Execution issues.
        default_labels: Labels attached to every created test issue.
        execution_description: Description of created Test Execution issues.
        feature_extension: File extension of scenario files.
        connect_timeout_sec: TCP connect timeout for every request.
        read_timeout_sec: Response read timeout for every request.
    """

    jira_url: str = "https://your-domain.atlassian.net"
    xray_base_url: str = "https://xray.cloud.getxray.app"
    project_key: str = "XSP"
    client_id: str = ""
    client_secret: str = ""
    issue_type: str = "Test"
    test_type: str = "Cucumber"
    create_tests_enabled: bool = True
    update_existing_tests: bool = True
    auto_create_test_execution: bool = True
    upload_results_enabled: bool = True
    test_environment: str = "localhost:3000"
    default_version: str = "1.0.0"
    default_labels: Tuple[str, ...] = ("automation", "e2e", "cucumber")
    execution_description: str = "Automated test execution"
    feature_extension: str = ".feature"

    # Xray Cloud / Jira REST endpoints
    auth_endpoint: str = "/api/v1/authenticate"
    test_import_endpoint: str = "/api/v1/import/feature"
    execution_import_endpoint: str = "/api/v1/import/execution/cucumber"
    issue_endpoint: str = "/rest/api/2/issue"

    # Jira custom field ids
    test_type_field: str = "customfield_10100"
    gherkin_field: str = "customfield_10200"
    environment_field: str = "customfield_10300"
    version_field: str = "customfield_10400"
    tests_field: str = "customfield_10500"

    connect_timeout_sec: float = 30.0
    read_timeout_sec: float = 60.0
    verify_ssl: bool = True

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) timeout tuple for requests."""
        return (self.connect_timeout_sec, self.read_timeout_sec)

    def url(self, base: str, endpoint: str) -> str:
        """Join a base URL and an endpoint path."""
        return f"{base.rstrip('/')}{endpoint}"

    def to_dict(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Serialize the settings, masking the client secret by default."""
        data = asdict(self)
        data["default_labels"] = list(self.default_labels)
        if redact_secrets and data["client_secret"]:
            data["client_secret"] = "***"
        return data


class SettingsLoader:
    """
    Loads XraySettings from defaults, an optional file, and the environment.

    Precedence (lowest to highest): built-in defaults, settings file,
    environment variables. The merged mapping is validated against the
    ``xray_settings_schema`` JSON schema before settings are built.

    Attributes:
        schema_registry: Registry used for settings validation.
    """

    SUPPORTED_EXTENSIONS = {".yaml", ".yml", ".json"}
    SCHEMA_NAME = "xray_settings_schema"
    ENV_PREFIX = "XRAY_"
    FILE_SECTION = "xray"

    _TRUE_VALUES = {"1", "true", "yes", "on"}
    _FALSE_VALUES = {"0", "false", "no", "off"}

    def __init__(self, schema_registry: Optional[SchemaRegistry] = None) -> None:
        """
        Initialize the settings loader.

        Args:
            schema_registry: Registry to validate against. Defaults to the
                             package's bundled schemas.
        """
        self.schema_registry = schema_registry or SchemaRegistry()

    def load(
        self,
        path: Optional[str | Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> XraySettings:
        """
        Load and validate settings.

        Args:
            path: Optional YAML/JSON settings file.
            env: Environment mapping to read overrides from (default: os.environ).

        Returns:
            Validated XraySettings.

        Raises:
            ConfigurationError: If the file cannot be read or the merged
                                settings fail validation.
        """
        data = XraySettings().to_dict(redact_secrets=False)

        if path is not None:
            file_path = Path(path)
            if not file_path.exists():
                raise ConfigurationError(f"Settings file not found: {file_path}")
            logger.info(f"Loading settings: {file_path}")
            data.update(self._read_file(file_path))

        data.update(self._read_env(os.environ if env is None else env))

        try:
            self.schema_registry.validate(data, self.SCHEMA_NAME)
        except SchemaValidationError as e:
            raise ConfigurationError(f"Invalid Xray settings: {e}") from e

        data["default_labels"] = tuple(data["default_labels"])
        settings = XraySettings(**data)

        if not (settings.client_id and settings.client_secret):
            logger.warning(
                "Xray credentials not configured. Set XRAY_CLIENT_ID and "
                "XRAY_CLIENT_SECRET environment variables."
            )
        logger.info(
            f"Settings loaded — project={settings.project_key}, "
            f"jira={settings.jira_url}"
        )
        return settings

    def _read_file(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse a YAML or JSON settings file."""
        suffix = file_path.suffix.lower()
        if suffix not in self.SUPPORTED_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported file format '{suffix}'. "
                f"Supported: {self.SUPPORTED_EXTENSIONS}"
            )

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to read file {file_path}: {e}") from e

        try:
            if suffix in {".yaml", ".yml"}:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to parse {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file must contain a mapping (dict), "
                f"got {type(data).__name__}: {file_path}"
            )

        section = data.get(self.FILE_SECTION, data)
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"'{self.FILE_SECTION}' section must be a mapping: {file_path}"
            )
        return dict(section)

    def _read_env(self, env: Mapping[str, str]) -> Dict[str, Any]:
        """Collect overrides from XRAY_* environment variables."""
        overrides: Dict[str, Any] = {}
        defaults = XraySettings()

        for f in fields(XraySettings):
            raw = env.get(self.env_name(f.name))
            if raw is None:
                continue
            overrides[f.name] = self._coerce(f.name, raw, getattr(defaults, f.name))

        if overrides:
            logger.debug(f"Environment overrides: {sorted(overrides)}")
        return overrides

    @classmethod
    def env_name(cls, field_name: str) -> str:
        """
        Environment variable name for a settings field.

        Examples:
            client_id -> XRAY_CLIENT_ID
            xray_base_url -> XRAY_BASE_URL
        """
        name = field_name.upper()
        if name.startswith(cls.ENV_PREFIX):
            return name
        return f"{cls.ENV_PREFIX}{name}"

    def _coerce(self, name: str, raw: str, default: Any) -> Any:
        """Convert an environment string to the type of the field's default."""
        value = raw.strip()
        if isinstance(default, bool):
            lowered = value.lower()
            if lowered in self._TRUE_VALUES:
                return True
            if lowered in self._FALSE_VALUES:
                return False
            raise ConfigurationError(
                f"{self.env_name(name)} must be a boolean, got '{raw}'"
            )
        if isinstance(default, float):
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"{self.env_name(name)} must be a number, got '{raw}'"
                ) from e
        if isinstance(default, tuple):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value
