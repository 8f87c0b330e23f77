"""
Schema Registry Module.

Manages JSON schemas used to validate settings files and API response bodies.
File schemas are loaded from disk; in-code schemas can be registered directly.
Validation uses jsonschema (Draft 7).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
from loguru import logger

DEFAULT_SCHEMA_DIR = Path(__file__).parent / "schemas"


class SchemaValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class SchemaRegistry:
    """
    Registry for JSON schemas.

    Schemas are loaded lazily from a directory on disk and cached
    for subsequent validations.

    Attributes:
        schema_dir: Directory containing JSON schema files.
    """

    def __init__(self, schema_dir: Optional[str | Path] = None) -> None:
        """
        Initialize the schema registry.

        Args:
            schema_dir: Path to directory containing JSON schema files.
                        Defaults to the schemas shipped with the package.
        """
        self.schema_dir = Path(schema_dir) if schema_dir else DEFAULT_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}
        logger.debug(f"SchemaRegistry initialized — schema_dir={self.schema_dir}")

    def register(self, schema_name: str, schema: Dict[str, Any]) -> None:
        """Register an in-memory schema under a name."""
        jsonschema.Draft7Validator.check_schema(schema)
        self._schemas[schema_name] = schema

    def get_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Retrieve a JSON schema by name, loading from disk if not cached.

        Args:
            schema_name: Schema identifier (filename without .json extension).

        Returns:
            Parsed JSON schema as a dictionary.

        Raises:
            FileNotFoundError: If the schema file does not exist.
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self.schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(
                f"Schema not found: {schema_name} (expected at {schema_path})"
            )

        try:
            content = schema_path.read_text(encoding="utf-8")
            schema = json.loads(content)
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaValidationError(f"Failed to load schema {schema_name}: {e}") from e

        self._schemas[schema_name] = schema
        logger.debug(f"Schema loaded: {schema_name}")
        return schema

    def validate(self, data: Any, schema_name: str) -> None:
        """
        Validate data against a named schema.

        Args:
            data: Data to validate.
            schema_name: Name of the schema to validate against.

        Raises:
            SchemaValidationError: If validation fails, with details of all errors.
        """
        schema = self.get_schema(schema_name)
        validator = jsonschema.Draft7Validator(schema)
        errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))

        if errors:
            error_messages = []
            for error in errors:
                path = " -> ".join(str(p) for p in error.absolute_path) or "(root)"
                error_messages.append(f"  [{path}] {error.message}")

            all_errors = "\n".join(error_messages)
            raise SchemaValidationError(
                f"Schema validation failed for '{schema_name}' "
                f"({len(errors)} error(s)):\n{all_errors}",
                errors=error_messages,
            )

    def is_valid(self, data: Any, schema_name: str) -> bool:
        """Return True if data validates against the named schema."""
        try:
            self.validate(data, schema_name)
        except SchemaValidationError:
            return False
        return True
