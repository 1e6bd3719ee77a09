"""
config/validator.py: JSON Schema validation for crudhooks application definitions.

Usage:
    from crudhooks.config.validator import validate_app_file

    issues = validate_app_file(Path("music.yaml"))
    for issue in issues:
        print(issue)

Besides the schema, relations are cross-checked: a join must point at a
service declared in the same file.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

APP_SCHEMA = "app.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for an application definition."""

    file: Path
    message: str
    path: str = ""  # location within the document, e.g. "services/api/albums/joins"
    severity: str = "error"  # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _load_registry() -> Registry:
    """Build a jsonschema Registry containing all crudhooks schemas."""
    resources = []
    for name in ("_defs.schema.json", APP_SCHEMA):
        schema = _load_schema(name)
        resources.append((schema["$id"], Resource(contents=schema, specification=DRAFT202012)))
    return Registry().with_resources(resources)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _check_joins(doc: dict[str, Any], file: Path) -> list[ValidationIssue]:
    issues = []
    services = doc.get("services") or {}
    for path, service in services.items():
        for name, option in (service.get("joins") or {}).items():
            target = str(option.get("service", "")).strip("/")
            if target not in services:
                issues.append(
                    ValidationIssue(
                        file=file,
                        message=f"Join '{name}' references unknown service '{target}'",
                        path=f"services/{path}/joins/{name}",
                    )
                )
    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_app(
    doc: Any, file: Path, *, registry: Registry | None = None
) -> list[ValidationIssue]:
    """Validate an already parsed application definition."""
    if registry is None:
        registry = _load_registry()

    validator = Draft202012Validator(_load_schema(APP_SCHEMA), registry=registry)

    issues = [
        ValidationIssue(file=file, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path)))
    ]
    if issues:
        return issues

    return _check_joins(doc, file)


def load_app_file(yaml_path: Path) -> tuple[Any, list[ValidationIssue]]:
    """Parse a YAML application definition.

    Returns:
        (document, issues); document is None when parsing failed.
    """
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except OSError as exc:
        return None, [ValidationIssue(file=yaml_path, message=f"Cannot read file: {exc}")]
    except yaml.YAMLError as exc:
        return None, [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return None, [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    return raw, []


def validate_app_file(yaml_path: Path) -> list[ValidationIssue]:
    """
    Validate a YAML application definition file.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    doc, issues = load_app_file(yaml_path)
    if issues:
        return issues

    issues = validate_app(doc, yaml_path)
    logger.debug("Validated %s: %d issue(s)", yaml_path, len(issues))
    return issues
