"""Settings and YAML application definitions."""

from crudhooks.config.loader import build_application, load_application
from crudhooks.config.settings import Settings
from crudhooks.config.validator import ValidationIssue, validate_app, validate_app_file

__all__ = [
    "Settings",
    "ValidationIssue",
    "build_application",
    "load_application",
    "validate_app",
    "validate_app_file",
]
