"""Shared dependencies for API routes."""
from __future__ import annotations

from src.reporting.tax_reports import ScheduleCReporter
from src.utils.config import AppConfig, load_config
from src.utils.validation import ExportValidator

# Global configuration
CONFIG: AppConfig = load_config()

# Singleton instances
_REPORTER: ScheduleCReporter | None = None
_VALIDATOR: ExportValidator | None = None


def get_config() -> AppConfig:
    """Get application configuration, reloading if the environment changed."""
    global CONFIG, _REPORTER
    latest = load_config()
    if latest != CONFIG:
        CONFIG = latest
        _REPORTER = None
    return CONFIG


def get_reporter() -> ScheduleCReporter:
    """Get or create the ScheduleCReporter for the current configuration."""
    global _REPORTER
    config = get_config()
    if _REPORTER is None:
        _REPORTER = ScheduleCReporter(config=config)
    return _REPORTER


def get_validator() -> ExportValidator:
    """Get or create the ExportValidator instance."""
    global _VALIDATOR
    if _VALIDATOR is None:
        _VALIDATOR = ExportValidator()
    return _VALIDATOR
