"""Configuration utilities for GigLedger tax exports."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class AppConfig:
    """Application configuration resolved from environment variables."""

    output_dir: Path
    log_level: str = "INFO"
    default_mileage_rate: Optional[float] = None
    tax_year: Optional[int] = None


def _normalize_output_dir(path_str: str) -> Path:
    """Ensure an output directory path is absolute and expanded."""

    raw_path = Path(path_str).expanduser()
    if raw_path.is_absolute():
        return raw_path
    return (Path.cwd() / raw_path).resolve()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring non-numeric {name}={raw!r}")
        return None


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring non-integer {name}={raw!r}")
        return None


def load_config(output_dir_override: Optional[str] = None) -> AppConfig:
    """Load application configuration, optionally overriding the output directory."""

    output_dir_env = output_dir_override or os.getenv("GIGLEDGER_OUTPUT_DIR", "exports")
    log_level_env = os.getenv("GIGLEDGER_LOG_LEVEL", "INFO").upper()

    return AppConfig(
        output_dir=_normalize_output_dir(output_dir_env),
        log_level=log_level_env,
        default_mileage_rate=_optional_float("GIGLEDGER_DEFAULT_MILEAGE_RATE"),
        tax_year=_optional_int("GIGLEDGER_TAX_YEAR"),
    )


def configure_logging(level: str) -> None:
    """Configure root logging with a consistent format."""

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(
            level=numeric_level,
            format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        )
    else:
        root_logger.setLevel(numeric_level)


__all__ = ["AppConfig", "load_config", "configure_logging"]
