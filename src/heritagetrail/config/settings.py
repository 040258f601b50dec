# src/heritagetrail/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/heritagetrail/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `HERITAGETRAIL_VISIT_RADIUS_KM`, `HERITAGETRAIL_STORAGE_DIR`)
- an external YAML file via `HERITAGETRAIL_CONFIG_PATH`

Design rule:
- Policy knobs (visit radius, fetch timeout) live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from heritagetrail.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `heritagetrail.config`."""
    text = resources.files("heritagetrail.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "HeritageTrail"
    timezone: str = "Asia/Manila"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class VerificationSettings(BaseModel):
    radius_km: float = Field(0.1, gt=0)
    fetch_timeout_seconds: float = Field(10, gt=0)


class StorageSettings(BaseModel):
    dir: str = ".data/heritagetrail/users"


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/sites.json"


class VisitLogSettings(BaseModel):
    enabled: bool = False
    url: str | None = None
    # Free-form label for the collector, e.g. "android", "ios" or "kiosk".
    device_type: str | None = None


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    visit_log: VisitLogSettings = Field(default_factory=VisitLogSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    data = dict(data)
    log_level = os.getenv("HERITAGETRAIL_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    storage_dir = os.getenv("HERITAGETRAIL_STORAGE_DIR")
    if storage_dir:
        data.setdefault("storage", {})["dir"] = storage_dir

    radius_km = os.getenv("HERITAGETRAIL_VISIT_RADIUS_KM")
    if radius_km:
        data.setdefault("verification", {})["radius_km"] = float(radius_km)

    visit_log_url = os.getenv("HERITAGETRAIL_VISIT_LOG_URL")
    if visit_log_url:
        data.setdefault("visit_log", {}).update({"enabled": True, "url": visit_log_url})

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("HERITAGETRAIL_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
