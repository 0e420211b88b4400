from __future__ import annotations

import json
from pathlib import Path

from env_config import get_env

# Fallback location if settings_local.json is missing or broken
DEFAULT_DATA_DIR = Path.home() / "TreatmentPlans"

SETTINGS_FILENAME = "_app_settings.json"


def repo_root() -> Path:
    return Path(__file__).resolve().parent


def get_data_dir() -> Path:
    """
    Returns the base data directory for settings and generated plans.
    Reads settings_local.json from the repo root, then TREATMENT_PLAN_DATA_DIR.
    """
    settings_path = repo_root() / "settings_local.json"

    data_dir = get_env("TREATMENT_PLAN_DATA_DIR", "") or str(DEFAULT_DATA_DIR)

    if settings_path.exists():
        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                cfg = json.load(f)
            data_dir = cfg.get("DATA_DIR", data_dir)
        except (OSError, ValueError):
            # If the file exists but is malformed, fall back safely
            pass

    base = Path(data_dir)
    base.mkdir(parents=True, exist_ok=True)
    return base


def settings_path() -> Path:
    """Persisted user preferences (template settings, fee schedule override)"""
    return get_data_dir() / SETTINGS_FILENAME


def exports_dir() -> Path:
    """Root folder for generated PDFs"""
    path = get_data_dir() / "exports"
    path.mkdir(parents=True, exist_ok=True)
    return path


def assets_dir() -> Path:
    """Fonts, template PDFs, team pages and dentist photos"""
    override = get_env("TREATMENT_PLAN_ASSETS_DIR", "")
    if override:
        return Path(override)
    return repo_root() / "assets"
