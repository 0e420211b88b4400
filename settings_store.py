# settings_store.py
from __future__ import annotations

import json
import logging
from pathlib import Path

from models import TemplateSettings
from paths import settings_path

logger = logging.getLogger(__name__)

TEMPLATE_SETTINGS_KEY = "template_settings"


class SettingsStore:
    """
    Flat JSON key-value store for user preferences.
    Read at startup, written only on explicit user actions.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else settings_path()

    def read_all(self) -> dict:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
        except (OSError, ValueError) as e:
            logger.warning("Settings file %s is unreadable, using defaults: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default=None):
        return self.read_all().get(key, default)

    def set(self, key: str, value) -> None:
        self.update({key: value})

    def update(self, settings: dict) -> None:
        base = self.read_all()
        base.update(settings)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(base, f, indent=2)

    def delete(self, key: str) -> None:
        base = self.read_all()
        if key in base:
            del base[key]
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(base, f, indent=2)


class TemplateSettingsStore:
    """Load / save / reset lifecycle for the layout geometry."""

    def __init__(self, store: SettingsStore):
        self.store = store

    def load(self) -> TemplateSettings:
        raw = self.store.get(TEMPLATE_SETTINGS_KEY)
        try:
            return TemplateSettings.from_dict(raw or {})
        except (TypeError, ValueError) as e:
            logger.warning("Stored template settings are invalid, using defaults: %s", e)
            return TemplateSettings.defaults()

    def save(self, settings: TemplateSettings) -> None:
        self.store.set(TEMPLATE_SETTINGS_KEY, settings.to_dict())

    def reset_to_default(self) -> TemplateSettings:
        defaults = TemplateSettings.defaults()
        self.save(defaults)
        return defaults
