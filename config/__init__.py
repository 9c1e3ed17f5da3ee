"""
Configuration Module for the billing reconciliation system.

Preprocessing constants, OCR parameters, heuristic keyword tables and
storage locations live in settings.yaml; components read them through
``get_config`` and keep the same values as code defaults.

Lookup order for the settings file:
    1. ``config_path`` passed to the first ConfigurationManager()
    2. ``SCHOOL_BILLING_CONFIG`` environment variable
    3. ``settings.yaml`` beside this module

Environment overrides applied after loading:
    SCHOOL_BILLING_DATA_DIR   -> paths.data_dir
    SCHOOL_BILLING_LOG_LEVEL  -> logging.level
"""

import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "SCHOOL_BILLING_CONFIG"

ENV_OVERRIDES = {
    "SCHOOL_BILLING_DATA_DIR": ("paths", "data_dir"),
    "SCHOOL_BILLING_LOG_LEVEL": ("logging", "level"),
}

DEFAULT_SETTINGS_FILE = Path(__file__).parent / "settings.yaml"
PROJECT_ROOT = Path(__file__).parent.parent


def _settings_file(config_path: Optional[str]) -> Path:
    chosen = config_path or os.environ.get(CONFIG_ENV_VAR)
    return Path(chosen) if chosen else DEFAULT_SETTINGS_FILE


class ConfigurationManager:
    """
    Process-wide view of settings.yaml.

    Only the first construction chooses the file; later calls return the
    same instance. ``reset`` forgets it so the next call loads again.

    Example:
        >>> ConfigurationManager().get("ocr.tesseract.psm")
        6
        >>> ConfigurationManager().section("database")["name"]
        'school_billing.db'
    """

    _instance: Optional['ConfigurationManager'] = None
    _lock = threading.Lock()

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance.config_path = _settings_file(config_path)
                instance.settings = instance._load()
                cls._instance = instance
        return cls._instance

    def _load(self) -> Dict[str, Any]:
        """
        Parse the settings file and apply path resolution and overrides.

        Raises:
            FileNotFoundError: If the settings file is missing.
            yaml.YAMLError: If the settings file is not valid YAML.
        """
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        settings = yaml.safe_load(self.config_path.read_text(encoding='utf-8')) or {}

        for env_var, (section, key) in ENV_OVERRIDES.items():
            if os.environ.get(env_var):
                settings.setdefault(section, {})[key] = os.environ[env_var]

        # relative storage paths are anchored at the project root, not the cwd
        paths = settings.get('paths') or {}
        for key, value in paths.items():
            if value and not Path(value).is_absolute():
                paths[key] = str(PROJECT_ROOT / value)

        return settings

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``"ocr.tesseract.dpi"``.

        Returns ``default`` when any segment is missing or a non-mapping is
        reached before the last segment.
        """
        node: Any = self.settings
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def section(self, name: str) -> Dict[str, Any]:
        """Top-level section as a dict (empty when absent)."""
        value = self.settings.get(name)
        return dict(value) if isinstance(value, dict) else {}

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings (tests and ``--config`` use this)."""
        with cls._lock:
            cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Shortcut for ``ConfigurationManager().get(key, default)``.

    Args:
        key: Dotted configuration key.
        default: Value returned when the key is absent.
    """
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
