#!/usr/bin/env python3
"""
Configuration for the club back office.

Settings come from a YAML file layered over built-in defaults. String values
may reference environment variables as ${VAR} or ${VAR:-default}; only the
variables in ALLOWED_ENV_VARS are ever read, anything else resolves to its
default.

File lookup order: $HRC_CONFIG, then config.yaml at the repository root,
then ./config.yaml, then ~/.runclub/config.yaml.
"""

import copy
import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

# Allowlist of environment variables that can be substituted
ALLOWED_ENV_VARS: Set[str] = {
    'GEMINI_API_KEY',
    'GEMINI_MODEL',
    'HRC_COACH_EMAIL',
    'HRC_COACH_PASSWORD',
    'HRC_COACH_NAME',
    'HRC_VERIFICATION_CODE',
    'HRC_PIX_KEY',
    'HRC_SEED_FILE',
    'HRC_LOG_LEVEL',
}

ENV_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'auth': {
        'coach_id': 'c1',
        'coach_name': '${HRC_COACH_NAME:-Rick Severo}',
        'coach_email': '${HRC_COACH_EMAIL:-rick@coach.com}',
        'coach_password': '${HRC_COACH_PASSWORD:-rick123}',
        'verification_code': '${HRC_VERIFICATION_CODE:-123456}',
    },
    'finance': {
        'default_plan_value': 150,
        'pix_key': '${HRC_PIX_KEY:-coach@rick.com}',
        'pix_code': 'rick-severo-00020126360014br.gov.bcb.pix011400000000000000',
    },
    'gemini': {
        'api_key': '${GEMINI_API_KEY:-}',
        'model': '${GEMINI_MODEL:-gemini-3-flash-preview}',
    },
    'seed': {
        'file': '${HRC_SEED_FILE:-}',
    },
    'logging': {
        'level': '${HRC_LOG_LEVEL:-INFO}',
    },
}


def substitute_env(value: Any) -> Any:
    """Resolve ${VAR:-default} references in every string of a nested structure."""
    if isinstance(value, str):
        def resolve(match):
            name, default = match.group(1), match.group(2) or ''
            if name not in ALLOWED_ENV_VARS:
                return default
            return os.environ.get(name, default)
        return ENV_PATTERN.sub(resolve, value)
    if isinstance(value, dict):
        return {k: substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env(item) for item in value]
    return value


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Copy of `base` with `override` applied; nested sections merge key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def find_config_file() -> Optional[Path]:
    explicit = os.environ.get('HRC_CONFIG')
    if explicit:
        return Path(explicit) if Path(explicit).exists() else None

    candidates = [
        Path(__file__).parent.parent / 'config.yaml',
        Path.cwd() / 'config.yaml',
        Path.home() / '.runclub' / 'config.yaml',
    ]
    return next((path for path in candidates if path.exists()), None)


class Config:
    """Club settings, loaded once per process."""

    _instance = None
    _lock = threading.Lock()  # Thread-safe singleton

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._settings = instance._load()
                    cls._instance = instance
        return cls._instance

    @staticmethod
    def _load() -> Dict:
        settings = DEFAULTS
        path = find_config_file()
        if path is not None:
            with open(path, 'r', encoding='utf-8') as f:
                settings = deep_merge(DEFAULTS, yaml.safe_load(f) or {})
        return substitute_env(settings)

    def reload(self):
        """Re-read the file and the environment."""
        with self._lock:
            self._settings = self._load()

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path.

        Example: config.get('auth.verification_code', '123456')
        """
        value = self._settings
        for key in key_path.split('.'):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    @property
    def all(self) -> Dict:
        return self._settings


# Global config instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
