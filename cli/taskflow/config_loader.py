"""
Runtime configuration loader

Loads monitor options from config.yaml and .env files. Plugin settings
(folders, property names, counter) are not stored here; they live in the
vault's data.json, see settings_store.py.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG: Dict[str, Any] = {
    "vault": {"path": None},
    "monitor": {
        "debounce_seconds": 0.25,
        "suppress_seconds": 0.5,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}


class ConfigLoader:
    """Loads configuration from config.yaml and .env files"""

    def __init__(self, config_path: Optional[Path] = None, env_path: Optional[Path] = None):
        if config_path is None:
            config_path = Path.cwd() / "config.yaml"
        if env_path is None:
            env_path = Path.cwd() / ".env"
        self.config_path = Path(config_path)
        self.env_path = Path(env_path)
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from both files"""
        if self.env_path.exists():
            load_dotenv(self.env_path)

        if self.config_path.exists():
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}
        else:
            self.config_data = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with environment variable override support"""
        env_key = key.upper().replace('.', '_')
        if env_key in os.environ:
            return os.environ[env_key]

        for source in (self.config_data, DEFAULT_CONFIG):
            value = source
            for k in key.split('.'):
                if isinstance(value, dict) and k in value:
                    value = value[k]
                else:
                    value = None
                    break
            if value is not None:
                return value

        return default

    def get_float(self, key: str, default: float) -> float:
        value = self.get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        return number if number >= 0 else default

    def get_vault_path(self) -> Optional[str]:
        """Get vault path with environment variable override"""
        return self.get('vault.path')

    def get_debounce_seconds(self) -> float:
        return self.get_float('monitor.debounce_seconds', 0.25)

    def get_suppress_seconds(self) -> float:
        return self.get_float('monitor.suppress_seconds', 0.5)

    def get_log_level(self) -> str:
        return str(self.get('logging.level', 'INFO')).upper()

    def get_log_file(self) -> Optional[str]:
        return self.get('logging.file')

    def validate_config(self, require_vault: bool = True) -> list:
        """Validate configuration and return list of errors"""
        errors = []

        if require_vault and not self.get_vault_path():
            errors.append("Vault path not configured (set vault.path in config.yaml or VAULT_PATH env var)")

        for key in ('monitor.debounce_seconds', 'monitor.suppress_seconds'):
            try:
                if float(self.get(key)) < 0:
                    errors.append(f"{key} must not be negative")
            except (TypeError, ValueError):
                errors.append(f"{key} must be a number")

        return errors


# Global config loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
