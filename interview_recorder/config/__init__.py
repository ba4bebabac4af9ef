"""YAML configuration loader for the interview recorder."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..exceptions import ConfigurationError
from ..audio.encodings import DEFAULT_FALLBACK_MIME, DEFAULT_MIME_PREFERENCES
from ..models.capture import AudioConstraints

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "interview_recorder.yaml"

DEFAULTS: Dict[str, Any] = {
    "supabase": {
        "bucket": "recordings",
        "table": "recording_logs",
    },
    "access": {
        "admin_emails": [],
        "allow_anonymous": False,
    },
    "audio": {
        "sample_rate": 44100,
        "channels": 1,
        "timeslice_ms": 100,
        "device_index": None,
        "echo_cancellation": True,
        "noise_suppression": True,
        "auto_gain_control": True,
        "mime_preferences": list(DEFAULT_MIME_PREFERENCES),
        "fallback_mime": DEFAULT_FALLBACK_MIME,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/interview_recorder.log",
        "console_output": True,
    },
}


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Look for interview_recorder.yaml in ``start`` and its parent directories."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in [directory, *directory.parents]:
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class RecorderConfig:
    """Interview recorder configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for
                        interview_recorder.yaml in current directory and parent directories.
        """
        if config_path:
            self.config_file = Path(config_path)
        else:
            found = find_config_file()
            if found is None:
                raise ConfigurationError(
                    f"Configuration file not found: {CONFIG_FILENAME} "
                    "(copy interview_recorder.example.yaml to get started)"
                )
            self.config_file = found

        if not self.config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        config = _merge(copy.deepcopy(DEFAULTS), config)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        data_dir = config['storage']['data_directory']
        if not os.path.isabs(data_dir):
            config['storage']['data_directory'] = str(config_dir / data_dir)

        log_path = config['logging']['file_path']
        if not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'audio.sample_rate').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'audio.timeslice_ms')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_supabase_credentials(self) -> Dict[str, str]:
        """Supabase URL and anon key; environment variables take precedence."""
        url = os.environ.get("SUPABASE_URL") or self.get('supabase.url')
        anon_key = os.environ.get("SUPABASE_ANON_KEY") or self.get('supabase.anon_key')
        if not url or not anon_key:
            raise ConfigurationError("Missing Supabase URL or anon key (set SUPABASE_URL and SUPABASE_ANON_KEY)")
        return {"url": url, "anon_key": anon_key}

    def get_admin_emails(self) -> List[str]:
        emails = self.get('access.admin_emails') or []
        if isinstance(emails, str):
            emails = [emails]
        return [email.strip().lower() for email in emails if email and email.strip()]

    def get_audio_constraints(self) -> AudioConstraints:
        return AudioConstraints(
            echo_cancellation=bool(self.get('audio.echo_cancellation', True)),
            noise_suppression=bool(self.get('audio.noise_suppression', True)),
            auto_gain_control=bool(self.get('audio.auto_gain_control', True)),
            sample_rate=int(self.get('audio.sample_rate', 44100)),
            channel_count=int(self.get('audio.channels', 1)),
            device_index=self.get('audio.device_index'),
        )

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
