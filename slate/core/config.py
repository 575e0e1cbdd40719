"""Configuration Manager component."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load .env file from current directory or parent directories
load_dotenv()


DEFAULT_DATA_DIR = Path.home() / ".slate"


@dataclass
class Config:
    """Application configuration."""
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    db_path: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "clipboard.db")
    poll_interval: float = 0.5
    preview_timeout_ms: int = 3000
    capture_images: bool = True
    web_host: str = "127.0.0.1"
    web_port: int = 5757


DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.yaml"


class ConfigError(Exception):
    """Exception raised for configuration errors."""
    pass


def _validate(config: Config) -> None:
    if config.poll_interval <= 0:
        raise ConfigError(f"capture.poll_interval must be positive, got {config.poll_interval}")
    if config.preview_timeout_ms <= 0:
        raise ConfigError(f"preview.timeout_ms must be positive, got {config.preview_timeout_ms}")
    if not 0 < config.web_port < 65536:
        raise ConfigError(f"web.port must be between 1 and 65535, got {config.web_port}")


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file. Uses default if None.

    Returns:
        Config object with loaded settings.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = Config()

    # Load from file if exists
    if path.exists():
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        try:
            # Storage settings
            storage = data.get('storage', {})
            if 'data_dir' in storage:
                config.data_dir = Path(storage['data_dir']).expanduser()
                config.db_path = config.data_dir / "clipboard.db"
            if 'db_path' in storage:
                config.db_path = Path(storage['db_path']).expanduser()

            # Capture settings
            capture = data.get('capture', {})
            if 'poll_interval' in capture:
                config.poll_interval = float(capture['poll_interval'])
            if 'images' in capture:
                config.capture_images = bool(capture['images'])

            # Preview settings
            preview = data.get('preview', {})
            if 'timeout_ms' in preview:
                config.preview_timeout_ms = int(preview['timeout_ms'])

            # Web settings
            web = data.get('web', {})
            if 'host' in web:
                config.web_host = str(web['host'])
            if 'port' in web:
                config.web_port = int(web['port'])
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid value in config file {path}: {e}") from e

    # Environment overrides
    db_path = os.environ.get('SLATE_DB_PATH', '')
    if db_path:
        config.db_path = Path(db_path).expanduser()

    timeout = os.environ.get('SLATE_PREVIEW_TIMEOUT_MS', '')
    if timeout:
        try:
            config.preview_timeout_ms = int(timeout)
        except ValueError as e:
            raise ConfigError(f"SLATE_PREVIEW_TIMEOUT_MS must be an integer, got {timeout!r}") from e

    _validate(config)
    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Config object to save.
        config_path: Path to save config. Uses default if None.

    Raises:
        ConfigError: If a setting is out of range.
    """
    _validate(config)
    path = config_path or DEFAULT_CONFIG_PATH

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        'storage': {
            'data_dir': str(config.data_dir),
            'db_path': str(config.db_path),
        },
        'capture': {
            'poll_interval': config.poll_interval,
            'images': config.capture_images,
        },
        'preview': {
            'timeout_ms': config.preview_timeout_ms,
        },
        'web': {
            'host': config.web_host,
            'port': config.web_port,
        },
    }

    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False)
