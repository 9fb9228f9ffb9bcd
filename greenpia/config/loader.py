"""
Configuration Loader for Greenpia

Loads configuration from YAML file with environment variable interpolation.
Follows Fast Fail principle - crashes immediately if config is invalid.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel


class Config(BaseModel):
    """
    Master configuration model for Greenpia

    Values come straight from config/config.yaml. Critical keys are checked
    by _validate_config() so a broken file fails at startup.
    """

    # Raw config data (loaded from YAML)
    _raw_config: Dict[str, Any] = {}

    class Config:
        """Pydantic config"""
        arbitrary_types_allowed = True
        extra = "allow"  # Allow extra fields from YAML

    def __init__(self, **data):
        """Initialize with raw config data"""
        super().__init__(**data)
        self._raw_config = data

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get nested config value using dot notation

        Example:
            config.get('rotation.move_in_grace_months')  # Returns 12
            config.get('api.cors_origins')  # Returns ['http://localhost:5173', ...]

        Args:
            key_path: Dot-separated path to config key
            default: Default value if key not found

        Returns:
            Config value or default
        """
        keys = key_path.split('.')
        value = self._raw_config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_required(self, key_path: str) -> Any:
        """
        Get required config value - raises error if missing

        Args:
            key_path: Dot-separated path to config key

        Returns:
            Config value

        Raises:
            ValueError: If key not found
        """
        value = self.get(key_path)
        if value is None:
            raise ValueError(f"Required config key not found: {key_path}")
        return value


def _interpolate_env_vars(config_str: str) -> str:
    """
    Replace ${VAR_NAME} placeholders with environment variables

    Supports:
    - ${VAR_NAME} - Required, crashes if missing
    - ${VAR_NAME:-} - Optional, empty string if missing
    - ${VAR_NAME:-default} - Optional, uses default if missing

    Args:
        config_str: YAML config as string

    Returns:
        Config string with env vars interpolated

    Raises:
        ValueError: If required env var is missing
    """
    # Pattern matches: ${VAR} or ${VAR:-} or ${VAR:-default}
    pattern = re.compile(r'\$\{(\w+)(:-([^}]*))?\}')

    def replacer(match):
        var_name = match.group(1)
        has_default = match.group(2) is not None
        default_value = match.group(3) if match.group(3) else ""

        value = os.getenv(var_name)

        if value is None:
            if has_default:
                return default_value
            else:
                raise ValueError(
                    f"Environment variable '{var_name}' is required but not set. "
                    f"Check your .env file or environment."
                )

        return value

    return pattern.sub(replacer, config_str)


# Global config cache to avoid duplicate loads
_cached_config: Config | None = None


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load Greenpia configuration from YAML file (cached)

    Process:
    1. Return cached config if available
    2. Load .env file (if exists)
    3. Read YAML config
    4. Interpolate environment variables (${VAR})
    5. Parse and validate YAML
    6. Cache and return Config object

    Args:
        config_path: Path to YAML config file. Defaults to the
            GREENPIA_CONFIG environment variable, then config/config.yaml.

    Returns:
        Config object with loaded configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid or env vars missing
        yaml.YAMLError: If YAML parsing fails

    Example:
        >>> from greenpia.config import load_config
        >>> config = load_config()
        >>> config.get('rotation.fiscal_year_start_month')
        4
    """
    global _cached_config

    # Return cached config if available
    if _cached_config is not None:
        return _cached_config

    # 1. Load .env file (if exists)
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    # 2. Read YAML config
    if config_path is None:
        config_path = os.getenv('GREENPIA_CONFIG', 'config/config.yaml')
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}"
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        config_str = f.read()

    # 3. Interpolate environment variables
    try:
        config_str = _interpolate_env_vars(config_str)
    except ValueError as e:
        raise ValueError(
            f"Failed to interpolate environment variables in {config_path}: {e}"
        ) from e

    # 4. Parse YAML
    try:
        config_dict = yaml.safe_load(config_str)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(
            f"Failed to parse YAML config {config_path}: {e}"
        ) from e

    if not isinstance(config_dict, dict):
        raise ValueError(
            f"Config file {config_path} must contain a YAML dictionary, "
            f"got {type(config_dict)}"
        )

    # 5. Create Config object
    config = Config(**config_dict)

    # 6. Validate critical settings (Fast Fail)
    _validate_config(config)

    # 7. Cache for future calls
    _cached_config = config

    return config


def _validate_config(config: Config) -> None:
    """
    Validate critical configuration settings

    Raises ValueError if any critical settings are invalid.

    Args:
        config: Loaded configuration

    Raises:
        ValueError: If validation fails
    """
    # Validate database config
    if not config.get('database.url'):
        raise ValueError("database.url is required")

    # Validate rotation rules
    grace_months = config.get('rotation.move_in_grace_months')
    if not isinstance(grace_months, int) or isinstance(grace_months, bool) or grace_months <= 0:
        raise ValueError(
            f"rotation.move_in_grace_months must be a positive integer, got '{grace_months}'"
        )

    start_month = config.get('rotation.fiscal_year_start_month')
    if not isinstance(start_month, int) or not 1 <= start_month <= 12:
        raise ValueError(
            f"rotation.fiscal_year_start_month must be between 1 and 12, got '{start_month}'"
        )

    # Validate session signing key
    if not config.get('auth.secret_key'):
        raise ValueError("auth.secret_key must be set (sessions cannot be signed)")


# Convenience function for quick testing
if __name__ == "__main__":
    """Quick test of config loader"""
    try:
        config = load_config()
        print("\n" + "="*60)
        print("CONFIGURATION LOADED SUCCESSFULLY")
        print("="*60)
        print(f"\nSystem: {config.get('system.name')} v{config.get('system.version')}")
        print(f"Database: {config.get('database.url')}")
        print(f"Fiscal year starts in month {config.get('rotation.fiscal_year_start_month')}")
        print("\n" + "="*60)
    except Exception as e:
        print(f"\n[ERROR] Configuration loading failed:")
        print(f"   {e}")
        raise
