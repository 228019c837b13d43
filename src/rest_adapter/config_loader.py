"""
TOML configuration for a REST client: base address, timeout, token variable and logging
"""

import os
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any


DEFAULT_TIMEOUT = 60


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete"""
    pass


class EnvironmentError(Exception):
    """Raised when required environment variables are missing"""
    pass


@dataclass
class APIConfig:
    """Connection settings for one API, as read from its TOML file"""
    name: str
    base_url: str
    authentication: Dict[str, Any]
    timeout: float = DEFAULT_TIMEOUT
    logging: Dict[str, Any] = field(default_factory=dict)


class ConfigLoader:
    """Reads client TOML files and resolves the token they reference"""

    REQUIRED_SECTIONS = {
        'api': ['name', 'base_url'],
        'authentication': ['type', 'token_env']
    }

    SUPPORTED_AUTH_TYPES = {'bearer_token'}

    @staticmethod
    def load_toml_config(config_path: Path) -> APIConfig:
        """
        Read [api], [authentication] and the optional [logging] section into an APIConfig

        Raises:
            FileNotFoundError: If config_path does not exist
            ConfigurationError: On invalid TOML, missing keys or an unsupported auth type
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'rb') as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {config_path}: {e}")

        ConfigLoader._validate_required_sections(config_data)

        auth_type = config_data['authentication']['type']
        if auth_type not in ConfigLoader.SUPPORTED_AUTH_TYPES:
            raise ConfigurationError(f"Unsupported authentication type: {auth_type}")

        return APIConfig(
            name=config_data['api']['name'],
            base_url=config_data['api']['base_url'],
            authentication=config_data['authentication'],
            timeout=config_data['api'].get('timeout', DEFAULT_TIMEOUT),
            logging=config_data.get('logging', {})
        )

    @staticmethod
    def _validate_required_sections(config_data: Dict[str, Any]) -> None:
        """Collect every missing section or key and report them in one ConfigurationError"""
        missing = []
        for section, keys in ConfigLoader.REQUIRED_SECTIONS.items():
            if section not in config_data:
                missing.append(f"Section [{section}]")
                continue
            missing.extend(f"Key '{key}' in section [{section}]" for key in keys if key not in config_data[section])

        if missing:
            raise ConfigurationError(f"Missing required configuration items: {', '.join(missing)}")

    @staticmethod
    def validate_environment_variables(config: APIConfig) -> bool:
        """
        Check that every *_env key of [authentication] names a variable that is set

        Raises:
            EnvironmentError: Naming all unset variables
        """
        unset = [
            name for key, name in config.authentication.items()
            if key.endswith('_env') and isinstance(name, str) and not os.getenv(name)
        ]
        if unset:
            raise EnvironmentError(f"Missing required environment variables: {', '.join(unset)}")

        return True

    @staticmethod
    def get_environment_value(env_var_name: str) -> str:
        """Read a token variable, raising EnvironmentError when it is unset"""
        value = os.getenv(env_var_name)
        if value is None:
            raise EnvironmentError(f"Environment variable '{env_var_name}' is not set")
        return value
