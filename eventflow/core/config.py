"""Configuration management system"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from eventflow.utils.logger import get_logger

logger = get_logger(__name__)


class Config:
    """Configuration manager for the application"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_path: Path to config YAML file. If None, uses default config/config.yaml
        """
        # Project root directory
        self.project_root = Path(__file__).parent.parent.parent

        # Load environment variables from project root
        env_path = self.project_root / '.env'
        load_dotenv(dotenv_path=env_path)

        if env_path.exists():
            logger.info(f"✅ Loaded environment variables from: {env_path}")
        else:
            logger.debug(f".env file not found at: {env_path}")

        if config_path is None:
            config_path = self.project_root / "config" / "config.yaml"

        self.config_path = Path(config_path)
        self._config = self._load_yaml_config()

        self._substitute_env_vars(self._config)

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def _substitute_env_vars(self, config: Any) -> None:
        """
        Recursively substitute environment variables in config
        Format: ${VAR_NAME:default_value} or ${VAR_NAME}
        """
        if isinstance(config, dict):
            for key, value in config.items():
                if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
                    config[key] = self._resolve_env_var(value)
                elif isinstance(value, (dict, list)):
                    self._substitute_env_vars(value)
        elif isinstance(config, list):
            for index, item in enumerate(config):
                if isinstance(item, str) and item.startswith('${') and item.endswith('}'):
                    config[index] = self._resolve_env_var(item)
                else:
                    self._substitute_env_vars(item)

    @staticmethod
    def _resolve_env_var(value: str) -> Optional[str]:
        var_content = value[2:-1]  # Remove ${ and }
        if ':' in var_content:
            var_name, default = var_content.split(':', 1)
        else:
            var_name, default = var_content, None
        return os.getenv(var_name, default)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-separated key path

        Args:
            key_path: Dot-separated path (e.g., 'mongodb.database')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    @property
    def mongodb(self) -> Dict[str, Any]:
        """Get MongoDB connection settings"""
        return self.get('mongodb', {}) or {}

    @property
    def api(self) -> Dict[str, Any]:
        """Get API server settings"""
        return self.get('api', {}) or {}

    @property
    def graphql(self) -> Dict[str, Any]:
        """Get GraphQL limits"""
        return self.get('graphql', {}) or {}

    @property
    def cors_origins(self) -> List[str]:
        """Get allowed CORS origins as a list"""
        origins = self.get('api.cors.origins', 'http://localhost:3000')
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(',')]
        return [o for o in origins if o] or ['http://localhost:3000']

    @property
    def pagination_max_limit(self) -> Optional[int]:
        """Get the hard ceiling on page size (None disables it)"""
        value = self.get('pagination.max_limit', 100)
        if value in (None, '', 0, '0'):
            return None
        return int(value)

    @property
    def log_level(self) -> str:
        """Get log level"""
        return self.get('logging.level', 'INFO')

    @property
    def log_file(self) -> Optional[str]:
        """Get optional log file path"""
        return self.get('logging.file') or None

    @property
    def app_env(self) -> str:
        """Get application environment"""
        return self.get('app.environment', 'development')


# Global config instance
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    Get global config instance (singleton)

    Args:
        config_path: Path to config file (only used on first call)

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        _config_instance = Config(config_path)

    return _config_instance
