"""
Configuration loading for fsserver
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any

from .models import Config, ServerConfig, StorageConfig, LoggingConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """Reads the server configuration from a YAML file"""

    def __init__(self, config_path: str = "fsserver.yaml"):
        self.config_path = Path(config_path).resolve()

    def load_config(self) -> Config:
        """Load configuration from YAML file"""
        if not self.config_path.exists():
            logger.warning(f"Configuration file not found: {self.config_path}, using defaults")
            return Config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration: {e}")
            return Config()

        config = self._parse_config(data)
        logger.info(f"Configuration loaded from {self.config_path}")
        return config

    def _parse_config(self, data: Dict[str, Any]) -> Config:
        """Parse configuration data into Config object"""

        server_data = data.get('server') or {}
        server = ServerConfig(
            addr=server_data.get('addr', '0.0.0.0'),
            port=int(server_data.get('port', 8081))
        )

        storage_data = data.get('storage') or {}
        storage = StorageConfig(
            uploadedFilesPath=Path(storage_data.get('uploadedFilesPath', 'data-server')),
            maxUploadSize=str(storage_data.get('maxUploadSize', '10M')).strip()
        )

        logging_data = data.get('logging') or {}
        logging_config = LoggingConfig(
            json=logging_data.get('json', False),
            file=logging_data.get('file', ''),
            level=logging_data.get('level', 'INFO'),
            max_size_mb=logging_data.get('max_size_mb', 100),
            backup_count=logging_data.get('backup_count', 5)
        )

        return Config(
            server=server,
            storage=storage,
            logging=logging_config
        )


def load_config(config_path: str = "fsserver.yaml") -> Config:
    """Load configuration from file"""
    return ConfigManager(config_path).load_config()
