"""
Configuration loading for fsclient
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .models import ClientConfig

logger = logging.getLogger(__name__)

# Overrides fsserver.api.rootUrl from the configuration file
ROOT_URL_ENV_VAR = "FSSERVER_ROOT_URL"


def _parse_config(data: Dict[str, Any]) -> ClientConfig:
    api_data = (data.get('fsserver') or {}).get('api') or {}
    defaults = ClientConfig()
    return ClientConfig(
        rootUrl=str(api_data.get('rootUrl', defaults.rootUrl)),
        version=str(api_data.get('version', defaults.version)),
        filesApi=str(api_data.get('filesApi', defaults.filesApi)),
        statsApi=str(api_data.get('statsApi', defaults.statsApi)),
        timeout=float(api_data.get('timeout', defaults.timeout)),
    )


def load_config(config_path: str = "fsclient.yaml") -> ClientConfig:
    """Load client configuration from a YAML file

    A missing file yields the defaults. ``$FSSERVER_ROOT_URL`` wins over the
    file's rootUrl so the same configuration can target another server.
    """
    path = Path(config_path)
    data: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration from {path}: {e}")
    else:
        logger.debug(f"Configuration file not found: {path}, using defaults")

    config = _parse_config(data)

    root_url_override = os.environ.get(ROOT_URL_ENV_VAR)
    if root_url_override:
        config.rootUrl = root_url_override

    logger.info(f"Will be contacting the file storage server at {config.rootUrl}")
    return config
