"""
Main application factory for fsserver
"""

import argparse
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from . import __version__
from .config import load_config
from .models import Config, LoggingConfig
from .middleware import setup_middleware
from .api import setup_api_routes
from .storage import FileSystemStorageService, StorageService
from .utils import parse_size_to_bytes


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FSSERVER_CONFIG"
DEFAULT_CONFIG_PATH = "fsserver.yaml"

_TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_JSON_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","msg":"%(message)s"}'


def _log_handlers(log_config: LoggingConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_config.file:
        log_file = Path(log_config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=log_config.max_size_mb * 1024 * 1024,
                backupCount=log_config.backup_count,
                encoding='utf-8'
            )
        )

    return handlers


def setup_logging(config: Config):
    """Route all loggers to stdout and, if configured, a rotating log file"""
    log_config = config.logging
    formatter = logging.Formatter(_JSON_FORMAT if log_config.json else _TEXT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_config.level.upper(), logging.INFO))
    root_logger.handlers.clear()

    for handler in _log_handlers(log_config):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def create_app(config_path: Optional[str] = None, storage: Optional[StorageService] = None) -> FastAPI:
    """Create FastAPI application

    Args:
        config_path: YAML configuration file, defaults to $FSSERVER_CONFIG or fsserver.yaml
        storage: Storage backend; a FileSystemStorageService over the configured
            root is created when omitted

    Raises:
        ValueError: If storage.maxUploadSize cannot be parsed
        StorageError: If the storage root cannot be created or is not a directory
    """

    config = load_config(config_path or os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    setup_logging(config)

    max_upload_bytes = parse_size_to_bytes(config.storage.maxUploadSize)
    if storage is None:
        storage = FileSystemStorageService(config.storage.uploadedFilesPath)

    debug = bool(os.getenv("FSSERVER_DEBUG"))
    app = FastAPI(
        title="File Storage Server",
        description="Upload, list and delete named files",
        version=__version__,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
    )

    app.state.config = config
    app.state.storage = storage
    app.state.max_upload_bytes = max_upload_bytes

    setup_middleware(app)
    setup_api_routes(app)

    @app.get("/healthz")
    async def health_check():
        return {"ok": True, "version": __version__}

    @app.on_event("startup")
    async def announce_startup():
        logger.info(
            f"fsserver {__version__} listening on {config.server.addr}:{config.server.port}, "
            f"upload size limit {config.storage.maxUploadSize}"
        )

    @app.on_event("shutdown")
    async def announce_shutdown():
        logger.info("fsserver stopped")

    return app


def main():
    """Entry point for the file-storage-server executable"""
    parser = argparse.ArgumentParser(description="File storage server")
    parser.add_argument(
        "--config", "-c",
        default=os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH),
        help="Configuration file path (default: %(default)s)"
    )
    parser.add_argument("--host", default=None, help="Address to bind to, overrides server.addr")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to, overrides server.port")
    parser.add_argument("--debug", action="store_true", help="Serve the interactive API docs")
    args = parser.parse_args()

    if args.debug:
        os.environ["FSSERVER_DEBUG"] = "1"

    # uvicorn builds the app through the factory, which reads the path from the environment
    os.environ[CONFIG_ENV_VAR] = args.config
    config = load_config(args.config)

    uvicorn.run(
        "fsserver.main:create_app",
        factory=True,
        host=args.host or config.server.addr,
        port=args.port or config.server.port,
        access_log=False,
        server_header=False,
    )


if __name__ == "__main__":
    main()
