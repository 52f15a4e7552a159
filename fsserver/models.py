"""
Data models and constants for fsserver
"""

from dataclasses import dataclass, field
from pathlib import Path


# Name of the multipart field carrying the uploaded bytes
UPLOAD_PAYLOAD_FIELD = "payload"

# Appended to every 500 response body
COMMON_SERVER_ERROR_MESSAGE_SUFFIX = " Please try again"


@dataclass
class ServerConfig:
    """Server configuration"""
    addr: str = "0.0.0.0"
    port: int = 8081


@dataclass
class StorageConfig:
    """Storage configuration"""
    uploadedFilesPath: Path = Path("data-server")
    maxUploadSize: str = "10M"

    def __post_init__(self):
        if isinstance(self.uploadedFilesPath, str):
            self.uploadedFilesPath = Path(self.uploadedFilesPath)


@dataclass
class LoggingConfig:
    """Logging configuration"""
    json: bool = False
    file: str = ""
    level: str = "INFO"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container"""
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
