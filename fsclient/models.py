"""
Data models for fsclient
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class TransferOutcome(Enum):
    """What a single client operation amounted to"""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TOO_LARGE = "too_large"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    UNKNOWN_ERROR = "unknown_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class TransferResult:
    """Outcome of one request together with the message reported to the user"""
    outcome: TransferOutcome
    message: str
    status_code: Optional[int] = None
    body: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is TransferOutcome.SUCCESS


@dataclass
class ClientConfig:
    """Where the storage server lives"""
    rootUrl: str = "http://localhost:8081"
    version: str = "v1"
    filesApi: str = "files"
    statsApi: str = "stats"
    timeout: float = 30.0

    @property
    def files_url(self) -> str:
        return "/".join([self.rootUrl.rstrip("/"), self.version, self.filesApi])

    @property
    def stats_url(self) -> str:
        return "/".join([self.rootUrl.rstrip("/"), self.version, self.statsApi])
