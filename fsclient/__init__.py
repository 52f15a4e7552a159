"""
fsclient: command line client for the file storage server
"""

from .models import ClientConfig, TransferOutcome, TransferResult
from .rest import RestClient

__version__ = "1.0.0"

__all__ = [
    "ClientConfig",
    "RestClient",
    "TransferOutcome",
    "TransferResult",
]
