"""
REST client for the file storage server

Each operation issues exactly one blocking request and converts whatever
happens (a status code or a transport failure) into a TransferResult. The
result is also reported once through this module's logger, which is what
the command line user sees. Nothing is raised to the caller.
"""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

import httpx

from .models import TransferOutcome, TransferResult

logger = logging.getLogger(__name__)

UPLOAD_PAYLOAD_FIELD = "payload"
FILE_UPLOAD_SIZE_LIMIT_ENDPOINT = "fileUploadSizeLimit"

# httpx raises InvalidURL outside of its HTTPError hierarchy
_TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class RestClient:
    """Client for the /files and /stats APIs of the file storage server.

    Example:
        with RestClient(
            "http://localhost:8081/v1/files",
            "http://localhost:8081/v1/stats",
        ) as client:
            result = client.upload_file("report.txt")
            if result.outcome is TransferOutcome.CONFLICT:
                ...
    """

    def __init__(
        self,
        files_url: str,
        stats_url: str,
        *,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """Create a new client.

        Args:
            files_url: Full URL of the files API, e.g. http://host:8081/v1/files
            stats_url: Full URL of the stats API, e.g. http://host:8081/v1/stats
            timeout: Request timeout in seconds, used when no http_client is given
            http_client: Pre-configured httpx client; the caller keeps ownership
        """
        self._files_url = files_url.rstrip("/")
        self._stats_url = stats_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout)
        # Empty until the first successful fetch
        self._upload_size_limit = ""

    @property
    def files_url(self) -> str:
        return self._files_url

    @property
    def stats_url(self) -> str:
        return self._stats_url

    def list_files(self) -> TransferResult:
        """Fetch the comma-separated list of uploaded files.

        Expected server codes:
            200 - list returned, body surfaced verbatim
            404 - no files have been uploaded yet
            500 - server-side failure while listing
        """
        logger.debug("Requesting list of all uploaded files")
        try:
            response = self._client.get(self._files_url)
        except _TRANSPORT_ERRORS as e:
            logger.debug(f"List request failed: {e!r}")
            return self._report(
                TransferOutcome.TRANSPORT_ERROR,
                "Error fetching list of all uploaded files. Please try again",
            )

        status = response.status_code
        if status == 200:
            body = response.text
            return self._report(
                TransferOutcome.SUCCESS,
                f"Currently uploaded files: {body}",
                status,
                body=body,
            )
        if status == 404:
            return self._report(
                TransferOutcome.NOT_FOUND,
                "No files have been uploaded yet",
                status,
                level=logging.WARNING,
            )
        if status == 500:
            return self._report(
                TransferOutcome.SERVER_ERROR,
                "Unexpected server error when listing uploaded files. Please try again",
                status,
            )
        return self._report(
            TransferOutcome.UNKNOWN_ERROR,
            "Unexpected error when listing uploaded files. Please try again",
            status,
        )

    def upload_file(self, local_path: Union[str, Path]) -> TransferResult:
        """Upload a local file, named on the server after its base name.

        The caller checks that the file exists. Expected server codes:
            200 - uploaded
            400 - multipart 'payload' missing from the request
            409 - a file with that name is already stored
            413 - larger than the server's upload size limit
            500 - server-side failure while storing
        """
        logger.debug(f"Requesting to upload the file {local_path}")
        path = Path(local_path)
        # Tolerates spaces and other special characters in the name
        remote_name = quote(path.name, safe="")

        try:
            with open(path, "rb") as f:
                response = self._client.post(
                    f"{self._files_url}/{remote_name}",
                    files={UPLOAD_PAYLOAD_FIELD: (path.name, f, "application/octet-stream")},
                    headers={"Expect": "100-continue"},
                )
        except (*_TRANSPORT_ERRORS, OSError) as e:
            logger.debug(f"Upload request failed: {e!r}")
            return self._report(
                TransferOutcome.TRANSPORT_ERROR, "Error uploading file. Please try again"
            )

        status = response.status_code
        if status == 200:
            return self._report(
                TransferOutcome.SUCCESS, f"Successfully uploaded file {local_path}", status
            )
        if status == 400:
            return self._report(
                TransferOutcome.BAD_REQUEST,
                "Upload error. Missing 'payload' from multipart body",
                status,
            )
        if status == 409:
            return self._report(
                TransferOutcome.CONFLICT,
                f"Upload error. {local_path} already exists on server",
                status,
            )
        if status == 413:
            size_limit = self.get_upload_size_limit()
            limit_text = f"size limit of {size_limit}" if size_limit else "the server's size limit"
            return self._report(
                TransferOutcome.TOO_LARGE,
                f"{local_path} is larger than {limit_text}. "
                "Please try again with smaller files",
                status,
            )
        if status == 500:
            return self._report(
                TransferOutcome.SERVER_ERROR,
                f"Unexpected server error when uploading file {local_path}. Please try again",
                status,
            )
        return self._report(
            TransferOutcome.UNKNOWN_ERROR,
            f"Unexpected error when uploading file {local_path}. Please try again",
            status,
        )

    def delete_file(self, name: str) -> TransferResult:
        """Delete a previously uploaded file; it need not exist locally.

        Expected server codes:
            200 - deleted
            404 - no such file on the server
            500 - server-side failure while deleting
        """
        logger.debug(f"Requesting for deletion {name}")
        try:
            response = self._client.delete(f"{self._files_url}/{quote(name, safe='')}")
        except _TRANSPORT_ERRORS as e:
            logger.debug(f"Delete request failed: {e!r}")
            return self._report(
                TransferOutcome.TRANSPORT_ERROR, "Error deleting file. Please try again"
            )

        status = response.status_code
        if status == 200:
            return self._report(
                TransferOutcome.SUCCESS, f"Successfully deleted file {name}", status
            )
        if status == 404:
            return self._report(
                TransferOutcome.NOT_FOUND,
                f"Did not delete anything. File {name} is not present on server",
                status,
            )
        if status == 500:
            return self._report(
                TransferOutcome.SERVER_ERROR,
                f"Unexpected server error when deleting file {name}. Please try again",
                status,
            )
        return self._report(
            TransferOutcome.UNKNOWN_ERROR,
            f"Unexpected error when deleting file {name}. Please try again",
            status,
        )

    def get_upload_size_limit(self) -> str:
        """Return the server's upload size limit, fetching it on first use.

        A failed fetch leaves the cache empty, so the next call tries again.
        Returns an empty string while the limit is unknown.
        """
        if not self._upload_size_limit:
            try:
                response = self._client.get(
                    f"{self._stats_url}/{FILE_UPLOAD_SIZE_LIMIT_ENDPOINT}"
                )
                response.raise_for_status()
                self._upload_size_limit = response.text.strip()
            except _TRANSPORT_ERRORS as e:
                logger.debug(
                    f"Error contacting the server to get the file upload size limit ({e!r}). "
                    "The server still rejects files above its configured limit"
                )
        return self._upload_size_limit

    def close(self) -> None:
        """Close the underlying connection pool if this client created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _report(
        self,
        outcome: TransferOutcome,
        message: str,
        status_code: Optional[int] = None,
        *,
        body: Optional[str] = None,
        level: Optional[int] = None,
    ) -> TransferResult:
        if level is None:
            level = logging.INFO if outcome is TransferOutcome.SUCCESS else logging.ERROR
        logger.log(level, message)
        return TransferResult(outcome=outcome, message=message, status_code=status_code, body=body)
