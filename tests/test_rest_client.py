"""Tests for the REST client's translation of server responses."""

import logging

import httpx
import pytest
from pytest_httpx import HTTPXMock

from fsclient.models import TransferOutcome
from fsclient.rest import RestClient

FILES_API = "http://localhost:8081/v1/files"
STATS_API = "http://localhost:8081/v1/stats"
SIZE_LIMIT_URL = f"{STATS_API}/fileUploadSizeLimit"


@pytest.fixture
def client():
    with RestClient(FILES_API, STATS_API) as rest_client:
        yield rest_client


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / "f2.txt"
    path.write_bytes(b"hello")
    return path


# ============================================================================
# List
# ============================================================================


class TestListFiles:
    """Test RestClient.list_files status mapping."""

    def test_success_surfaces_body_verbatim(self, client, httpx_mock: HTTPXMock, caplog):
        httpx_mock.add_response(method="GET", url=FILES_API, text="f1.txt,f2.txt,f3.txt")

        with caplog.at_level(logging.INFO, logger="fsclient.rest"):
            result = client.list_files()

        assert result.outcome is TransferOutcome.SUCCESS
        assert result.body == "f1.txt,f2.txt,f3.txt"
        assert result.status_code == 200
        assert "Currently uploaded files: f1.txt,f2.txt,f3.txt" in caplog.text

    def test_not_found_means_nothing_uploaded(self, client, httpx_mock: HTTPXMock, caplog):
        httpx_mock.add_response(method="GET", url=FILES_API, status_code=404)

        with caplog.at_level(logging.INFO, logger="fsclient.rest"):
            result = client.list_files()

        assert result.outcome is TransferOutcome.NOT_FOUND
        assert result.body is None
        assert caplog.records[-1].levelno == logging.WARNING
        assert caplog.records[-1].getMessage() == "No files have been uploaded yet"

    @pytest.mark.parametrize(
        "status_code,outcome",
        [
            (500, TransferOutcome.SERVER_ERROR),
            (502, TransferOutcome.UNKNOWN_ERROR),
            (400, TransferOutcome.UNKNOWN_ERROR),
            (409, TransferOutcome.UNKNOWN_ERROR),
        ],
    )
    def test_other_statuses(self, client, httpx_mock: HTTPXMock, status_code, outcome):
        httpx_mock.add_response(method="GET", url=FILES_API, status_code=status_code)
        assert client.list_files().outcome is outcome

    def test_transport_error(self, client, httpx_mock: HTTPXMock, caplog):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=FILES_API)

        with caplog.at_level(logging.ERROR, logger="fsclient.rest"):
            result = client.list_files()

        assert result.outcome is TransferOutcome.TRANSPORT_ERROR
        assert result.status_code is None
        assert "Error fetching list of all uploaded files. Please try again" in caplog.text

    def test_timeout_is_a_transport_error(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=FILES_API)
        assert client.list_files().outcome is TransferOutcome.TRANSPORT_ERROR


# ============================================================================
# Upload
# ============================================================================


class TestUploadFile:
    """Test RestClient.upload_file request shape and status mapping."""

    def test_request_is_single_part_payload_with_expect_continue(
        self, client, httpx_mock: HTTPXMock, local_file
    ):
        seen = {}

        def capture(request: httpx.Request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["expect"] = request.headers.get("expect")
            seen["content_type"] = request.headers.get("content-type")
            seen["body"] = request.read()
            return httpx.Response(200, text="File uploaded successfully")

        httpx_mock.add_callback(capture)

        result = client.upload_file(local_file)

        assert result.outcome is TransferOutcome.SUCCESS
        assert seen["method"] == "POST"
        assert seen["url"] == f"{FILES_API}/f2.txt"
        assert seen["expect"] == "100-continue"
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="payload"' in seen["body"]
        assert b"hello" in seen["body"]

    def test_remote_name_is_percent_encoded(self, client, httpx_mock: HTTPXMock, tmp_path):
        spaced = tmp_path / "my report.txt"
        spaced.write_text("x")
        seen = {}

        def capture(request: httpx.Request):
            seen["raw_path"] = request.url.raw_path
            return httpx.Response(200)

        httpx_mock.add_callback(capture)

        assert client.upload_file(str(spaced)).ok
        assert seen["raw_path"] == b"/v1/files/my%20report.txt"

    @pytest.mark.parametrize(
        "status_code,outcome,message",
        [
            (200, TransferOutcome.SUCCESS, "Successfully uploaded file"),
            (400, TransferOutcome.BAD_REQUEST, "Upload error. Missing 'payload' from multipart body"),
            (409, TransferOutcome.CONFLICT, "already exists on server"),
            (500, TransferOutcome.SERVER_ERROR, "Unexpected server error when uploading file"),
            (424, TransferOutcome.UNKNOWN_ERROR, "Unexpected error when uploading file"),
        ],
    )
    def test_status_mapping(
        self, client, httpx_mock: HTTPXMock, local_file, status_code, outcome, message
    ):
        httpx_mock.add_response(method="POST", url=f"{FILES_API}/f2.txt", status_code=status_code)

        result = client.upload_file(local_file)

        assert result.outcome is outcome
        assert result.status_code == status_code
        assert message in result.message

    def test_too_large_reports_size_limit(self, client, httpx_mock: HTTPXMock, local_file, caplog):
        httpx_mock.add_response(method="POST", url=f"{FILES_API}/f2.txt", status_code=413)
        httpx_mock.add_response(method="GET", url=SIZE_LIMIT_URL, text="7G")

        with caplog.at_level(logging.ERROR, logger="fsclient.rest"):
            result = client.upload_file(local_file)

        assert result.outcome is TransferOutcome.TOO_LARGE
        assert result.message == (
            f"{local_file} is larger than size limit of 7G. Please try again with smaller files"
        )
        assert result.message in caplog.text

    def test_too_large_without_known_limit(self, client, httpx_mock: HTTPXMock, local_file):
        httpx_mock.add_response(method="POST", url=f"{FILES_API}/f2.txt", status_code=413)
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=SIZE_LIMIT_URL)

        result = client.upload_file(local_file)

        assert result.outcome is TransferOutcome.TOO_LARGE
        assert result.message == (
            f"{local_file} is larger than the server's size limit. "
            "Please try again with smaller files"
        )

    def test_too_large_uses_cached_limit(self, client, httpx_mock: HTTPXMock, local_file):
        httpx_mock.add_response(method="GET", url=SIZE_LIMIT_URL, text="10M")
        assert client.get_upload_size_limit() == "10M"

        httpx_mock.add_response(method="POST", url=f"{FILES_API}/f2.txt", status_code=413)
        result = client.upload_file(local_file)

        assert "10M" in result.message
        assert len(httpx_mock.get_requests(url=SIZE_LIMIT_URL)) == 1

    def test_transport_error(self, client, httpx_mock: HTTPXMock, local_file, caplog):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with caplog.at_level(logging.ERROR, logger="fsclient.rest"):
            result = client.upload_file(local_file)

        assert result.outcome is TransferOutcome.TRANSPORT_ERROR
        assert "Error uploading file. Please try again" in caplog.text

    def test_unreadable_local_file_is_reported_not_raised(self, client, tmp_path):
        result = client.upload_file(tmp_path / "does-not-exist.txt")
        assert result.outcome is TransferOutcome.TRANSPORT_ERROR


# ============================================================================
# Delete
# ============================================================================


class TestDeleteFile:
    """Test RestClient.delete_file status mapping."""

    @pytest.mark.parametrize(
        "status_code,outcome,message",
        [
            (200, TransferOutcome.SUCCESS, "Successfully deleted file f1.txt"),
            (404, TransferOutcome.NOT_FOUND, "Did not delete anything. File f1.txt is not present on server"),
            (500, TransferOutcome.SERVER_ERROR, "Unexpected server error when deleting file f1.txt. Please try again"),
            (403, TransferOutcome.UNKNOWN_ERROR, "Unexpected error when deleting file f1.txt. Please try again"),
        ],
    )
    def test_status_mapping(self, client, httpx_mock: HTTPXMock, status_code, outcome, message):
        httpx_mock.add_response(method="DELETE", url=f"{FILES_API}/f1.txt", status_code=status_code)

        result = client.delete_file("f1.txt")

        assert result.outcome is outcome
        assert result.message == message

    def test_transport_error(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        result = client.delete_file("f1.txt")

        assert result.outcome is TransferOutcome.TRANSPORT_ERROR
        assert result.message == "Error deleting file. Please try again"


# ============================================================================
# Upload size limit cache
# ============================================================================


class TestUploadSizeLimit:
    """Test fetching and caching of the server's upload size limit."""

    def test_fetched_once_then_cached(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=SIZE_LIMIT_URL, text="10M")

        assert client.get_upload_size_limit() == "10M"
        assert client.get_upload_size_limit() == "10M"

        assert len(httpx_mock.get_requests()) == 1

    def test_failed_fetch_is_retried_on_next_call(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=SIZE_LIMIT_URL)

        assert client.get_upload_size_limit() == ""

        httpx_mock.add_response(method="GET", url=SIZE_LIMIT_URL, text="10M")

        assert client.get_upload_size_limit() == "10M"
        assert len(httpx_mock.get_requests()) == 2

    def test_error_status_leaves_cache_empty(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=SIZE_LIMIT_URL, status_code=503)
        assert client.get_upload_size_limit() == ""


def test_injected_http_client_is_not_closed():
    http_client = httpx.Client()
    RestClient(FILES_API, STATS_API, http_client=http_client).close()

    assert not http_client.is_closed
    http_client.close()


def test_trailing_slashes_are_stripped():
    with RestClient(FILES_API + "/", STATS_API + "/") as rest_client:
        assert rest_client.files_url == FILES_API
        assert rest_client.stats_url == STATS_API
