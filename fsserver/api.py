"""
API routes for fsserver

Two routers: ``/v1/files`` translates requests into StorageService calls and
storage outcomes into status codes, ``/v1/stats`` exposes server settings the
client needs. All bodies are plain text.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Depends
from starlette.datastructures import UploadFile
from fastapi.responses import PlainTextResponse, Response

from .models import COMMON_SERVER_ERROR_MESSAGE_SUFFIX, UPLOAD_PAYLOAD_FIELD
from .storage import (
    StorageService,
    StorageError,
    FileAlreadyStoredError,
    FileNotStoredError,
    InvalidFileNameError,
)

logger = logging.getLogger(__name__)

files_router = APIRouter(prefix="/v1/files", tags=["files"])
stats_router = APIRouter(prefix="/v1/stats", tags=["stats"])


def get_storage(request: Request) -> StorageService:
    """Resolve the storage backend configured on the application"""
    return request.app.state.storage


def _server_error(msg: str, exc: Exception) -> PlainTextResponse:
    logger.error(f"{msg} {exc}")
    return PlainTextResponse(msg + COMMON_SERVER_ERROR_MESSAGE_SUFFIX, status_code=500)


@files_router.get("")
async def list_files(storage: StorageService = Depends(get_storage)):
    """List all uploaded file names; 404 when nothing has been uploaded"""

    logger.debug("Received request to list all uploaded files")
    try:
        names = await storage.list_files()
    except StorageError as e:
        return _server_error("An error occurred when listing uploaded files.", e)

    if not names:
        return Response(status_code=404)

    return PlainTextResponse(",".join(names))


@files_router.post("/{file_name}")
async def upload_file(
    request: Request,
    file_name: str,
    storage: StorageService = Depends(get_storage),
):
    """Upload the multipart 'payload' field under file_name"""

    logger.debug(f"Received request to upload file {file_name}")

    # Parsed by hand so a plain-text part gets the same 400 as a missing one
    async with request.form() as form:
        payload = form.get(UPLOAD_PAYLOAD_FIELD)
        if not isinstance(payload, UploadFile):
            msg = f"Request did not contain a multipart '{UPLOAD_PAYLOAD_FIELD}' body"
            logger.error(msg)
            return PlainTextResponse(msg, status_code=400)

        return await _store_upload(request, file_name, payload, storage)


async def _store_upload(
    request: Request,
    file_name: str,
    payload: UploadFile,
    storage: StorageService,
) -> Response:
    # Bodies without Content-Length get past the middleware, check what was received
    max_bytes = request.app.state.max_upload_bytes
    if payload.size is not None and payload.size > max_bytes:
        limit = request.app.state.config.storage.maxUploadSize
        logger.warning(f"Rejected upload of {file_name}: {payload.size} bytes exceeds {limit}")
        return PlainTextResponse(f"File too large (max: {limit})", status_code=413)

    try:
        await storage.store_file(file_name, payload)
    except FileAlreadyStoredError:
        return PlainTextResponse(f"{file_name} already exists on server", status_code=409)
    except InvalidFileNameError as e:
        logger.error(str(e))
        return PlainTextResponse(str(e), status_code=400)
    except StorageError as e:
        return _server_error("An error occurred during file upload.", e)

    return PlainTextResponse("File uploaded successfully")


@files_router.delete("/{file_name}")
async def delete_file(file_name: str, storage: StorageService = Depends(get_storage)):
    """Delete a previously uploaded file"""

    logger.debug(f"Received request to delete file {file_name}")
    try:
        await storage.delete_file(file_name)
    except FileNotStoredError:
        return PlainTextResponse(f"{file_name} does not exist on server", status_code=404)
    except StorageError as e:
        return _server_error("An error occurred during file deletion.", e)

    return PlainTextResponse("File deleted successfully")


@stats_router.get("/fileUploadSizeLimit", response_class=PlainTextResponse)
async def file_upload_size_limit(request: Request):
    """Return the file upload size limit configured on this server"""
    return request.app.state.config.storage.maxUploadSize


def setup_api_routes(app):
    """Setup API routes"""
    app.include_router(files_router)
    app.include_router(stats_router)
    logger.info("API routes setup complete")
