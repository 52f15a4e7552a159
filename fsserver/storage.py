"""
Storage services for fsserver

``StorageService`` is the backend contract used by the HTTP layer: store,
list and delete named blobs. ``FileSystemStorageService`` keeps every
uploaded file directly under a single root directory.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Set

import aiofiles
import aiofiles.os

from .utils import format_file_size, validate_filename

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StorageError(Exception):
    """Generic storage failure (I/O errors, unreadable root, ...)"""
    pass


class FileAlreadyStoredError(StorageError):
    """Raised when storing a name which is already present"""
    pass


class FileNotStoredError(StorageError):
    """Raised when deleting a name which is not present"""
    pass


class InvalidFileNameError(StorageError):
    """Raised when a file name would address anything but a single file in the root"""
    pass


class StorageService(ABC):
    """Generic storage of named files"""

    @abstractmethod
    async def list_files(self) -> Set[str]:
        """
        Return the names of all stored files

        An empty set means nothing is stored; it is not an error.

        Raises:
            StorageError: If the stored files cannot be enumerated
        """

    @abstractmethod
    async def store_file(self, name: str, source: Any) -> None:
        """
        Persist the content of ``source`` under ``name``

        Args:
            name: Final name of the stored file
            source: Object exposing ``async read(size)``, e.g. an UploadFile

        Raises:
            FileAlreadyStoredError: If ``name`` is already stored
            InvalidFileNameError: If ``name`` is not a plain file name
            StorageError: On any other failure
        """

    @abstractmethod
    async def delete_file(self, name: str) -> None:
        """
        Remove the file stored under ``name``

        Raises:
            FileNotStoredError: If ``name`` is not stored
            StorageError: On any other failure
        """


class FileSystemStorageService(StorageService):
    """Stores uploaded files in a local directory"""

    def __init__(self, root: Path):
        root = Path(root)
        try:
            if not root.exists():
                root.mkdir(parents=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage directory {root}: {e}")

        if not root.is_dir():
            raise StorageError(f"Storage path is not a directory: {root}")

        self.root = root
        logger.info(f"Permanent storage path is at {self.root.resolve()}")

    def _path_for(self, name: str) -> Path:
        if not validate_filename(name):
            raise InvalidFileNameError(f"Invalid file name: {name!r}")
        return self.root / name

    async def list_files(self) -> Set[str]:
        try:
            names = set()
            for entry in await aiofiles.os.listdir(self.root):
                if await aiofiles.os.path.isfile(self.root / entry):
                    names.add(entry)
        except OSError as e:
            raise StorageError(f"Failed to list stored files: {e}")

        logger.debug(f"Returning list of uploaded files: {sorted(names)}")
        return names

    async def store_file(self, name: str, source: Any) -> None:
        destination = self._path_for(name)
        logger.debug(f"Copying upload to {destination}")

        # 'x' fails atomically if the name exists, no check-then-write window
        try:
            target = await aiofiles.open(destination, 'xb')
        except FileExistsError:
            msg = f"There already exists a file called {name}"
            logger.error(msg)
            raise FileAlreadyStoredError(msg)
        except OSError as e:
            raise StorageError(f"Failed to create {destination}: {e}")

        bytes_written = 0
        try:
            try:
                while True:
                    chunk = await source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await target.write(chunk)
                    bytes_written += len(chunk)
            finally:
                await target.close()
        except OSError as e:
            await self._remove_partial(destination)
            raise StorageError(f"Failed to save {name}: {e}")
        except BaseException:
            # Cancelled requests and broken sources must not leave the name taken
            await self._remove_partial(destination)
            raise

        logger.info(f"Stored file {destination} ({format_file_size(bytes_written)})")

    async def delete_file(self, name: str) -> None:
        try:
            path = self._path_for(name)
        except InvalidFileNameError:
            raise FileNotStoredError(f"There is no already uploaded file called {name}")

        logger.debug(f"Attempting to delete uploaded file at location {path}")
        try:
            if not await aiofiles.os.path.isfile(path):
                raise FileNotStoredError(f"There is no already uploaded file called {name}")
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            # Removed concurrently between the check and the unlink
            raise FileNotStoredError(f"There is no already uploaded file called {name}")
        except OSError as e:
            raise StorageError(f"Failed to delete {name}: {e}")

        logger.info(f"Deleted file {path}")

    async def _remove_partial(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.warning(f"Failed to clean up partial file {path}: {e}")
