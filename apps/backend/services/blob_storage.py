"""
Blob Storage
============
Where uploaded file bytes live.

Every upload lands in the local upload directory first. The storage
strategy then decides what location is recorded for the document:
the local path itself, or the URL of a copy in Azure Blob Storage.
"""

import asyncio
import re
import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient

from config import Settings
from exceptions import BlobStorageError, ConfigurationError
from logging_config import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def stored_filename(original_name: str, now_ms: Optional[int] = None) -> str:
    """
    Build the on-disk name for an upload.

    The name is prefixed with the epoch time in milliseconds and has every
    whitespace run replaced by an underscore, e.g.
    ``"my fax.pdf"`` -> ``"1700000000000_my_fax.pdf"``.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    # Client-supplied names may carry directory parts
    base = Path(original_name.replace("\\", "/")).name
    return f"{now_ms}_{_WHITESPACE.sub('_', base)}"


class BaseBlobStorage(ABC):
    """
    Storage strategy bound to an explicit upload directory.

    Subclasses implement ``store``; receiving the upload onto local disk
    is shared.
    """

    name: str = "base"

    def __init__(self, upload_dir: Union[str, Path]):
        self.upload_dir = Path(upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save_upload(self, original_name: str, stream: BinaryIO) -> Path:
        """
        Write an incoming file stream into the upload directory.

        Args:
            original_name: File name as sent by the client.
            stream: Readable binary stream with the file content.

        Returns:
            Absolute path of the written file.
        """
        path = self.upload_dir / stored_filename(original_name)
        with open(path, "wb") as dest:
            shutil.copyfileobj(stream, dest)
        logger.info("Upload written to disk", path=str(path))
        return path

    @abstractmethod
    async def store(self, local_path: Path, suggested_name: str) -> str:
        """
        Persist a file that already sits in the upload directory.

        Args:
            local_path: Path of the received file.
            suggested_name: Name to store the file under.

        Returns:
            Location string recorded as the document's ``blob_url``.
        """


class LocalBlobStorage(BaseBlobStorage):
    """The received file on local disk is the stored file."""

    name = "local"

    async def store(self, local_path: Path, suggested_name: str) -> str:
        return str(local_path)


class AzureBlobStorage(BaseBlobStorage):
    """
    Copies uploads into an Azure Blob Storage container.

    The SDK client is synchronous, so uploads run in the default executor.
    """

    name = "azure"

    def __init__(
        self,
        upload_dir: Union[str, Path],
        connection_string: str,
        container_name: str = "faxes",
        service_client: Optional[BlobServiceClient] = None,
    ):
        super().__init__(upload_dir)
        if not connection_string and service_client is None:
            raise ConfigurationError(
                "Azure Blob Storage requires a connection string",
                setting="AZURE_STORAGE_CONNECTION_STRING",
            )
        self.container_name = container_name
        self._connection_string = connection_string
        self._service_client = service_client
        self._container_ready = False

    def _client(self) -> BlobServiceClient:
        # Built on first use; a malformed connection string fails the upload
        if self._service_client is None:
            self._service_client = BlobServiceClient.from_connection_string(
                self._connection_string
            )
        return self._service_client

    def _ensure_container(self) -> None:
        if self._container_ready:
            return
        try:
            self._client().create_container(self.container_name)
            logger.info("Created blob container", container=self.container_name)
        except ResourceExistsError:
            pass
        self._container_ready = True

    def _upload(self, local_path: Path, blob_name: str) -> str:
        self._ensure_container()
        blob_client = self._client().get_blob_client(
            container=self.container_name,
            blob=blob_name,
        )
        with open(local_path, "rb") as data:
            blob_client.upload_blob(data, overwrite=True)
        return blob_client.url

    async def store(self, local_path: Path, suggested_name: str) -> str:
        """
        Upload the file under ``suggested_name`` and return its blob URL.

        Raises:
            BlobStorageError: On any SDK or file access failure.
        """
        loop = asyncio.get_event_loop()
        try:
            url = await loop.run_in_executor(
                None,
                lambda: self._upload(local_path, suggested_name)
            )
        except (AzureError, OSError, ValueError) as e:
            raise BlobStorageError(
                f"Failed to upload {suggested_name} to Azure Blob Storage",
                container=self.container_name,
                blob_name=suggested_name,
                original_error=e,
            ) from e

        logger.info(
            "Uploaded file to Azure Blob Storage",
            container=self.container_name,
            blob_name=suggested_name,
        )
        return url


def create_blob_storage(settings: Settings) -> BaseBlobStorage:
    """Create the storage strategy selected by configuration presence."""
    if settings.blob_storage_enabled:
        return AzureBlobStorage(
            upload_dir=settings.upload_dir,
            connection_string=settings.azure_storage_connection_string,
            container_name=settings.azure_storage_container,
        )
    return LocalBlobStorage(upload_dir=settings.upload_dir)
