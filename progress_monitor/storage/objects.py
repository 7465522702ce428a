"""Object storage collaborator for rendered snapshot rasters.

``ObjectStore.upload(path, data, content_type)`` stores bytes and returns
a publicly resolvable URL. Uploads never overwrite: a path collision is
an error, so repeated captures always produce new objects.

``AzureBlobObjectStore`` implements the protocol on Azure Blob Storage.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from progress_monitor.core.exceptions import PipelineError

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("progress_monitor.storage.objects")


class ObjectStoreError(PipelineError):
    """Raised when a snapshot upload fails."""

    default_stage = "upload_snapshot"
    default_code = "OBJECT_UPLOAD_FAILED"


class ObjectStore(Protocol):
    """Write-once object storage used by the real imagery providers."""

    def upload(self, path: str, data: bytes, content_type: str) -> str: ...


class AzureBlobObjectStore:
    """``ObjectStore`` backed by a single Azure Blob Storage container.

    Args:
        blob_service_client: An ``azure.storage.blob.BlobServiceClient``.
        container: Target container name.
        public_base_url: Optional URL prefix (e.g. a CDN endpoint) used to
            build returned URLs instead of the raw blob URL.
    """

    def __init__(
        self,
        blob_service_client: BlobServiceClient,
        container: str,
        *,
        public_base_url: str = "",
    ) -> None:
        self._service = blob_service_client
        self._container = container
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def container(self) -> str:
        return self._container

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload *data* to *path* and return its public URL.

        Raises:
            ObjectStoreError: If the blob already exists or the upload fails.
        """
        from azure.core.exceptions import AzureError, ResourceExistsError
        from azure.storage.blob import ContentSettings

        blob_client = self._service.get_blob_client(container=self._container, blob=path)
        try:
            blob_client.upload_blob(
                data,
                overwrite=False,
                content_settings=ContentSettings(content_type=content_type),
            )
        except ResourceExistsError as exc:
            msg = f"Refusing to overwrite existing snapshot blob {self._container}/{path}"
            raise ObjectStoreError(msg, code="OBJECT_ALREADY_EXISTS") from exc
        except AzureError as exc:
            msg = f"Failed to upload snapshot to {self._container}/{path}: {exc}"
            raise ObjectStoreError(msg, retryable=True) from exc

        url = f"{self._public_base_url}/{path}" if self._public_base_url else str(blob_client.url)
        logger.info(
            "Snapshot uploaded | container=%s | path=%s | size=%d bytes",
            self._container,
            path,
            len(data),
        )
        return url
