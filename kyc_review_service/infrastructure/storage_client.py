# Clients for the document storage collaborator
import logging
import uuid
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends

from kyc_review_service.app.config import settings
from kyc_review_service.app.dependencies.http_client import get_http_client
from kyc_review_service.app.service.exceptions import StorageError, StorageUnavailableError
from kyc_review_service.app.service.interfaces.document_storage import AbstractDocumentStorage

logger = logging.getLogger(__name__)


class InMemoryDocumentStorage(AbstractDocumentStorage):
    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.metadata: Dict[str, Dict[str, Any]] = {}

    async def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        object_id = uuid.uuid4().hex
        url = f"memory://documents/{object_id}/{metadata.get('file_name', 'file')}"
        self.objects[url] = data
        self.metadata[url] = dict(metadata)
        logger.debug(f"Stored {len(data)} bytes in memory at {url}.")
        return url


class HttpDocumentStorage(AbstractDocumentStorage):
    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = base_url or settings.STORAGE_SERVICE_URL

    async def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        if not self.base_url:
            raise StorageUnavailableError("STORAGE_SERVICE_URL not set. Cannot upload documents.")

        request_url = f"{self.base_url}/objects"
        file_name = metadata.get("file_name", "file")
        form = {k: str(v) for k, v in metadata.items() if v is not None}
        logger.debug(f"Uploading '{file_name}' ({len(data)} bytes) to {request_url}")

        try:
            response = await self.http_client.post(
                request_url,
                files={"file": (file_name, data, metadata.get("content_type", "application/octet-stream"))},
                data=form,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling storage service: {e.response.status_code} - {e.response.text}", exc_info=True)
            if e.response.status_code >= 500:
                raise StorageUnavailableError(f"Storage service failed with status {e.response.status_code}.") from e
            raise StorageError(f"Storage service rejected '{file_name}' with status {e.response.status_code}.") from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling storage service: {e}", exc_info=True)
            raise StorageUnavailableError(f"Storage service unreachable: {e}") from e

        try:
            url = response.json().get("url")
        except ValueError as e:
            raise StorageError("Storage service returned a malformed response.") from e
        if not url:
            raise StorageError("Storage service response did not include a URL.")
        logger.info(f"Stored '{file_name}' for submission {metadata.get('submission_id')} at {url}")
        return url


_in_memory_storage: Optional[InMemoryDocumentStorage] = None

# DI provider: HTTP storage when a storage service is configured, in-memory otherwise
def get_document_storage(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractDocumentStorage:
    global _in_memory_storage
    if settings.STORAGE_SERVICE_URL:
        return HttpDocumentStorage(http_client=http_client)
    if _in_memory_storage is None:
        logger.warning("STORAGE_SERVICE_URL not set. Using in-memory document storage.")
        _in_memory_storage = InMemoryDocumentStorage()
    return _in_memory_storage
