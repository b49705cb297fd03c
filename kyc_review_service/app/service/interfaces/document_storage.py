from abc import ABC, abstractmethod
from typing import Any, Dict


class AbstractDocumentStorage(ABC):
    @abstractmethod
    async def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        """
        Stores the bytes of one document.

        Args:
            data: Raw file content.
            metadata: submission_id, file_name, content_type and document_type of the file.

        Returns:
            An opaque URL referencing the stored object.

        Raises:
            StorageUnavailableError: if the storage service cannot be reached.
            StorageError: if the storage service rejects the object.
        """
        pass
