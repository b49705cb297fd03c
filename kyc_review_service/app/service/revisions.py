# Document version numbering
import datetime
from typing import Dict, Iterable, List, Sequence

from pydantic import BaseModel, ConfigDict, Field

from kyc_review_service.app.models import DocumentType, SubmittedDocument


class DocumentUpload(BaseModel):
    """A file already stored by the storage collaborator, waiting for a version number."""
    model_config = ConfigDict(frozen=True)

    document_type: DocumentType
    file_name: str
    size: int
    format: str
    url: str
    uploaded_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))


def next_version(existing: Iterable[SubmittedDocument], document_type: DocumentType) -> int:
    versions = [d.version for d in existing if d.document_type == document_type]
    return max(versions) + 1 if versions else 1


def materialize(existing: Sequence[SubmittedDocument], upload: DocumentUpload) -> SubmittedDocument:
    """Builds the SubmittedDocument for `upload`; `existing` is not modified."""
    return SubmittedDocument(
        document_type=upload.document_type,
        file_name=upload.file_name,
        size=upload.size,
        format=upload.format,
        uploaded_at=upload.uploaded_at,
        version=next_version(existing, upload.document_type),
        url=upload.url,
    )


def materialize_batch(
    existing: Sequence[SubmittedDocument],
    uploads: Iterable[DocumentUpload],
) -> List[SubmittedDocument]:
    """Numbers several uploads at once; uploads of the same type get consecutive versions."""
    seen: List[SubmittedDocument] = list(existing)
    created: List[SubmittedDocument] = []
    for upload in uploads:
        document = materialize(seen, upload)
        seen.append(document)
        created.append(document)
    return created


def latest_documents(documents: Iterable[SubmittedDocument]) -> List[SubmittedDocument]:
    """Highest version of each document type, ordered by first upload of the type."""
    latest: Dict[DocumentType, SubmittedDocument] = {}
    for document in documents:
        current = latest.get(document.document_type)
        if current is None or document.version > current.version:
            latest[document.document_type] = document
    return list(latest.values())


def version_history(documents: Iterable[SubmittedDocument], document_type: DocumentType) -> List[SubmittedDocument]:
    return sorted(
        (d for d in documents if d.document_type == document_type),
        key=lambda d: d.version,
    )
