import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

from .enums import DocumentType


class SubmittedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    document_type: DocumentType
    file_name: str
    size: int = Field(ge=0) # bytes
    format: str # media type, e.g. application/pdf
    uploaded_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    version: int = Field(default=1, ge=1)
    url: str # opaque reference returned by the storage collaborator
