import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import AmendmentRequestStatus, AmendmentRequestType, DocumentType


class AmendmentRequestDraft(BaseModel):
    """What a reviewer asks for, before it is validated against a submission."""
    type: AmendmentRequestType
    target_document_type: Optional[DocumentType] = None
    target_document_id: Optional[str] = None
    comment: str


class AmendmentRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    type: AmendmentRequestType
    target_document_type: Optional[DocumentType] = None
    target_document_id: Optional[str] = None # set iff type is REPLACE_EXISTING
    comment: str = Field(min_length=1)
    requested_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    requested_by: Optional[str] = None
    status: AmendmentRequestStatus = AmendmentRequestStatus.PENDING

    @model_validator(mode='after')
    def check_target(self) -> 'AmendmentRequest':
        is_replace = self.type == AmendmentRequestType.REPLACE_EXISTING
        if is_replace and not self.target_document_id:
            raise ValueError('target_document_id is required for REPLACE_EXISTING requests')
        if not is_replace and self.target_document_id:
            raise ValueError(f'target_document_id is not allowed for {self.type.value} requests')
        if self.type != AmendmentRequestType.REQUEST_INFO and self.target_document_type is None:
            raise ValueError(f'target_document_type is required for {self.type.value} requests')
        if not self.comment.strip():
            raise ValueError('comment must not be blank')
        return self

    @property
    def requires_files(self) -> bool:
        return self.type != AmendmentRequestType.REQUEST_INFO
