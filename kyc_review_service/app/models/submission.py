import datetime
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .amendment import Amendment
from .amendment_request import AmendmentRequest
from .enums import (
    AMENDMENT_STATUSES,
    AmendmentRequestStatus,
    DocumentType,
    SubmissionStatus,
    WorkflowEvent,
)
from .submitted_document import SubmittedDocument


class StatusChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_status: Optional[SubmissionStatus] = None # None for the initial submit
    to_status: SubmissionStatus
    event: WorkflowEvent
    actor: Optional[str] = None
    note: Optional[str] = None
    changed_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))


class Submission(BaseModel):
    """
    One KYC case. Values are immutable: every change produces a new Submission
    through `evolve`, which re-runs the consistency checks below.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    customer_name: str
    branch: str
    officer: Optional[str] = None
    submitted_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    status: SubmissionStatus = SubmissionStatus.PENDING
    details: Optional[str] = None # free text of the primary document, fed to the compliance pre-screen

    documents: Tuple[SubmittedDocument, ...] = () # upload order
    pending_amendments: Tuple[AmendmentRequest, ...] = ()
    amendment_history: Tuple[Amendment, ...] = ()
    status_history: Tuple[StatusChange, ...] = ()

    @computed_field
    @property
    def amendment_reason(self) -> Optional[str]:
        if not self.pending_amendments:
            return None
        return self.pending_amendments[-1].comment

    @computed_field
    @property
    def amendment_requested_at(self) -> Optional[datetime.datetime]:
        if not self.pending_amendments:
            return None
        return self.pending_amendments[-1].requested_at

    @model_validator(mode='after')
    def check_consistency(self) -> 'Submission':
        in_amendment = self.status in AMENDMENT_STATUSES
        if in_amendment and not self.pending_amendments:
            raise ValueError(f"status '{self.status.value}' requires at least one pending amendment request")
        if not in_amendment and self.pending_amendments:
            raise ValueError(f"status '{self.status.value}' cannot carry pending amendment requests")

        seen_request_ids = set()
        for request in self.pending_amendments:
            if request.status != AmendmentRequestStatus.PENDING:
                raise ValueError(f"amendment request '{request.id}' in the pending set is {request.status.value}")
            if request.id in seen_request_ids:
                raise ValueError(f"amendment request '{request.id}' is pending twice")
            seen_request_ids.add(request.id)

        versions_by_type: Dict[DocumentType, List[int]] = defaultdict(list)
        for document in self.documents:
            versions_by_type[document.document_type].append(document.version)
        for document_type, versions in versions_by_type.items():
            if versions != list(range(1, len(versions) + 1)):
                raise ValueError(f"versions of '{document_type.value}' must run 1, 2, 3, ... in upload order; got {versions}")
        return self

    def evolve(self, **changes: Any) -> 'Submission':
        """Returns a validated copy with `changes` applied."""
        data = dict(self)
        data.update(changes)
        return type(self).model_validate(data)

    def find_document(self, document_id: str) -> Optional[SubmittedDocument]:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    def find_pending_request(self, request_id: str) -> Optional[AmendmentRequest]:
        for request in self.pending_amendments:
            if request.id == request_id:
                return request
        return None
