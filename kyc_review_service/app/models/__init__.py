from .enums import (
    AMENDMENT_STATUSES,
    TERMINAL_STATUSES,
    AmendmentRequestStatus,
    AmendmentRequestType,
    DocumentType,
    Role,
    SubmissionStatus,
    WorkflowEvent,
)
from .submitted_document import SubmittedDocument
from .amendment_request import AmendmentRequest, AmendmentRequestDraft
from .amendment import Amendment
from .submission import StatusChange, Submission
from .preview_handle import PreviewHandle, StagedFile

__all__ = [
    "AMENDMENT_STATUSES",
    "TERMINAL_STATUSES",
    "AmendmentRequestStatus",
    "AmendmentRequestType",
    "DocumentType",
    "Role",
    "SubmissionStatus",
    "WorkflowEvent",
    "SubmittedDocument",
    "AmendmentRequest",
    "AmendmentRequestDraft",
    "Amendment",
    "StatusChange",
    "Submission",
    "PreviewHandle",
    "StagedFile",
]
