# Pydantic models for Kafka message structures
import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kyc_review_service.app.models import Submission, SubmissionStatus


class SubmissionChangedMessage(BaseModel):
    submission_id: str
    previous_status: Optional[SubmissionStatus] = None # None when the submission was just created
    status: SubmissionStatus
    pending_amendments: int = Field(ge=0)
    document_count: int = Field(ge=0)
    occurred_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))

    @classmethod
    def from_commit(cls, previous: Optional[Submission], current: Submission) -> 'SubmissionChangedMessage':
        return cls(
            submission_id=current.id,
            previous_status=previous.status if previous is not None else None,
            status=current.status,
            pending_amendments=len(current.pending_amendments),
            document_count=len(current.documents),
        )
