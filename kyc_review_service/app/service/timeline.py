# Five-step review timeline derived from a submission's status
from typing import List, Optional

from pydantic import BaseModel

from kyc_review_service.app.models import AMENDMENT_STATUSES, TERMINAL_STATUSES, Submission, SubmissionStatus

COMPLETED = "completed"
ACTIVE = "active"
PENDING = "pending"


class WorkflowStep(BaseModel):
    title: str
    state: str = PENDING # completed | active | pending
    details: str
    badge: Optional[str] = None


def build_workflow_timeline(submission: Submission) -> List[WorkflowStep]:
    uploaded = WorkflowStep(
        title="Document Uploaded",
        state=COMPLETED,
        details=f"{len(submission.documents)} document(s) uploaded by branch",
    )
    review = WorkflowStep(title="Under Review", details=f"Officer: {submission.officer or 'N/A'}")
    amendment = WorkflowStep(title="Amendment Cycle", details="Documents are pending initial review")
    supervisor = WorkflowStep(title="Supervisor Approval", details="Will be escalated if needed")
    completion = WorkflowStep(title="Completion", details="Customer verification complete")

    status = submission.status
    if status == SubmissionStatus.PENDING:
        review.state = ACTIVE
        review.badge = "Reviewing"
    elif status in AMENDMENT_STATUSES:
        review.state = COMPLETED
        amendment.state = ACTIVE
        amendment.details = f"Reason: {submission.amendment_reason or 'Not specified'}"
        amendment.badge = "Action Required by Branch"
    elif status == SubmissionStatus.AMENDED_PENDING_REVIEW:
        amendment.state = COMPLETED
        amendment.details = "New documents submitted."
        review.state = ACTIVE
        review.badge = "Reviewing Amendment"
    elif status == SubmissionStatus.ESCALATED:
        review.state = COMPLETED
        amendment.state = COMPLETED
        supervisor.state = ACTIVE
        supervisor.badge = "Escalated"
    elif status in TERMINAL_STATUSES:
        for step in (review, amendment, supervisor, completion):
            step.state = COMPLETED
        completion.details = f"Submission was {status.value}"

    return [uploaded, review, amendment, supervisor, completion]
