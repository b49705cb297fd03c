# Workflow Engine: the submission status state machine
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from opentelemetry import trace

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import (
    AMENDMENT_STATUSES,
    TERMINAL_STATUSES,
    Amendment,
    AmendmentRequest,
    StatusChange,
    Submission,
    SubmissionStatus,
    SubmittedDocument,
    WorkflowEvent,
)
from kyc_review_service.app.observability import status_transitions_counter
from kyc_review_service.app.service.exceptions import InvalidTransitionError, ValidationError
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.validation import require_min_length

logger = logging.getLogger(__name__)

S = SubmissionStatus
E = WorkflowEvent

# Runs inside the store's critical section against the current value; raises to abort the commit
Precheck = Callable[[Submission], None]

# (current status, event) -> next status. Pairs not listed are illegal.
TRANSITIONS: Dict[Tuple[SubmissionStatus, WorkflowEvent], SubmissionStatus] = {
    (S.PENDING, E.APPROVE): S.APPROVED,
    (S.PENDING, E.REJECT): S.REJECTED,
    (S.PENDING, E.ESCALATE): S.ESCALATED,
    (S.PENDING, E.REQUEST_AMENDMENT): S.ACTION_REQUIRED,

    (S.ESCALATED, E.APPROVE): S.APPROVED,
    (S.ESCALATED, E.REJECT): S.REJECTED,
    (S.ESCALATED, E.REQUEST_AMENDMENT): S.ACTION_REQUIRED,

    # Another outstanding request on a submission already awaiting the branch
    (S.ACTION_REQUIRED, E.REQUEST_AMENDMENT): S.ACTION_REQUIRED,
    (S.AMENDMENT, E.REQUEST_AMENDMENT): S.ACTION_REQUIRED,
    # Only taken when the last pending request is resolved
    (S.ACTION_REQUIRED, E.RESOLVE_AMENDMENT): S.AMENDED_PENDING_REVIEW,
    (S.AMENDMENT, E.RESOLVE_AMENDMENT): S.AMENDED_PENDING_REVIEW,

    # Re-review behaves like a fresh review
    (S.AMENDED_PENDING_REVIEW, E.APPROVE): S.APPROVED,
    (S.AMENDED_PENDING_REVIEW, E.REJECT): S.REJECTED,
    (S.AMENDED_PENDING_REVIEW, E.ESCALATE): S.ESCALATED,
    (S.AMENDED_PENDING_REVIEW, E.REQUEST_AMENDMENT): S.ACTION_REQUIRED,
}


def next_status(submission: Submission, event: WorkflowEvent) -> SubmissionStatus:
    target = TRANSITIONS.get((submission.status, event))
    if target is None:
        raise InvalidTransitionError(submission.id, submission.status.value, event.value)
    return target


def transition(
    submission: Submission,
    event: WorkflowEvent,
    actor: Optional[str] = None,
    note: Optional[str] = None,
    **changes: Any,
) -> Submission:
    """Pure: returns `submission` moved along `event`, with a StatusChange appended and `changes` applied."""
    target = next_status(submission, event)
    change = StatusChange(
        from_status=submission.status,
        to_status=target,
        event=event,
        actor=actor,
        note=note,
    )
    return submission.evolve(
        status=target,
        status_history=submission.status_history + (change,),
        **changes,
    )


def open_amendment(submission: Submission, request: AmendmentRequest, actor: Optional[str] = None) -> Submission:
    """Pure: appends `request` to the pending set and moves the submission to Action Required."""
    return transition(
        submission,
        E.REQUEST_AMENDMENT,
        actor=actor,
        note=request.comment,
        pending_amendments=submission.pending_amendments + (request,),
    )


def close_amendments(
    submission: Submission,
    resolved_ids: Iterable[str],
    amendment: Amendment,
    new_documents: Sequence[SubmittedDocument],
    actor: Optional[str] = None,
) -> Submission:
    """
    Pure: removes the resolved requests from the pending set, appends the new
    documents and the history entry. When nothing remains pending the
    submission moves to Amended - Pending Review; otherwise its status is kept.
    """
    if submission.status not in AMENDMENT_STATUSES:
        raise InvalidTransitionError(submission.id, submission.status.value, E.RESOLVE_AMENDMENT.value)
    resolved = set(resolved_ids)
    remaining = tuple(r for r in submission.pending_amendments if r.id not in resolved)
    changes = dict(
        pending_amendments=remaining,
        documents=submission.documents + tuple(new_documents),
        amendment_history=submission.amendment_history + (amendment,),
    )
    if remaining:
        return submission.evolve(**changes)
    return transition(submission, E.RESOLVE_AMENDMENT, actor=actor, note=amendment.response_comment, **changes)


class WorkflowEngine:
    """Commits status transitions through the store."""

    def __init__(self, store: SubmissionStore, min_reason_length: Optional[int] = None):
        self.store = store
        self.min_reason_length = min_reason_length if min_reason_length is not None else settings.MIN_AMENDMENT_REASON_LENGTH

    def approve(self, submission_id: str, actor: Optional[str] = None, note: Optional[str] = None, precheck: Optional[Precheck] = None) -> Submission:
        return self._commit(submission_id, E.APPROVE, actor, note, precheck)

    def reject(self, submission_id: str, actor: Optional[str] = None, note: Optional[str] = None, precheck: Optional[Precheck] = None) -> Submission:
        return self._commit(submission_id, E.REJECT, actor, note, precheck)

    def escalate(self, submission_id: str, actor: Optional[str] = None, note: Optional[str] = None, precheck: Optional[Precheck] = None) -> Submission:
        return self._commit(submission_id, E.ESCALATE, actor, note, precheck)

    def request_amendment(
        self,
        submission_id: str,
        request: AmendmentRequest,
        actor: Optional[str] = None,
        precheck: Optional[Precheck] = None,
    ) -> Submission:
        """
        Opens `request` on the submission. `precheck` runs inside the store's
        critical section against the current value and may raise to abort.
        """
        require_min_length(request.comment, self.min_reason_length, "reason")

        def mutator(current: Submission) -> Submission:
            if precheck is not None:
                precheck(current)
            return open_amendment(current, request, actor=actor)

        current_span = trace.get_current_span()
        current_span.set_attribute("submission.id", submission_id)
        current_span.add_event("AmendmentRequested", {"request.id": request.id, "request.type": request.type.value})
        updated = self.store.apply(submission_id, mutator)
        self._record(updated, E.REQUEST_AMENDMENT)
        return updated

    def assign_officer(self, submission_id: str, officer: str, actor: Optional[str] = None) -> Submission:
        officer_name = (officer or "").strip()
        if not officer_name:
            raise ValidationError("officer is required.", field="officer")

        def mutator(current: Submission) -> Submission:
            if current.status in TERMINAL_STATUSES:
                raise InvalidTransitionError(current.id, current.status.value, "assign an officer to")
            return current.evolve(officer=officer_name)

        updated = self.store.apply(submission_id, mutator)
        logger.info(f"Officer '{officer_name}' assigned to submission {submission_id} by {actor or 'system'}.")
        return updated

    def _commit(
        self,
        submission_id: str,
        event: WorkflowEvent,
        actor: Optional[str],
        note: Optional[str],
        precheck: Optional[Precheck] = None,
    ) -> Submission:
        current_span = trace.get_current_span()
        current_span.set_attribute("submission.id", submission_id)
        current_span.set_attribute("workflow.event", event.value)

        def mutator(current: Submission) -> Submission:
            if precheck is not None:
                precheck(current)
            return transition(current, event, actor=actor, note=note)

        updated = self.store.apply(submission_id, mutator)
        self._record(updated, event)
        return updated

    @staticmethod
    def _record(updated: Submission, event: WorkflowEvent) -> None:
        status_transitions_counter.add(1, {"workflow.event": event.value, "to_status": updated.status.value})
        logger.info(f"Submission {updated.id} -> '{updated.status.value}' on {event.value}.")
