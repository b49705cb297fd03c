# Unit Tests for the Workflow Engine
import pytest

from kyc_review_service.app.models import (
    AmendmentRequest,
    AmendmentRequestType,
    DocumentType,
    SubmissionStatus,
    WorkflowEvent,
)
from kyc_review_service.app.service import workflow
from kyc_review_service.app.service.exceptions import ConflictError, InvalidTransitionError, ValidationError

from conftest import make_submission


def _add_new(comment: str = "Please add a recent utility bill.") -> AmendmentRequest:
    return AmendmentRequest(
        type=AmendmentRequestType.ADD_NEW,
        target_document_type=DocumentType.UTILITY_BILL,
        comment=comment,
    )


@pytest.mark.parametrize("event, expected", [
    (WorkflowEvent.APPROVE, SubmissionStatus.APPROVED),
    (WorkflowEvent.REJECT, SubmissionStatus.REJECTED),
    (WorkflowEvent.ESCALATE, SubmissionStatus.ESCALATED),
])
def test_decisions_from_pending(store, workflow_engine, event, expected):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    action = getattr(workflow_engine, event.value)

    updated = action(submission.id, actor="officer-1", note="checked")

    assert updated.status == expected
    change = updated.status_history[-1]
    assert change.from_status == SubmissionStatus.PENDING
    assert change.to_status == expected
    assert change.event == event
    assert change.actor == "officer-1"
    assert change.note == "checked"


def test_escalated_submission_can_be_approved(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    workflow_engine.escalate(submission.id)
    assert workflow_engine.approve(submission.id).status == SubmissionStatus.APPROVED


@pytest.mark.parametrize("terminal", [SubmissionStatus.APPROVED, SubmissionStatus.REJECTED])
@pytest.mark.parametrize("action", ["approve", "reject", "escalate"])
def test_terminal_submissions_reject_further_decisions(store, workflow_engine, terminal, action):
    submission = store.add(make_submission(DocumentType.PASSPORT, status=terminal))
    with pytest.raises(InvalidTransitionError) as exc_info:
        getattr(workflow_engine, action)(submission.id)
    assert isinstance(exc_info.value, ConflictError)
    assert store.get(submission.id) is submission


def test_escalating_twice_is_rejected(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    workflow_engine.escalate(submission.id)
    with pytest.raises(InvalidTransitionError):
        workflow_engine.escalate(submission.id)


def test_request_amendment_moves_to_action_required(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    request = _add_new()

    updated = workflow_engine.request_amendment(submission.id, request, actor="officer-1")

    assert updated.status == SubmissionStatus.ACTION_REQUIRED
    assert updated.pending_amendments == (request,)
    assert updated.amendment_reason == request.comment


def test_second_request_keeps_action_required_and_adds_to_pending(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    workflow_engine.request_amendment(submission.id, _add_new("First reason here."))
    updated = workflow_engine.request_amendment(submission.id, _add_new("Second reason here."))

    assert updated.status == SubmissionStatus.ACTION_REQUIRED
    assert len(updated.pending_amendments) == 2


def test_short_reason_is_a_validation_error(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    with pytest.raises(ValidationError, match="at least 5"):
        workflow_engine.request_amendment(submission.id, _add_new("Bad"))
    assert store.get(submission.id).status == SubmissionStatus.PENDING


def test_request_amendment_on_approved_submission_is_invalid(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    workflow_engine.approve(submission.id)
    with pytest.raises(InvalidTransitionError):
        workflow_engine.request_amendment(submission.id, _add_new())


def test_approve_while_action_required_is_invalid(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    workflow_engine.request_amendment(submission.id, _add_new())
    with pytest.raises(InvalidTransitionError):
        workflow_engine.approve(submission.id)


def test_precheck_failure_aborts_request(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))

    def precheck(current):
        raise ValidationError("target missing")

    with pytest.raises(ValidationError, match="target missing"):
        workflow_engine.request_amendment(submission.id, _add_new(), precheck=precheck)
    assert store.get(submission.id) is submission


def test_decision_precheck_sees_committed_value(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    escalated = workflow_engine.escalate(submission.id)
    seen = []

    def precheck(current):
        seen.append(current)
        raise ValidationError("not allowed")

    with pytest.raises(ValidationError, match="not allowed"):
        workflow_engine.approve(submission.id, precheck=precheck)
    assert seen == [escalated]
    assert store.get(submission.id) is escalated


def test_assign_officer_keeps_status(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT, officer=None))
    updated = workflow_engine.assign_officer(submission.id, " officer-7 ")
    assert updated.officer == "officer-7"
    assert updated.status == SubmissionStatus.PENDING
    assert updated.status_history == ()


def test_assign_officer_on_terminal_submission_is_invalid(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT, status=SubmissionStatus.REJECTED))
    with pytest.raises(InvalidTransitionError):
        workflow_engine.assign_officer(submission.id, "officer-7")


def test_every_unlisted_pair_is_rejected():
    for status in SubmissionStatus:
        for event in WorkflowEvent:
            if (status, event) in workflow.TRANSITIONS:
                continue
            pending = (_add_new(),) if status in (SubmissionStatus.AMENDMENT, SubmissionStatus.ACTION_REQUIRED) else ()
            submission = make_submission(DocumentType.PASSPORT, status=status, pending_amendments=pending)
            with pytest.raises(InvalidTransitionError):
                workflow.next_status(submission, event)


def test_close_amendments_outside_amendment_status_is_invalid():
    submission = make_submission(DocumentType.PASSPORT)
    with pytest.raises(InvalidTransitionError):
        workflow.close_amendments(submission, [], None, [])
