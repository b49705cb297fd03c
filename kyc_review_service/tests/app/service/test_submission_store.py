# Unit Tests for the Submission Store
import pytest
from unittest.mock import MagicMock

from kyc_review_service.app.models import DocumentType, SubmissionStatus
from kyc_review_service.app.service.exceptions import (
    ConflictError,
    DuplicateSubmissionError,
    IntegrityError,
    SubmissionNotFoundError,
)
from kyc_review_service.app.service.store import SubmissionStore

from conftest import make_submission


def test_get_unknown_submission_raises_not_found(store):
    with pytest.raises(SubmissionNotFoundError, match="missing-id"):
        store.get("missing-id")


def test_add_then_get_and_list_in_insertion_order(store):
    first = store.add(make_submission(DocumentType.PASSPORT, customer_name="First Customer"))
    second = store.add(make_submission(DocumentType.PASSPORT, customer_name="Second Customer"))

    assert store.get(first.id) is first
    assert [s.id for s in store.list()] == [first.id, second.id]
    assert len(store) == 2
    assert first.id in store


def test_add_duplicate_id_is_a_conflict(store):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    with pytest.raises(DuplicateSubmissionError) as exc_info:
        store.add(submission)
    assert isinstance(exc_info.value, ConflictError)


def test_list_filters_by_one_or_several_statuses(store):
    pending = store.add(make_submission(DocumentType.PASSPORT))
    escalated = store.add(make_submission(DocumentType.PASSPORT, status=SubmissionStatus.ESCALATED))
    approved = store.add(make_submission(DocumentType.PASSPORT, status=SubmissionStatus.APPROVED))

    assert store.list(status=SubmissionStatus.ESCALATED) == [escalated]
    assert store.list(status=[SubmissionStatus.PENDING, SubmissionStatus.APPROVED]) == [pending, approved]


def test_apply_replaces_value_and_notifies_subscribers(store):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    listener = MagicMock()
    store.subscribe(listener)

    updated = store.apply(submission.id, lambda current: current.evolve(officer="officer-2"))

    assert store.get(submission.id) is updated
    assert updated.officer == "officer-2"
    listener.assert_called_once_with(submission, updated)


def test_apply_unknown_submission_raises_not_found(store):
    with pytest.raises(SubmissionNotFoundError):
        store.apply("nope", lambda current: current)


def test_apply_leaves_value_unchanged_when_mutator_raises(store):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    listener = MagicMock()
    store.subscribe(listener)

    def failing(current):
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        store.apply(submission.id, failing)

    assert store.get(submission.id) is submission
    listener.assert_not_called()


def test_apply_rejects_changed_id(store):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    with pytest.raises(IntegrityError):
        store.apply(submission.id, lambda current: current.evolve(id="other-id"))
    assert store.get(submission.id) is submission


def test_apply_rejects_rewritten_status_history(store, workflow_engine):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    escalated = workflow_engine.escalate(submission.id)
    assert len(escalated.status_history) == 1

    with pytest.raises(IntegrityError, match="append-only"):
        store.apply(submission.id, lambda current: current.evolve(status_history=()))
    assert store.get(submission.id) is escalated


def test_failing_subscriber_does_not_undo_commit_or_starve_others(store):
    submission = store.add(make_submission(DocumentType.PASSPORT))
    broken = MagicMock(side_effect=RuntimeError("listener down"))
    healthy = MagicMock()
    store.subscribe(broken)
    store.subscribe(healthy)

    updated = store.apply(submission.id, lambda current: current.evolve(officer="officer-9"))

    assert store.get(submission.id).officer == "officer-9"
    healthy.assert_called_once_with(submission, updated)


def test_unsubscribe_stops_notifications(store):
    listener = MagicMock()
    unsubscribe = store.subscribe(listener)
    unsubscribe()
    unsubscribe()  # idempotent

    store.add(make_submission(DocumentType.PASSPORT))
    listener.assert_not_called()


def test_add_notifies_with_no_previous_value(store):
    listener = MagicMock()
    store.subscribe(listener)
    submission = store.add(make_submission(DocumentType.PASSPORT))
    listener.assert_called_once_with(None, submission)


def test_hydrate_skips_known_ids_without_notifying():
    known = make_submission(DocumentType.PASSPORT)
    store = SubmissionStore([known])
    listener = MagicMock()
    store.subscribe(listener)

    loaded = store.hydrate([known, make_submission(DocumentType.UTILITY_BILL)])

    assert loaded == 1
    assert len(store) == 2
    listener.assert_not_called()
