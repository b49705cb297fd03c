# Authoritative in-process collection of submissions
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Union

from kyc_review_service.app.models import Submission, SubmissionStatus
from kyc_review_service.app.service.exceptions import (
    DuplicateSubmissionError,
    IntegrityError,
    SubmissionNotFoundError,
)

logger = logging.getLogger(__name__)

Mutator = Callable[[Submission], Submission]
# Called with (previous, current); previous is None for newly added submissions.
Subscriber = Callable[[Optional[Submission], Submission], None]


class SubmissionStore:
    """
    Owns every submission. All writes go through `add` or `apply`, each a
    single critical section under a re-entrant lock, so readers only ever see
    whole values. Subscribers are notified after the value is committed.
    """

    def __init__(self, submissions: Optional[Iterable[Submission]] = None):
        self._lock = threading.RLock()
        self._submissions: Dict[str, Submission] = {}
        self._subscribers: List[Subscriber] = []
        if submissions:
            self.hydrate(submissions)

    def get(self, submission_id: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    def list(
        self,
        status: Union[SubmissionStatus, Iterable[SubmissionStatus], None] = None,
    ) -> List[Submission]:
        """Returns submissions in insertion order, optionally only those in the given status(es)."""
        with self._lock:
            submissions = list(self._submissions.values())
        if status is None:
            return submissions
        wanted = {status} if isinstance(status, SubmissionStatus) else set(status)
        return [s for s in submissions if s.status in wanted]

    def add(self, submission: Submission) -> Submission:
        with self._lock:
            if submission.id in self._submissions:
                raise DuplicateSubmissionError(submission.id)
            self._submissions[submission.id] = submission
            logger.info(f"Submission {submission.id} added with status '{submission.status.value}'.")
            self._notify(None, submission)
        return submission

    def apply(self, submission_id: str, mutator: Mutator) -> Submission:
        """
        Replaces a submission with `mutator(current)` as one observable update.

        If the mutator raises, nothing changes and the error propagates. The
        result must keep the same id and submitted_at, and may only append to
        amendment_history and status_history.
        """
        with self._lock:
            current = self._submissions.get(submission_id)
            if current is None:
                raise SubmissionNotFoundError(submission_id)
            updated = mutator(current)
            self._check_integrity(current, updated)
            self._submissions[submission_id] = updated
            logger.debug(f"Submission {submission_id} committed: '{current.status.value}' -> '{updated.status.value}'.")
            self._notify(current, updated)
        return updated

    def hydrate(self, submissions: Iterable[Submission]) -> int:
        """Loads already-persisted submissions without notifying subscribers. Known ids are skipped."""
        loaded = 0
        with self._lock:
            for submission in submissions:
                if submission.id in self._submissions:
                    continue
                self._submissions[submission.id] = submission
                loaded += 1
        logger.info(f"Hydrated {loaded} submissions into the store.")
        return loaded

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._submissions)

    def __contains__(self, submission_id: object) -> bool:
        with self._lock:
            return submission_id in self._submissions

    def _notify(self, previous: Optional[Submission], current: Submission) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(previous, current)
            except Exception as e:
                # The commit stands; a broken listener must not block the others.
                logger.error(f"Subscriber {subscriber!r} failed for submission {current.id}: {e}", exc_info=True)

    @staticmethod
    def _check_integrity(current: Submission, updated: Submission) -> None:
        if not isinstance(updated, Submission):
            raise IntegrityError(f"Mutator for submission '{current.id}' returned {type(updated).__name__}, not a Submission.")
        if updated.id != current.id:
            raise IntegrityError(f"Submission id is immutable ('{current.id}' -> '{updated.id}').")
        if updated.submitted_at != current.submitted_at:
            raise IntegrityError(f"submitted_at of submission '{current.id}' is immutable.")
        for field_name in ("amendment_history", "status_history"):
            before = getattr(current, field_name)
            after = getattr(updated, field_name)
            if len(after) < len(before) or after[:len(before)] != before:
                raise IntegrityError(f"{field_name} of submission '{current.id}' is append-only.")
