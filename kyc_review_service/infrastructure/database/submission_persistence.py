# Durable mirrors of the submission store
import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import Submission
from kyc_review_service.app.observability import persistence_write_failures_counter
from kyc_review_service.app.service.interfaces.submission_persistence import (
    AbstractSubmissionPersistence,
    PersistenceCallback,
)
from kyc_review_service.app.service.store import SubmissionStore

logger = logging.getLogger(__name__)


class _CallbackRegistry:
    def __init__(self):
        self._callbacks: Dict[str, List[PersistenceCallback]] = defaultdict(list)

    def subscribe(self, submission_id: str, callback: PersistenceCallback) -> Callable[[], None]:
        self._callbacks[submission_id].append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks.get(submission_id, []):
                self._callbacks[submission_id].remove(callback)

        return unsubscribe

    def _fire(self, submission: Submission) -> None:
        for callback in list(self._callbacks.get(submission.id, [])):
            try:
                callback(submission)
            except Exception as e:
                logger.error(f"Persistence callback failed for submission {submission.id}: {e}", exc_info=True)


class InMemorySubmissionPersistence(_CallbackRegistry, AbstractSubmissionPersistence):
    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Submission] = {}

    async def create_or_replace(self, submission_id: str, submission: Submission) -> None:
        self._documents[submission_id] = submission
        self._fire(submission)

    async def read(self, submission_id: str) -> Optional[Submission]:
        return self._documents.get(submission_id)

    async def list_all(self) -> List[Submission]:
        return list(self._documents.values())


class MongoSubmissionPersistence(_CallbackRegistry, AbstractSubmissionPersistence):
    """One MongoDB document per submission, upserted on `id`."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: Optional[str] = None):
        super().__init__()
        self.collection = db[collection_name or settings.SUBMISSIONS_COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("id", ASCENDING)], unique=True)
        logger.info(f"Unique index on 'id' ensured for collection '{self.collection.name}'.")

    async def create_or_replace(self, submission_id: str, submission: Submission) -> None:
        document = submission.model_dump(mode="json")
        await self.collection.replace_one({"id": submission_id}, document, upsert=True)
        logger.debug(f"Submission {submission_id} persisted with status '{submission.status.value}'.")
        self._fire(submission)

    async def read(self, submission_id: str) -> Optional[Submission]:
        document = await self.collection.find_one({"id": submission_id}, {"_id": 0})
        return Submission.model_validate(document) if document else None

    async def list_all(self) -> List[Submission]:
        submissions: List[Submission] = []
        async for document in self.collection.find({}, {"_id": 0}):
            submissions.append(Submission.model_validate(document))
        return submissions


class PersistenceMirror:
    """
    Store subscriber that queues every committed snapshot and writes them to
    the persistence collaborator from a background task, in commit order.

    A failed write is re-queued up to `max_attempts` times, but only while it is
    still the newest snapshot of its submission, so a retry never overwrites a
    later commit.
    """

    def __init__(
        self,
        store: SubmissionStore,
        persistence: AbstractSubmissionPersistence,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.persistence = persistence
        self.max_attempts = max_attempts if max_attempts is not None else settings.PERSISTENCE_MAX_WRITE_ATTEMPTS
        self._queue: "asyncio.Queue[Tuple[Submission, int]]" = asyncio.Queue()
        self._latest: Dict[str, Submission] = {}
        self._drain_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def hydrate(self) -> int:
        submissions = await self.persistence.list_all()
        return self.store.hydrate(submissions)

    def _on_commit(self, previous: Optional[Submission], current: Submission) -> None:
        self._latest[current.id] = current
        self._queue.put_nowait((current, 1))

    async def _drain(self):
        while True:
            submission, attempt = await self._queue.get()
            try:
                await self.persistence.create_or_replace(submission.id, submission)
                if self._latest.get(submission.id) is submission:
                    del self._latest[submission.id]
            except Exception as e:
                retry = attempt < self.max_attempts and self._latest.get(submission.id) is submission
                persistence_write_failures_counter.add(1, {"requeued": retry})
                logger.error(
                    f"Failed to persist submission {submission.id} (attempt {attempt}/{self.max_attempts}): {e}",
                    exc_info=True,
                )
                if retry:
                    self._queue.put_nowait((submission, attempt + 1))
                elif self._latest.get(submission.id) is submission:
                    del self._latest[submission.id]
            finally:
                self._queue.task_done()

    async def start(self):
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_commit)
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain())
            logger.info("Persistence mirror started.")

    async def flush(self):
        await self._queue.join()

    async def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._drain_task is not None:
            await self.flush()
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
            self._drain_task = None
            logger.info("Persistence mirror stopped.")
