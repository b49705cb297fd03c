from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from kyc_review_service.app.models import Submission

PersistenceCallback = Callable[[Submission], None]


class AbstractSubmissionPersistence(ABC):
    """Durable mirror of the submission store. Each write replaces one whole document."""

    @abstractmethod
    async def create_or_replace(self, submission_id: str, submission: Submission) -> None:
        pass

    @abstractmethod
    async def read(self, submission_id: str) -> Optional[Submission]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Submission]:
        """Every persisted submission, used to hydrate the store at start-up."""
        pass

    @abstractmethod
    def subscribe(self, submission_id: str, callback: PersistenceCallback) -> Callable[[], None]:
        """Registers `callback` for writes of one submission; returns an unsubscribe function."""
        pass
