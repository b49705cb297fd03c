# Preview Resource Manager: revocable references to staged, uncommitted files
import logging
import threading
from typing import Dict, Iterable, List, Optional

from kyc_review_service.app.models import PreviewHandle, StagedFile
from kyc_review_service.app.observability import live_preview_handles_counter
from kyc_review_service.app.service.validation import validate_staged_file

logger = logging.getLogger(__name__)


class PreviewResourceManager:
    """
    Allocates and revokes preview handles. A handle is live from `create` until
    its first `release`; releasing again is a no-op. At quiescence the number of
    allocations equals the number of releases, i.e. `live_count` is zero.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._live: Dict[str, PreviewHandle] = {}

    def create(self, file: StagedFile) -> PreviewHandle:
        handle = PreviewHandle(file=file, reference="")
        handle = handle.model_copy(update={"reference": f"preview://{handle.id}/{file.file_name}"})
        with self._lock:
            self._live[handle.id] = handle
        live_preview_handles_counter.add(1)
        logger.debug(f"Preview handle {handle.id} allocated for '{file.file_name}'.")
        return handle

    def replace(self, handle: Optional[PreviewHandle], file: StagedFile) -> PreviewHandle:
        """Revokes `handle` first, then allocates a handle for `file`."""
        if handle is not None:
            self.release(handle)
        return self.create(file)

    def release(self, handle: PreviewHandle) -> None:
        with self._lock:
            released = self._live.pop(handle.id, None)
        if released is not None:
            live_preview_handles_counter.add(-1)
            logger.debug(f"Preview handle {handle.id} released.")

    def release_all(self, handles: Iterable[PreviewHandle]) -> None:
        for handle in list(handles):
            self.release(handle)

    def is_live(self, handle: PreviewHandle) -> bool:
        with self._lock:
            return handle.id in self._live

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)


class PreviewSession:
    """
    Handles staged by one form or request, keyed by logical slot. A slot holds
    at most one live handle. Closing the session, or leaving its `with` /
    `async with` block for any reason, releases everything it staged.
    """

    def __init__(self, manager: PreviewResourceManager, validate: bool = True):
        self.manager = manager
        self.validate = validate
        self._slots: Dict[str, PreviewHandle] = {}
        self._closed = False

    def stage(self, slot: str, file: StagedFile) -> PreviewHandle:
        if self._closed:
            raise RuntimeError("Cannot stage files on a closed preview session.")
        if self.validate:
            validate_staged_file(file)
        handle = self.manager.replace(self._slots.get(slot), file)
        self._slots[slot] = handle
        return handle

    def unstage(self, slot: str) -> None:
        handle = self._slots.pop(slot, None)
        if handle is not None:
            self.manager.release(handle)

    def get(self, slot: str) -> Optional[PreviewHandle]:
        return self._slots.get(slot)

    @property
    def handles(self) -> List[PreviewHandle]:
        return list(self._slots.values())

    def close(self) -> None:
        handles = list(self._slots.values())
        self._slots.clear()
        self._closed = True
        self.manager.release_all(handles)

    def __enter__(self) -> 'PreviewSession':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self) -> 'PreviewSession':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
