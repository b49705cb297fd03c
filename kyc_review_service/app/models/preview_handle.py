import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field


class StagedFile(BaseModel):
    """Raw bytes of a file picked by a user, not yet uploaded."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    content_type: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class PreviewHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    file: StagedFile
    reference: str # revocable display reference, e.g. preview://<id>/<file name>
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
