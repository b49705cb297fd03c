import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .submitted_document import SubmittedDocument


class Amendment(BaseModel):
    """History entry folding one or more resolved requests together with the branch response."""
    model_config = ConfigDict(frozen=True)

    requested_at: datetime.datetime
    requested_by: Optional[str] = None
    reason: str
    responded_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    response_comment: str = Field(min_length=1)
    response_type: str
    documents: Tuple[SubmittedDocument, ...] = ()
    request_ids: Tuple[str, ...] = ()
