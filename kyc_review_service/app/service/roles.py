# Role capabilities checked by the caller-facing layer
from enum import Enum
from typing import Dict, FrozenSet, Optional

from kyc_review_service.app.models import Role
from kyc_review_service.app.service.exceptions import PermissionDeniedError


class Capability(str, Enum):
    REVIEW = "review submissions"
    DECIDE_ESCALATED = "decide escalated submissions"
    RESPOND = "respond to amendment requests"
    VIEW = "view submissions"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.OFFICER: frozenset({Capability.REVIEW, Capability.RESPOND, Capability.VIEW}),
    Role.SUPERVISOR: frozenset({Capability.REVIEW, Capability.DECIDE_ESCALATED, Capability.VIEW}),
    Role.ADMIN: frozenset({Capability.REVIEW, Capability.DECIDE_ESCALATED, Capability.VIEW}),
    Role.BRANCH_MANAGER: frozenset({Capability.RESPOND, Capability.VIEW}),
}


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Returns the Role for a header value, or None when it names no known role."""
    if not value:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def require_capability(role: Role, capability: Capability) -> None:
    if not has_capability(role, capability):
        raise PermissionDeniedError(role.value, capability.value)
