# Unit Tests for role capability checks
import pytest

from kyc_review_service.app.models import Role
from kyc_review_service.app.service.exceptions import PermissionDeniedError
from kyc_review_service.app.service.roles import Capability, has_capability, parse_role, require_capability


def test_parse_role_accepts_display_values_only():
    assert parse_role("Branch Manager") == Role.BRANCH_MANAGER
    assert parse_role("branch manager") is None
    assert parse_role(None) is None


@pytest.mark.parametrize("role, capability, allowed", [
    (Role.OFFICER, Capability.REVIEW, True),
    (Role.OFFICER, Capability.DECIDE_ESCALATED, False),
    (Role.OFFICER, Capability.RESPOND, True),
    (Role.SUPERVISOR, Capability.DECIDE_ESCALATED, True),
    (Role.SUPERVISOR, Capability.RESPOND, False),
    (Role.ADMIN, Capability.REVIEW, True),
    (Role.BRANCH_MANAGER, Capability.REVIEW, False),
    (Role.BRANCH_MANAGER, Capability.RESPOND, True),
    (Role.BRANCH_MANAGER, Capability.VIEW, True),
])
def test_capability_map(role, capability, allowed):
    assert has_capability(role, capability) is allowed


def test_require_capability_raises_permission_denied():
    with pytest.raises(PermissionDeniedError, match="Branch Manager"):
        require_capability(Role.BRANCH_MANAGER, Capability.REVIEW)
