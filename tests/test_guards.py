import pytest

from aisentinel.client.auth_state import LOADING, AuthSnapshot
from aisentinel.client.guards import (
    ADMINISTRATOR_GUARD,
    AUTHENTICATED_GUARD,
    OWNER_GUARD,
    SUPER_USER_GUARD,
    GuardState,
    classify,
    guard_state,
)


def signed_in(role_level):
    return AuthSnapshot(
        is_authenticated=True,
        user={"email": "a@x.com", "roleLevel": role_level},
        is_loading=False,
    )


SIGNED_OUT = AuthSnapshot(is_authenticated=False, user=None, is_loading=False)


@pytest.mark.parametrize(
    "level, administrator, owner, super_user",
    [
        (997, False, False, False),
        (998, True, False, False),
        (999, True, True, False),
        (1000, True, True, True),
    ],
)
def test_role_thresholds(level, administrator, owner, super_user):
    snapshot = signed_in(level)
    assert ADMINISTRATOR_GUARD.evaluate(snapshot).allowed is administrator
    assert OWNER_GUARD.evaluate(snapshot).allowed is owner
    assert SUPER_USER_GUARD.evaluate(snapshot).allowed is super_user


def test_loading_is_neither_allowed_nor_rejected_as_signed_out():
    decision = ADMINISTRATOR_GUARD.evaluate(LOADING)
    assert decision.state is GuardState.LOADING
    assert decision.allowed is False


def test_signed_out_is_denied():
    decision = AUTHENTICATED_GUARD.evaluate(SIGNED_OUT)
    assert decision.state is GuardState.UNAUTHENTICATED
    assert decision.allowed is False


def test_authenticated_flag_without_user_is_not_authenticated():
    snapshot = AuthSnapshot(is_authenticated=True, user=None, is_loading=False)
    assert guard_state(snapshot) is GuardState.UNAUTHENTICATED


def test_any_signed_in_user_passes_the_authenticated_guard():
    assert AUTHENTICATED_GUARD.evaluate(signed_in(0)).allowed is True


def test_missing_role_level_counts_as_demo():
    snapshot = AuthSnapshot(is_authenticated=True, user={"email": "a@x.com"}, is_loading=False)
    assert snapshot.role_level == 0
    assert ADMINISTRATOR_GUARD.evaluate(snapshot).allowed is False


@pytest.mark.parametrize(
    "level, label",
    [(0, "demo"), (1, "user"), (2, "admin"), (500, "admin"), (998, "administrator"), (999, "owner"), (1000, "super-user")],
)
def test_classify(level, label):
    assert classify(level) == label
