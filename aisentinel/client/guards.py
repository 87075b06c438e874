from dataclasses import dataclass
from enum import Enum

from aisentinel.client.auth_state import AuthSnapshot
from aisentinel.core import roles


class GuardState(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def guard_state(snapshot: AuthSnapshot) -> GuardState:
    # only a confirmed server identity authenticates
    if snapshot.is_loading:
        return GuardState.LOADING
    if snapshot.is_authenticated and snapshot.user:
        return GuardState.AUTHENTICATED
    return GuardState.UNAUTHENTICATED


def classify(role_level: int) -> str:
    return roles.role_from_level(role_level)


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    allowed: bool


@dataclass(frozen=True)
class RouteGuard:
    name: str
    required_level: int

    def allows(self, role_level) -> bool:
        return roles.has_access_level(role_level, self.required_level)

    def evaluate(self, snapshot: AuthSnapshot) -> GuardDecision:
        state = guard_state(snapshot)
        allowed = state is GuardState.AUTHENTICATED and self.allows(snapshot.role_level)
        return GuardDecision(state, allowed)


AUTHENTICATED_GUARD = RouteGuard("authenticated", roles.DEMO)
ADMINISTRATOR_GUARD = RouteGuard("administrator", roles.ADMINISTRATOR)
OWNER_GUARD = RouteGuard("owner", roles.OWNER)
SUPER_USER_GUARD = RouteGuard("super-user", roles.SUPER_USER)
