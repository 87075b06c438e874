# aisentinel/client/__init__.py

from .accounts import AccountStore, SavedAccount
from .auth_state import AuthSnapshot, AuthState
from .errors import (
    AccountNotFoundError,
    ActiveAccountError,
    ApiError,
    DemoModeError,
    StorageError,
    UnauthorizedError,
)
from .extractor import TokenCandidate, TokenExtractor, TokenSource
from .guards import ADMINISTRATOR_GUARD, OWNER_GUARD, SUPER_USER_GUARD, GuardState, RouteGuard
from .location import Location
from .session import SessionManager
from .storage import FileStorage, MemoryStorage
