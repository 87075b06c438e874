from dataclasses import dataclass
from typing import Any, Dict, Optional

from aisentinel.client.api import ApiClient, ON_401_RETURN_NONE
from aisentinel.client.errors import ApiError
from aisentinel.client.query_cache import QueryCache
from aisentinel.core import roles
from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.auth_state")

IDENTITY_KEY = "/api/auth/me"
# a credential change while a read is in flight forces a re-read; bounded so
# a storm of switches cannot spin forever
MAX_GENERATION_RETRIES = 3


@dataclass(frozen=True)
class AuthSnapshot:
    is_authenticated: bool
    user: Optional[Dict[str, Any]]
    is_loading: bool
    error: Optional[Exception] = None

    @property
    def email(self) -> Optional[str]:
        return (self.user or {}).get("email")

    @property
    def role_level(self) -> int:
        level = (self.user or {}).get("roleLevel")
        return level if isinstance(level, int) else roles.DEMO


LOADING = AuthSnapshot(is_authenticated=False, user=None, is_loading=True)


class AuthState:
    """
    "Who am I now", read from ``GET /api/auth/me`` through the shared query
    cache. Concurrent readers share one request.
    """

    def __init__(self, api: ApiClient, cache: QueryCache):
        self.api = api
        self.cache = cache

    def _load(self) -> AuthSnapshot:
        try:
            data = self.api.get(IDENTITY_KEY, on401=ON_401_RETURN_NONE)
        except ApiError as e:
            logger.error(f"IDENTITY CHECK FAILED | error={e}")
            return AuthSnapshot(is_authenticated=False, user=None, is_loading=False, error=e)

        if not isinstance(data, dict) or not data.get("authenticated"):
            return AuthSnapshot(is_authenticated=False, user=None, is_loading=False)

        user = data.get("user") or None
        logger.info(f"IDENTITY CONFIRMED | email={(user or {}).get('email')}")
        return AuthSnapshot(is_authenticated=True, user=user, is_loading=False)

    def current(self) -> AuthSnapshot:
        """Blocking read; shares a request already in flight."""
        snapshot = LOADING
        for _ in range(MAX_GENERATION_RETRIES):
            generation = self.cache.generation
            snapshot = self.cache.fetch(IDENTITY_KEY, self._load)
            if self.cache.generation == generation:
                return snapshot
            logger.info("IDENTITY READ OUTDATED | credential changed mid-flight, re-reading")
        return snapshot

    def snapshot(self) -> AuthSnapshot:
        """Non-blocking read: the cached answer, or the loading state."""
        found, value = self.cache.peek(IDENTITY_KEY)
        return value if found else LOADING

    def invalidate(self):
        self.cache.invalidate(IDENTITY_KEY)
