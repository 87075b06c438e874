"""
The one place that reads or writes session state on the client.

``SessionManager`` wires the extractor, account store, activator and auth
state together. UI code talks to it and never to cookies or storage.
"""
import threading
from typing import Callable, Dict, List, Optional

import requests

from aisentinel.client.accounts import AccountStore, SavedAccount
from aisentinel.client.activator import SessionActivator
from aisentinel.client.api import ApiClient
from aisentinel.client.auth_state import AuthSnapshot, AuthState
from aisentinel.client.backup import SessionBackupStore
from aisentinel.client.demo import DEMO_MESSAGE, demo_guard
from aisentinel.client.errors import AccountNotFoundError, ActiveAccountError, ApiError
from aisentinel.client.extractor import Extraction, TokenCandidate, TokenExtractor, TokenSource
from aisentinel.client.location import Location
from aisentinel.client.notifications import Notifier
from aisentinel.client.query_cache import QueryCache
from aisentinel.client.storage import FileStorage, MemoryStorage, Storage
from aisentinel.core import roles
from aisentinel.core.config import ClientSettings
from aisentinel.core.logger import get_logger, mask_token

logger = get_logger("aisentinel.client.session")

LOGIN_PATH = "/login"


def _schedule(delay: float, fn: Callable[[], None]):
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()


class UnauthorizedHandler:
    """Shared 401 route: drop the credential, tell the user, go to login."""

    def __init__(self, manager: "SessionManager", delay: float, schedule=_schedule):
        self.manager = manager
        self.delay = delay
        self.schedule = schedule

    def __call__(self, url: str):
        logger.warning(f"UNAUTHORIZED | url={url} | redirecting to {LOGIN_PATH}")
        self.manager.activator.clear()
        self.manager.notifier.error("Unauthorized", "You are logged out. Logging in again...")
        self.schedule(self.delay, lambda: self.manager.location.assign(LOGIN_PATH))


class SessionManager:
    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        storage: Optional[Storage] = None,
        location: Optional[Location] = None,
        http: Optional[requests.Session] = None,
        notifier: Optional[Notifier] = None,
        schedule=_schedule,
    ):
        self.settings = settings or ClientSettings()
        if storage is None:
            storage = FileStorage(self.settings.PROFILE_DIR) if self.settings.PROFILE_DIR else MemoryStorage()
        self.storage = storage
        self.location = location or Location(self.settings.BASE_URL.rstrip("/") + "/")
        self.http = http or requests.Session()
        self.notifier = notifier or Notifier()

        self.cache = QueryCache(stale_time=self.settings.IDENTITY_STALE_SECONDS)
        self.accounts = AccountStore(storage, max_accounts=self.settings.MAX_SAVED_ACCOUNTS)
        self.backup = SessionBackupStore(storage)
        self.activator = SessionActivator(
            self.http,
            self.settings.BASE_URL,
            self.cache,
            production_domains=self.settings.PRODUCTION_DOMAINS,
            ttl_days=self.settings.SESSION_TTL_DAYS,
        )
        self.unauthorized = UnauthorizedHandler(self, self.settings.UNAUTHORIZED_REDIRECT_DELAY, schedule)
        self.api = ApiClient(
            self.settings.BASE_URL,
            http=self.http,
            timeout=self.settings.REQUEST_TIMEOUT,
            token_provider=lambda: self.activator.header_token,
            on_unauthorized=self.unauthorized,
        )
        self.auth = AuthState(self.api, self.cache)
        self.extractor = TokenExtractor()

        self._handlers: Dict[TokenSource, Callable[[TokenCandidate, Extraction], bool]] = {
            TokenSource.AUTH_TOKEN_PARAM: self._handle_auth_token,
            TokenSource.SESSION_PARAM: self._handle_session_param,
            TokenSource.BACKUP_PARAM: self._handle_backup_param,
            TokenSource.DIRECT_SESSION: self._handle_direct_session,
            TokenSource.COOKIE: self._handle_cookie,
        }

    # -----------------------------
    # Navigation
    # -----------------------------
    def process_navigation(self) -> Optional[TokenCandidate]:
        """
        Run the extractor over the current URL and apply the winning rule.
        Returns the candidate that changed the credential, or None. An
        existing cookie is already in effect, so it never counts.
        """
        extraction = self.extractor.extract(
            self.location.href,
            cookie_token=self.activator.cookie_token(),
            backup=self.backup.read(),
        )

        # strip before acting so a failed activation cannot replay on refresh
        if extraction.consumed:
            self.location.replace_state(extraction.scrubbed_url)
            logger.info(f"URL SCRUBBED | removed={','.join(extraction.consumed)}")

        if extraction.logout:
            self.sign_out()
            return None

        if extraction.verified:
            self.notifier.toast("Email verified", "Your email address has been verified.")

        candidate = extraction.candidate
        if candidate is None:
            return None

        applied = self._handlers[candidate.source](candidate, extraction)
        return candidate if applied else None

    def _handle_auth_token(self, candidate: TokenCandidate, extraction: Extraction) -> bool:
        self.activator.activate(candidate.token, source=candidate.source.value)
        if extraction.save_account:
            self._enrich_and_save(candidate.token, extraction)
        return True

    def _handle_session_param(self, candidate: TokenCandidate, extraction: Extraction) -> bool:
        try:
            self.api.post("/api/auth/activate-session", json={"sessionToken": candidate.token})
        except ApiError as e:
            logger.error(f"SESSION ACTIVATION FAILED | token={mask_token(candidate.token)} | error={e}")
            self.notifier.error("Session activation failed", e.message)
            return False

        self.activator.activate(candidate.token, source=candidate.source.value)
        self.backup.write(candidate.token, extraction.email)
        if extraction.email or extraction.save_account:
            self._enrich_and_save(candidate.token, extraction)
        return True

    def _handle_backup_param(self, candidate: TokenCandidate, extraction: Extraction) -> bool:
        self.activator.activate(candidate.token, source=candidate.source.value)
        self.backup.write(candidate.token, extraction.email)
        if extraction.save_account:
            self._enrich_and_save(candidate.token, extraction)
        return True

    def _handle_direct_session(self, candidate: TokenCandidate, extraction: Extraction) -> bool:
        self.activator.activate(candidate.token, source=candidate.source.value)
        return True

    def _handle_cookie(self, candidate: TokenCandidate, extraction: Extraction) -> bool:
        # already the effective credential; nothing to write
        return False

    def _enrich_and_save(self, token: str, extraction: Extraction) -> Optional[SavedAccount]:
        snapshot = self.auth.current()
        if not snapshot.is_authenticated:
            logger.warning(f"ACCOUNT NOT SAVED | server rejected token={mask_token(token)}")
            return None

        user = snapshot.user or {}
        email = user.get("email") or extraction.email
        if not email:
            logger.warning("ACCOUNT NOT SAVED | no email for identity")
            return None

        level = user.get("roleLevel")
        if not isinstance(level, int):
            level = extraction.role_level if extraction.role_level is not None else roles.USER
        account = SavedAccount(
            email=email,
            session_token=token,
            role=user.get("role") or roles.role_from_level(level),
            role_level=level,
            company_id=user.get("companyId") if user.get("companyId") is not None else extraction.company_id,
            company_name=user.get("companyName") or extraction.company_name,
        )
        return self.accounts.save(account)

    # -----------------------------
    # Session operations
    # -----------------------------
    def reload(self) -> Optional[TokenCandidate]:
        """Refresh: the page comes back at the same URL and navigation runs again."""
        return self.process_navigation()

    def current_token(self) -> Optional[str]:
        return self.activator.current_token()

    def activate(self, token: str) -> int:
        return self.activator.activate(token)

    def auth_state(self) -> AuthSnapshot:
        return self.auth.current()

    def active_email(self) -> Optional[str]:
        snapshot = self.auth.current() if self.current_token() else self.auth.snapshot()
        return snapshot.email.lower() if snapshot.email else None

    def remember_current_account(self) -> Optional[SavedAccount]:
        token = self.current_token()
        if not token:
            return None
        return self._enrich_and_save(token, Extraction(candidate=None, scrubbed_url=self.location.href))

    def switch_account(self, email: str) -> SavedAccount:
        account = self.accounts.get(email)
        if account is None:
            raise AccountNotFoundError(f"No saved account for {email}")

        self.notifier.toast("Switching Account", f"Switching to {account.email}...")
        self.activator.activate(account.session_token, source="account-switch")
        self.accounts.update_last_used(account.email)
        return account

    def remove_account(self, email: str) -> bool:
        """
        Forget a saved account. The account behind the live session cannot
        be removed: the UI would stay signed in as an untracked identity.
        """
        email = email.strip().lower()
        account = self.accounts.get(email)
        token = self.current_token()
        if email == self.active_email() or (account is not None and token and account.session_token == token):
            self.notifier.toast("Cannot Delete", "Cannot delete the currently active account")
            raise ActiveAccountError(f"{email} is the active account")

        removed = self.accounts.remove(email)
        if removed:
            self.notifier.toast("Account Removed", f"Removed {email} from saved accounts")
        return removed

    def create_session(self, email: str, role_level: Optional[int] = None,
                       company_name: Optional[str] = None) -> Optional[SavedAccount]:
        body = {"email": email}
        if role_level is not None:
            body["roleLevel"] = role_level
        if company_name:
            body["companyName"] = company_name

        try:
            data = self.api.post("/api/auth/create-session", json=body)
        except ApiError as e:
            self.notifier.error("Session creation failed", e.message)
            return None

        token = data.get("sessionToken")
        if not token:
            self.notifier.error("Session creation failed", "Server returned no session token")
            return None

        self.activator.activate(token, source="create-session")
        self.backup.write(token, data.get("email"))
        return self._enrich_and_save(token, Extraction(candidate=None, scrubbed_url=self.location.href))

    def sign_out(self):
        if self.current_token():
            try:
                self.api.post("/api/auth/logout")
            except ApiError as e:
                # local state is cleared regardless
                logger.warning(f"SERVER LOGOUT FAILED | error={e}")
        self.activator.clear()
        self.backup.clear()
        self.notifier.toast("Logged Out", "You have been logged out successfully")

    # -----------------------------
    # Observers
    # -----------------------------
    def saved_accounts(self) -> List[SavedAccount]:
        return self.accounts.list()

    def on_accounts_changed(self, listener: Callable[[List[SavedAccount]], None]) -> Callable[[], None]:
        return self.accounts.on_change(listener)

    def mutation(self, fn):
        """Decorator: block ``fn`` in demo mode and show the demo notice."""
        return demo_guard(
            lambda: self.auth.current().user,
            on_demo=lambda: self.notifier.toast("Demo Mode", DEMO_MESSAGE),
            path_getter=lambda: self.location.pathname,
        )(fn)
