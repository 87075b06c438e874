"""
Remembered identities for this profile.

Records live as a JSON array under ``aisentinel_saved_accounts`` with the
same camelCase keys the web client writes, so a profile written by either
client loads in the other. Email is the natural key.
"""
import json
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aisentinel.client.errors import StorageError
from aisentinel.client.storage import Storage, StorageEvent
from aisentinel.core import roles
from aisentinel.core.logger import get_logger, mask_token

logger = get_logger("aisentinel.client.accounts")

STORAGE_KEY = "aisentinel_saved_accounts"
MAX_SAVED_ACCOUNTS = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    session_token: str = Field(alias="sessionToken", min_length=1)
    role: str = roles.ROLE_NAMES[roles.USER]
    role_level: int = Field(default=roles.USER, alias="roleLevel", ge=0, le=1000)
    company_id: Optional[int] = Field(default=None, alias="companyId")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    last_used: datetime = Field(default_factory=utcnow, alias="lastUsed")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("not an email address")
        return value

    @field_validator("last_used")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def __repr__(self):
        return f"SavedAccount(email={self.email!r}, role_level={self.role_level}, token={mask_token(self.session_token)!r})"


def _by_recency(accounts: List[SavedAccount]) -> List[SavedAccount]:
    return sorted(accounts, key=lambda a: a.last_used, reverse=True)


class AccountStore:
    def __init__(self, storage: Storage, max_accounts: int = MAX_SAVED_ACCOUNTS):
        self.storage = storage
        self.max_accounts = max_accounts
        # result of the last write that failed to persist, and the stored
        # blob it was meant to replace
        self._fallback: Optional[List[SavedAccount]] = None
        self._fallback_base: Optional[str] = None

    def _read(self) -> List[SavedAccount]:
        raw = self.storage.get_item(STORAGE_KEY)
        if self._fallback is None:
            return self._parse(raw)
        if raw == self._fallback_base:
            return list(self._fallback)

        # another store wrote since our failed write: its data wins per
        # email unless ours is newer
        logger.info("SAVED ACCOUNTS CHANGED ELSEWHERE | merging unsaved accounts")
        merged = {a.email: a for a in self._parse(raw)}
        for account in self._fallback:
            known = merged.get(account.email)
            if known is None or account.last_used > known.last_used:
                merged[account.email] = account
        return list(merged.values())

    def _parse(self, raw: Optional[str]) -> List[SavedAccount]:
        if not raw:
            return []

        try:
            entries = json.loads(raw)
        except ValueError:
            logger.warning("SAVED ACCOUNTS CORRUPT | treating as empty")
            return []
        if not isinstance(entries, list):
            logger.warning("SAVED ACCOUNTS NOT A LIST | treating as empty")
            return []

        accounts = {}
        for entry in entries:
            try:
                account = SavedAccount.model_validate(entry)
            except ValidationError:
                logger.warning("SAVED ACCOUNT SKIPPED | malformed entry")
                continue
            known = accounts.get(account.email)
            if known is None or account.last_used > known.last_used:
                accounts[account.email] = account
        return list(accounts.values())

    def _write(self, accounts: List[SavedAccount]):
        base = self.storage.get_item(STORAGE_KEY)
        try:
            payload = json.dumps([a.to_storage() for a in accounts])
            self.storage.set_item(STORAGE_KEY, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"SAVED ACCOUNTS NOT PERSISTED | keeping in memory | error={e}")
            self._fallback = list(accounts)
            self._fallback_base = base
            return
        self._fallback = None
        self._fallback_base = None

    def list(self) -> List[SavedAccount]:
        """Most recently used first. Never raises on bad persisted data."""
        return _by_recency(self._read())

    def get(self, email: str) -> Optional[SavedAccount]:
        email = email.strip().lower()
        for account in self._read():
            if account.email == email:
                return account
        return None

    def save(self, account: SavedAccount) -> SavedAccount:
        others = [a for a in self._read() if a.email != account.email]
        accounts = [account] + _by_recency(others)
        self._write(accounts[: self.max_accounts])
        logger.info(f"ACCOUNT SAVED | email={account.email} | role_level={account.role_level} | total={min(len(accounts), self.max_accounts)}")
        return account

    def remove(self, email: str) -> bool:
        email = email.strip().lower()
        accounts = self._read()
        remaining = [a for a in accounts if a.email != email]
        if len(remaining) == len(accounts):
            return False
        self._write(remaining)
        logger.info(f"ACCOUNT REMOVED | email={email}")
        return True

    def update_last_used(self, email: str, when: Optional[datetime] = None) -> Optional[SavedAccount]:
        email = email.strip().lower()
        accounts = self._read()
        touched = None
        for i, account in enumerate(accounts):
            if account.email == email:
                touched = account.model_copy(update={"last_used": when or utcnow()})
                accounts[i] = touched
        if touched is not None:
            self._write(accounts)
        return touched

    def clear(self):
        self._fallback = None
        self._fallback_base = None
        base = self.storage.get_item(STORAGE_KEY)
        try:
            self.storage.remove_item(STORAGE_KEY)
        except StorageError as e:
            logger.error(f"SAVED ACCOUNTS NOT CLEARED | error={e}")
            self._fallback = []
            self._fallback_base = base
        logger.info("ALL ACCOUNTS CLEARED")

    def most_recent(self) -> Optional[SavedAccount]:
        accounts = self.list()
        return accounts[0] if accounts else None

    def has_multiple(self) -> bool:
        return len(self._read()) > 1

    def on_change(self, listener: Callable[[List[SavedAccount]], None]) -> Callable[[], None]:
        """Called with the fresh list whenever another store writes the key."""
        def _relay(event: StorageEvent):
            if event.key == STORAGE_KEY:
                listener(self.list())
        return self.storage.on_change(_relay)
