import json
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from aisentinel.client.errors import StorageError
from aisentinel.client.storage import Storage
from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.backup")

BACKUP_KEY = "aisentinel_session_backup"


class SessionBackup(BaseModel):
    """Last activated credential, kept for the direct-session recovery path."""
    model_config = ConfigDict(populate_by_name=True)

    session_token: str = Field(alias="sessionToken", min_length=1)
    email: Optional[str] = None
    saved_at: Optional[datetime] = Field(default=None, alias="savedAt")


class SessionBackupStore:
    def __init__(self, storage: Storage):
        self.storage = storage

    def read(self) -> Optional[SessionBackup]:
        raw = self.storage.get_item(BACKUP_KEY)
        if not raw:
            return None
        try:
            return SessionBackup.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("SESSION BACKUP CORRUPT | ignoring")
            return None

    def write(self, session_token: str, email: Optional[str] = None):
        backup = SessionBackup(
            session_token=session_token,
            email=email,
            saved_at=datetime.now(timezone.utc),
        )
        try:
            self.storage.set_item(BACKUP_KEY, backup.model_dump_json(by_alias=True))
        except StorageError as e:
            logger.error(f"SESSION BACKUP NOT PERSISTED | error={e}")

    def clear(self):
        try:
            self.storage.remove_item(BACKUP_KEY)
        except StorageError as e:
            logger.error(f"SESSION BACKUP NOT CLEARED | error={e}")
