"""
Key/value persistence with browser ``localStorage`` semantics.

Values are strings. Every store bound to the same backing data (the same
profile file, or the same in-memory dict) shares one change channel, and a
change made through one store is delivered to the *other* stores' listeners,
the way a ``storage`` event reaches every tab except the one that wrote.
"""
import json
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from aisentinel.client.errors import StorageError
from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.storage")


class StorageEvent(NamedTuple):
    key: str
    old_value: Optional[str]
    new_value: Optional[str]


Listener = Callable[[StorageEvent], None]


class StorageChannel:
    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: List[Tuple[object, Listener]] = []

    def subscribe(self, origin, listener: Listener) -> Callable[[], None]:
        entry = (origin, listener)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)
        return unsubscribe

    def publish(self, origin, event: StorageEvent):
        with self._lock:
            targets = [l for o, l in self._listeners if o is not origin]
        for listener in targets:
            try:
                listener(event)
            except Exception:
                # one broken listener must not starve the others
                logger.exception(f"STORAGE LISTENER FAILED | key={event.key}")


class Storage:
    def __init__(self, channel: Optional[StorageChannel] = None):
        self.channel = channel or StorageChannel()

    def _load(self) -> Dict[str, str]:
        raise NotImplementedError

    def _dump(self, data: Dict[str, str]):
        raise NotImplementedError

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str):
        data = self._load()
        old = data.get(key)
        data[key] = value
        self._dump(data)
        if old != value:
            self.channel.publish(self, StorageEvent(key, old, value))

    def remove_item(self, key: str):
        data = self._load()
        if key not in data:
            return
        old = data.pop(key)
        self._dump(data)
        self.channel.publish(self, StorageEvent(key, old, None))

    def keys(self) -> List[str]:
        return list(self._load().keys())

    def on_change(self, listener: Listener) -> Callable[[], None]:
        return self.channel.subscribe(self, listener)


class MemoryStorage(Storage):
    """
    In-process storage. ``tab()`` returns another store over the same data
    and channel. ``quota`` (bytes of serialized JSON) makes writes fail the
    way a full browser quota does.
    """

    def __init__(self, data: Optional[Dict[str, str]] = None,
                 channel: Optional[StorageChannel] = None,
                 quota: Optional[int] = None):
        super().__init__(channel)
        self._data = data if data is not None else {}
        self.quota = quota

    def _load(self) -> Dict[str, str]:
        return dict(self._data)

    def _dump(self, data: Dict[str, str]):
        if self.quota is not None and len(json.dumps(data)) > self.quota:
            raise StorageError("Storage quota exceeded")
        self._data.clear()
        self._data.update(data)

    def tab(self) -> "MemoryStorage":
        return MemoryStorage(self._data, self.channel, self.quota)


class FileStorage(Storage):
    """
    JSON file per profile. The file is re-read on every access so that a
    second process sharing the profile sees the latest write; concurrent
    writers resolve as last write wins.
    """

    FILE_NAME = "local_storage.json"
    _channels: Dict[str, StorageChannel] = {}
    _channels_lock = threading.Lock()

    def __init__(self, profile_dir):
        self.path = Path(profile_dir).expanduser().resolve() / self.FILE_NAME
        with self._channels_lock:
            channel = self._channels.setdefault(str(self.path), StorageChannel())
        super().__init__(channel)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"STORAGE FILE UNREADABLE | path={self.path} | error={e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"STORAGE FILE NOT AN OBJECT | path={self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: Dict[str, str]):
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e
