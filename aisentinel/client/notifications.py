from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List

from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.notifications")

MAX_TOASTS = 50


@dataclass(frozen=True)
class Toast:
    title: str
    description: str = ""
    variant: str = "default"  # "default" | "destructive"


class Notifier:
    """User-visible notices. The UI layer renders whatever lands here."""

    def __init__(self, max_toasts: int = MAX_TOASTS):
        # most recent last; older notices fall off
        self.toasts: Deque[Toast] = deque(maxlen=max_toasts)
        self._listeners: List[Callable[[Toast], None]] = []

    def toast(self, title: str, description: str = "", variant: str = "default") -> Toast:
        item = Toast(title, description, variant)
        self.toasts.append(item)
        log = logger.warning if variant == "destructive" else logger.info
        log(f"TOAST | title={title} | description={description}")
        for listener in list(self._listeners):
            listener(item)
        return item

    def error(self, title: str, description: str = "") -> Toast:
        return self.toast(title, description, variant="destructive")

    def subscribe(self, listener: Callable[[Toast], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe
