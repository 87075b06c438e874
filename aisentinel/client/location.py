from typing import List
from urllib.parse import urljoin, urlsplit


class Location:
    """
    The page URL plus its session history. ``replace_state`` rewrites the
    current entry, so refresh and back-navigation see the rewritten URL.
    """

    def __init__(self, href: str = "http://localhost:5000/"):
        self._entries: List[str] = [href]
        self._index = 0

    @property
    def href(self) -> str:
        return self._entries[self._index]

    @property
    def hostname(self) -> str:
        return urlsplit(self.href).hostname or ""

    @property
    def pathname(self) -> str:
        return urlsplit(self.href).path or "/"

    def _resolve(self, url: str) -> str:
        return urljoin(self.href, url)

    def assign(self, url: str):
        """Navigate: drops forward entries and pushes a new one."""
        del self._entries[self._index + 1:]
        self._entries.append(self._resolve(url))
        self._index += 1

    def replace_state(self, url: str):
        self._entries[self._index] = self._resolve(url)
