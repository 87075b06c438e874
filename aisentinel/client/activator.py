from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import urlsplit

import requests

from aisentinel.client.query_cache import QueryCache
from aisentinel.core.config import is_production_host
from aisentinel.core.logger import get_logger, mask_token

logger = get_logger("aisentinel.client.activator")

COOKIE_NAME = "sessionToken"


def cookie_domain(hostname: str) -> str:
    # http.cookiejar files cookies for dotless hosts under "<host>.local"
    hostname = hostname.lower()
    return hostname if "." in hostname else f"{hostname}.local"


class SessionActivator:
    """
    Owns the effective credential: the ``sessionToken`` cookie in the HTTP
    session's jar and an in-memory header override. Every change starts a
    new cache generation so no identity read from the previous credential
    survives.
    """

    def __init__(
        self,
        http: requests.Session,
        base_url: str,
        cache: QueryCache,
        production_domains: List[str],
        ttl_days: int = 30,
        cookie_name: str = COOKIE_NAME,
    ):
        self.http = http
        self.cache = cache
        self.cookie_name = cookie_name
        self.ttl_days = ttl_days
        self.hostname = urlsplit(base_url).hostname or "localhost"
        self.production = is_production_host(self.hostname, production_domains)
        self._override: Optional[str] = None

    @property
    def header_token(self) -> Optional[str]:
        return self._override

    def cookie_token(self) -> Optional[str]:
        jar = self.http.cookies
        jar.clear_expired_cookies()
        for cookie in jar:
            if cookie.name == self.cookie_name and cookie.value:
                return cookie.value
        return None

    def current_token(self) -> Optional[str]:
        return self._override or self.cookie_token()

    def _write_cookie(self, token: str):
        self._drop_cookies()
        rest = {"SameSite": "Lax"}
        expires = None
        if self.production:
            expires = int((datetime.now(timezone.utc) + timedelta(days=self.ttl_days)).timestamp())
        self.http.cookies.set(
            self.cookie_name,
            token,
            domain=cookie_domain(self.hostname),
            path="/",
            secure=self.production,
            expires=expires,
            rest=rest,
        )

    def _drop_cookies(self):
        jar = self.http.cookies
        stale = [(c.domain, c.path, c.name) for c in jar if c.name == self.cookie_name]
        for domain, path, name in stale:
            try:
                jar.clear(domain, path, name)
            except KeyError:
                pass

    def activate(self, token: str, source: str = "explicit") -> int:
        """
        Make ``token`` the credential for every later request. Does not wait
        for the server; the next identity read proves the token valid.
        Returns the new cache generation.
        """
        self._override = token
        self._write_cookie(token)
        generation = self.cache.new_generation()
        logger.info(
            f"SESSION ACTIVATED | source={source} | token={mask_token(token)} | generation={generation}"
        )
        return generation

    def clear(self) -> int:
        self._override = None
        self._drop_cookies()
        generation = self.cache.new_generation()
        logger.info(f"SESSION CLEARED | generation={generation}")
        return generation
