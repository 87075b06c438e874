"""
Credential discovery for one navigation.

The rules below are evaluated once, in order; the first one that matches
yields the candidate. Every recognised session parameter is stripped from
the URL whether or not its rule fired, so a refresh or back-navigation
never replays it.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from aisentinel.client.backup import SessionBackup

AUTH_TOKEN_PREFIX = "prod-"
SESSION_TOKEN_PREFIX = "prod-session-"

SESSION_PARAMS = (
    "session_token",
    "session",
    "backup-session",
    "direct-session",
    "auth_token",
    "auth-token",
    "save-account",
    "verified_email",
    "email",
    "role_level",
    "company_name",
    "company_id",
    "verified",
    "logout",
)

TRUTHY = ("true", "1", "yes")


class TokenSource(str, Enum):
    AUTH_TOKEN_PARAM = "auth_token"
    SESSION_PARAM = "session_token"
    BACKUP_PARAM = "backup-session"
    DIRECT_SESSION = "direct-session"
    COOKIE = "cookie"


class TokenCandidate(NamedTuple):
    token: str
    source: TokenSource


@dataclass(frozen=True)
class NavigationContext:
    params: Dict[str, str]
    cookie_token: Optional[str] = None
    backup: Optional[SessionBackup] = None

    def first(self, *names: str) -> Optional[str]:
        for name in names:
            value = self.params.get(name)
            if value:
                return value
        return None

    def flag(self, name: str) -> bool:
        return self.params.get(name, "").lower() in TRUTHY


@dataclass(frozen=True)
class Rule:
    source: TokenSource
    predicate: Callable[[NavigationContext], bool]
    token: Callable[[NavigationContext], str]


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule(
        TokenSource.AUTH_TOKEN_PARAM,
        lambda ctx: (ctx.first("auth_token", "auth-token") or "").startswith(AUTH_TOKEN_PREFIX),
        lambda ctx: ctx.first("auth_token", "auth-token"),
    ),
    Rule(
        TokenSource.SESSION_PARAM,
        lambda ctx: (ctx.first("session_token", "session") or "").startswith(SESSION_TOKEN_PREFIX),
        lambda ctx: ctx.first("session_token", "session"),
    ),
    Rule(
        TokenSource.BACKUP_PARAM,
        lambda ctx: bool(ctx.first("backup-session")),
        lambda ctx: ctx.first("backup-session"),
    ),
    Rule(
        TokenSource.DIRECT_SESSION,
        lambda ctx: ctx.flag("direct-session") and ctx.backup is not None,
        lambda ctx: ctx.backup.session_token,
    ),
    Rule(
        TokenSource.COOKIE,
        lambda ctx: bool(ctx.cookie_token),
        lambda ctx: ctx.cookie_token,
    ),
)


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def scrub_url(url: str) -> Tuple[str, Tuple[str, ...]]:
    """(url without session parameters, names that were removed)"""
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(k, v) for k, v in pairs if k not in SESSION_PARAMS]
    removed = tuple(dict.fromkeys(k for k, _ in pairs if k in SESSION_PARAMS))
    if not removed:
        return url, ()
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(kept), parts.fragment)), removed


@dataclass(frozen=True)
class Extraction:
    candidate: Optional[TokenCandidate]
    scrubbed_url: str
    consumed: Tuple[str, ...] = ()
    logout: bool = False
    verified: bool = False
    save_account: bool = False
    email: Optional[str] = None
    role_level: Optional[int] = None
    company_name: Optional[str] = None
    company_id: Optional[int] = None
    params: Dict[str, str] = field(default_factory=dict)


class TokenExtractor:
    def __init__(self, rules: Tuple[Rule, ...] = DEFAULT_RULES):
        self.rules = rules

    def extract(
        self,
        url: str,
        cookie_token: Optional[str] = None,
        backup: Optional[SessionBackup] = None,
    ) -> Extraction:
        params: Dict[str, str] = {}
        for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
            params.setdefault(key, value)

        ctx = NavigationContext(params, cookie_token, backup)
        scrubbed, consumed = scrub_url(url)
        logout = ctx.flag("logout")

        candidate = None
        if not logout:
            for rule in self.rules:
                if rule.predicate(ctx):
                    candidate = TokenCandidate(rule.token(ctx), rule.source)
                    break

        return Extraction(
            candidate=candidate,
            scrubbed_url=scrubbed,
            consumed=consumed,
            logout=logout,
            verified=ctx.flag("verified"),
            save_account=ctx.flag("save-account"),
            email=ctx.first("verified_email", "email"),
            role_level=_int_or_none(params.get("role_level")),
            company_name=params.get("company_name") or None,
            company_id=_int_or_none(params.get("company_id")),
            params=params,
        )
