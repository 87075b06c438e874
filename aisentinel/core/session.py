from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionContext:
    user_id: str
    email: str
    company_id: Optional[int]
    role_level: int
    session_token: str
    source: str              # "header" | "x-session-token" | "cookie"
