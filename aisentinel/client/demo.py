import functools
from typing import Any, Callable, Dict, Optional

from aisentinel.client.errors import DemoModeError
from aisentinel.core import roles
from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.demo")

DEMO_EMAIL = "demo@aisentinel.com"
DEMO_PATH = "/demo"
DEMO_MESSAGE = "Demo Mode - Read Only View"


def is_demo_mode(user: Optional[Dict[str, Any]], path: Optional[str] = None) -> bool:
    if path == DEMO_PATH:
        return True
    if not user:
        return False
    return user.get("email") == DEMO_EMAIL or user.get("roleLevel") == roles.DEMO


def ensure_not_demo(user: Optional[Dict[str, Any]], path: Optional[str] = None):
    if is_demo_mode(user, path):
        raise DemoModeError(DEMO_MESSAGE)


def demo_guard(
    user_getter: Callable[[], Optional[Dict[str, Any]]],
    on_demo: Optional[Callable[[], None]] = None,
    path_getter: Optional[Callable[[], str]] = None,
):
    """
    Decorator for mutation handlers. In demo mode the handler does not run;
    ``on_demo`` (the explanatory dialog) runs instead and the call returns
    None. A DemoModeError raised inside the handler ends the same way.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                ensure_not_demo(user_getter(), path_getter() if path_getter else None)
                return fn(*args, **kwargs)
            except DemoModeError:
                logger.info(f"DEMO MODE | blocked={fn.__name__}")
                if on_demo:
                    on_demo()
                return None
        return wrapper
    return decorator
