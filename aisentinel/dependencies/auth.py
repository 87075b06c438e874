from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from aisentinel.core import roles
from aisentinel.core.auth_context import resolve_token
from aisentinel.core.session import SessionContext
from aisentinel.db.session import get_db
from aisentinel.services.session_service import verify_session


def get_optional_session(
    request: Request,
    db: Session = Depends(get_db)
) -> Optional[SessionContext]:
    token, source = resolve_token(request)
    user_session, _ = verify_session(db, token)
    if not user_session:
        return None

    user = user_session.user
    return SessionContext(
        user_id=user.id,
        email=user.email,
        company_id=user.company_id,
        role_level=user.role_level,
        session_token=user_session.session_token,
        source=source,
    )


def get_current_session(
    session: Optional[SessionContext] = Depends(get_optional_session)
) -> SessionContext:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return session


def require_role_level(level: int):
    def dependency(
        session: SessionContext = Depends(get_current_session)
    ) -> SessionContext:
        if not roles.has_access_level(session.role_level, level):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{roles.role_from_level(level)} access required"
            )
        return session
    return dependency


require_administrator = require_role_level(roles.ADMINISTRATOR)
require_owner = require_role_level(roles.OWNER)
require_super_user = require_role_level(roles.SUPER_USER)
