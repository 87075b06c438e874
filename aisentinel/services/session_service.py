from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from aisentinel.core.logger import logger, mask_token
from aisentinel.core.security import generate_session_token, session_expiry
from aisentinel.models.models import User, UserSession


def get_session(db: Session, session_token: str) -> Optional[UserSession]:
    return db.query(UserSession).filter(
        UserSession.session_token == session_token
    ).first()


def create_session(db: Session, user: User, session_token: Optional[str] = None) -> UserSession:
    session_token = session_token or generate_session_token()
    user_session = UserSession(
        user_id=user.id,
        session_token=session_token,
        email=user.email,
        company_id=user.company_id,
        role_level=user.role_level,
        expires_at=session_expiry(),
        last_accessed_at=datetime.utcnow(),
    )
    db.add(user_session)
    db.flush()
    logger.info(
        f"SESSION CREATED | user_id={user.id} | email={user.email} | token={mask_token(session_token)}"
    )
    return user_session


def verify_session(db: Session, session_token: Optional[str]):
    """
    Returns (session, exists). session is None when the token is unknown,
    expired, or belongs to an inactive user; exists tells the first case
    apart from the other two.
    """
    if not session_token:
        return None, False

    user_session = get_session(db, session_token)
    if not user_session:
        return None, False

    if user_session.expires_at < datetime.utcnow():
        logger.info(f"SESSION EXPIRED | token={mask_token(session_token)}")
        return None, True

    if not user_session.user or not user_session.user.is_active:
        logger.warning(f"SESSION USER INACTIVE | token={mask_token(session_token)}")
        return None, True

    user_session.last_accessed_at = datetime.utcnow()
    db.commit()
    return user_session, True


def refresh_session(db: Session, user_session: UserSession) -> UserSession:
    user_session.expires_at = session_expiry()
    user_session.last_accessed_at = datetime.utcnow()
    db.flush()
    return user_session


def revoke_session(db: Session, session_token: str) -> bool:
    user_session = get_session(db, session_token)
    if not user_session:
        return False
    db.delete(user_session)
    db.commit()
    logger.info(f"SESSION REVOKED | token={mask_token(session_token)}")
    return True
