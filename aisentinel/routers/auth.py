from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aisentinel.core import roles
from aisentinel.core.auth_context import resolve_token
from aisentinel.core.config import settings, is_production_host
from aisentinel.core.logger import logger, mask_token
from aisentinel.core.security import create_verification_token, decode_verification_token
from aisentinel.db.session import get_db
from aisentinel.schemas.auth import (
    CreateSessionSchema,
    SessionTokenSchema,
    VerificationRequestSchema,
    user_payload,
)
from aisentinel.services.company_service import get_or_create_company
from aisentinel.services.session_service import (
    create_session,
    refresh_session,
    revoke_session,
    verify_session,
)
from aisentinel.services.user_service import create_user, get_or_create_verified_user, get_user_by_email


router = APIRouter(prefix="/api/auth", tags=["Auth"])


def set_session_cookie(request: Request, response: Response, token: str):
    production = is_production_host(request.url.hostname, settings.PRODUCTION_DOMAINS)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=production  # localhost has no TLS
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


def database_connected(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"DATABASE CHECK FAILED | error={e}")
        return False


@router.get("/me")
def me(request: Request, db: Session = Depends(get_db)):
    token, source = resolve_token(request)
    connected = database_connected(db)

    if not token:
        return {
            "authenticated": False,
            "sessionValid": False,
            "sessionExists": False,
            "databaseConnected": connected,
            "message": "No session token provided"
        }

    if not connected:
        return {
            "authenticated": False,
            "sessionValid": False,
            "sessionExists": False,
            "databaseConnected": False,
            "message": "Database unavailable"
        }

    user_session, exists = verify_session(db, token)
    if not user_session:
        logger.info(f"AUTH ME REJECTED | source={source} | token={mask_token(token)} | exists={exists}")
        return {
            "authenticated": False,
            "sessionValid": False,
            "sessionExists": exists,
            "databaseConnected": True,
            "message": "Session expired" if exists else "Invalid session token"
        }

    return {
        "authenticated": True,
        "user": user_payload(user_session.user),
        "sessionValid": True,
        "sessionExists": True,
        "databaseConnected": True
    }


@router.post("/activate-session")
def activate_session(
    body: SessionTokenSchema,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    user_session, _ = verify_session(db, body.session_token)
    if not user_session:
        logger.warning(f"ACTIVATE FAILED | token={mask_token(body.session_token)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session token"
        )

    set_session_cookie(request, response, user_session.session_token)
    logger.info(f"ACTIVATE SUCCESS | email={user_session.email} | token={mask_token(body.session_token)}")

    return {
        "success": True,
        "message": "Session activated",
        "user": user_payload(user_session.user)
    }


@router.post("/create-session", status_code=status.HTTP_201_CREATED)
def create_session_endpoint(
    body: CreateSessionSchema,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    email = body.email.lower()

    # reuse the caller's live session for the same identity
    token, _ = resolve_token(request)
    existing, _ = verify_session(db, token)
    if existing and existing.email == email:
        refresh_session(db, existing)
        db.commit()
        set_session_cookie(request, response, existing.session_token)
        return {
            "success": True,
            "sessionId": existing.id,
            "sessionToken": existing.session_token,
            "userId": existing.user_id,
            "email": existing.email,
            "databaseConnected": True
        }

    if get_user_by_email(db, email):
        # an existing identity is proven through /verify, never by naming it
        logger.warning(f"CREATE SESSION REFUSED | email={email} | reason=existing account without its session")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account exists; sign in through email verification"
        )

    level = body.role_level if body.role_level is not None else roles.USER
    if settings.is_production and level > roles.USER:
        logger.warning(f"CREATE SESSION LEVEL CLAMPED | email={email} | requested={level}")
        level = roles.USER

    try:
        company = None
        if body.company_name:
            company = get_or_create_company(db, body.company_name, primary_admin_email=email)
        user = create_user(db, email, role_level=level, company=company)
        user_session = create_session(db, user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"CREATE SESSION FAILED | email={email} | error={e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to create session"
        )

    set_session_cookie(request, response, user_session.session_token)

    return {
        "success": True,
        "sessionId": user_session.id,
        "sessionToken": user_session.session_token,
        "userId": user.id,
        "email": user.email,
        "databaseConnected": True
    }


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    token, _ = resolve_token(request)
    revoked = revoke_session(db, token) if token else False
    clear_session_cookie(response)
    return {"success": True, "revoked": revoked}


@router.post("/transfer-session")
def transfer_session(
    body: SessionTokenSchema,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    user_session, _ = verify_session(db, body.session_token)
    if not user_session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session transfer failed"
        )

    set_session_cookie(request, response, user_session.session_token)
    return {
        "success": True,
        "message": "Session transferred successfully",
        "redirectTo": "/chat"
    }


@router.post("/request-verification")
def request_verification(body: VerificationRequestSchema):
    token = create_verification_token(body.email)
    verification_url = f"{router.prefix}/verify?{urlencode({'token': token})}"

    # email delivery is handled outside this service
    logger.info(f"VERIFICATION ISSUED | email={body.email.lower()}")

    payload = {
        "success": True,
        "message": "Verification email sent"
    }
    if not settings.is_production:
        payload["verificationUrl"] = verification_url
    return payload


@router.get("/verify")
def verify_email(
    token: str = Query(..., description="Email verification token"),
    db: Session = Depends(get_db)
):
    email = decode_verification_token(token)

    try:
        user = get_or_create_verified_user(db, email)
        user_session = create_session(db, user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"VERIFY FAILED | email={email} | error={e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to create session"
        )

    params = {
        "session_token": user_session.session_token,
        "verified_email": user.email,
        "role_level": user.role_level,
        "verified": "true",
    }
    if user.company:
        params["company_id"] = user.company.id
        params["company_name"] = user.company.name

    logger.info(f"VERIFY SUCCESS | email={user.email} | role_level={user.role_level}")
    return RedirectResponse(url=f"/?{urlencode(params)}", status_code=status.HTTP_302_FOUND)
