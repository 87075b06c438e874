from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from aisentinel.core import roles
from aisentinel.core.logger import logger
from aisentinel.models.models import Company, User
from aisentinel.services.company_service import (
    get_active_employee,
    get_company_by_email_domain,
)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def _match_company_roster(db: Session, email: str):
    """(company, role_level) when the email is on an active company roster."""
    company = get_company_by_email_domain(db, email)
    if not company:
        return None, None
    employee = get_active_employee(db, company, email)
    if not employee:
        return None, None
    level = roles.EMPLOYEE_ROLE_LEVELS.get(employee.role or "employee", roles.USER)
    return company, level


def create_user(
    db: Session,
    email: str,
    role_level: int = roles.DEMO,
    company: Optional[Company] = None,
    email_verified: bool = False,
) -> User:
    email = email.lower()
    user = User(
        email=email,
        first_name=email.split("@")[0],
        last_name="User",
        role=roles.role_from_level(role_level),
        role_level=role_level,
        company_id=company.id if company else None,
        is_active=True,
        email_verified=email_verified,
        last_login_at=datetime.utcnow(),
    )
    db.add(user)
    db.flush()
    logger.info(f"USER CREATED | user_id={user.id} | email={email} | role_level={role_level}")
    return user


def get_or_create_verified_user(db: Session, email: str) -> User:
    """
    Email verification entry point. New users are matched against company
    rosters by email domain; anyone unmatched lands at demo level.
    Existing users keep their level unless they have no company yet and a
    roster now lists them.
    """
    user = get_user_by_email(db, email)
    if not user:
        company, level = _match_company_roster(db, email)
        return create_user(
            db,
            email,
            role_level=level if level is not None else roles.DEMO,
            company=company,
            email_verified=True,
        )

    if not user.company_id:
        company, level = _match_company_roster(db, email)
        if company:
            user.company_id = company.id
            user.role_level = level
            user.role = roles.role_from_level(level)
            logger.info(f"USER MATCHED TO COMPANY | user_id={user.id} | company_id={company.id}")

    user.email_verified = True
    user.last_login_at = datetime.utcnow()
    db.flush()
    return user
