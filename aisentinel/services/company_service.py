from typing import Optional

from sqlalchemy.orm import Session

from aisentinel.models.models import Company, CompanyEmployee
from aisentinel.core.logger import logger


def get_company_by_name(db: Session, name: str) -> Optional[Company]:
    return db.query(Company).filter(Company.name == name).first()


def get_company_by_email_domain(db: Session, email: str) -> Optional[Company]:
    if "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].lower()
    return db.query(Company).filter(
        Company.domain == domain,
        Company.is_active == True  # noqa: E712
    ).first()


def get_or_create_company(db: Session, name: str, primary_admin_email: Optional[str] = None) -> Company:
    company = get_company_by_name(db, name)
    if company:
        return company

    company = Company(
        name=name,
        primary_admin_email=primary_admin_email,
        is_active=True
    )
    db.add(company)
    db.flush()
    logger.info(f"COMPANY CREATED | company_id={company.id} | name={name}")
    return company


def get_active_employee(db: Session, company: Company, email: str) -> Optional[CompanyEmployee]:
    return db.query(CompanyEmployee).filter(
        CompanyEmployee.company_id == company.id,
        CompanyEmployee.email == email.lower(),
        CompanyEmployee.is_active == True  # noqa: E712
    ).first()
