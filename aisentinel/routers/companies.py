from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aisentinel.core.session import SessionContext
from aisentinel.db.session import get_db
from aisentinel.dependencies.auth import get_current_session, require_super_user
from aisentinel.models.models import Company

router = APIRouter(prefix="/api", tags=["Companies"])


def company_payload(company: Company) -> dict:
    return {
        "id": company.id,
        "name": company.name,
        "domain": company.domain,
        "primaryAdminName": company.primary_admin_name,
        "primaryAdminEmail": company.primary_admin_email,
        "isActive": company.is_active,
    }


@router.get("/user/current-company")
def current_company(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    if not session.company_id:
        raise HTTPException(status_code=404, detail="No company associated with this account")

    company = db.query(Company).filter(Company.id == session.company_id).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    return company_payload(company)


@router.get("/admin/companies")
def get_all_companies(
    session: SessionContext = Depends(require_super_user),
    db: Session = Depends(get_db)
):
    companies = db.query(Company).order_by(Company.id).all()
    return [company_payload(c) for c in companies]
