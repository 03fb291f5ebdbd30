from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from models.models import Company, User
from utils.security import get_current_user
from utils.response import create_response, not_found_response
from dataBase import get_db_session

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


class CompanyRequest(BaseModel):
    name: str = Field(..., min_length=1)
    industry: Optional[str] = None


@router.get("")
def list_companies(user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    companies = db.query(Company).order_by(Company.id.asc()).all()
    return create_response("success", "Companies retrieved", {
        "companies": [company.to_dict() for company in companies]
    })


@router.post("")
def create_company(request: CompanyRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    """
    Create a company.

    - **name**: Company name.
    - **industry**: Industry, optional.
    """
    try:
        company = Company(name=request.name.strip(), industry=request.industry)
        db.add(company)
        db.commit()
        db.refresh(company)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error creating company: %s", e)
        raise HTTPException(status_code=500, detail="Error creating company")

    logger.info("Company %s created by user %s", company.id, user.id)
    return create_response("success", "Company created", company.to_dict(), status_code=201)


@router.get("/{company_id}")
def get_company(company_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        return not_found_response("Company", company_id)
    return create_response("success", "Company retrieved", company.to_dict())


@router.put("/{company_id}")
def update_company(company_id: int, request: CompanyRequest, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db_session)):
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        return not_found_response("Company", company_id)

    try:
        company.name = request.name.strip()
        company.industry = request.industry
        db.commit()
        db.refresh(company)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error updating company %s: %s", company_id, e)
        raise HTTPException(status_code=500, detail="Error updating company")

    return create_response("success", "Company updated", company.to_dict())


@router.delete("/{company_id}")
def delete_company(company_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        return not_found_response("Company", company_id)

    try:
        db.delete(company)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error deleting company %s: %s", company_id, e)
        raise HTTPException(status_code=500, detail="Error deleting company")

    logger.info("Company %s deleted by user %s", company_id, user.id)
    return create_response("success", "Company deleted successfully", {"id": company_id})
