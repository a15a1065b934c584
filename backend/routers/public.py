from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from database import get_db
from models import Department

router = APIRouter()


@router.get("/")
def root():
    return {"message": "Project Tracker API is running"}


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "healthy"}


@router.get("/departments")
def list_departments():
    return {
        "success": True,
        "data": [{"code": department.name, "name": department.value} for department in Department],
    }
