import uuid
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..models import Category, Reminder

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class CategoryOut(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


def generate_category_id() -> str:
    return f"cat_{uuid.uuid4().hex[:12]}"


def _get_category_or_404(db: Session, category_id: str) -> Category:
    cat = db.query(Category).filter(Category.id == category_id).first()
    if not cat:
        raise HTTPException(status_code=404, detail="Category not found")
    return cat


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.created_at, Category.name).all()


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryIn, db: Session = Depends(get_db)):
    cat = Category(id=generate_category_id(), name=payload.name, created_at=datetime.utcnow())
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@router.patch("/{category_id}", response_model=CategoryOut)
def rename_category(category_id: str, payload: CategoryIn, db: Session = Depends(get_db)):
    cat = _get_category_or_404(db, category_id)
    cat.name = payload.name
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: str, db: Session = Depends(get_db)):
    cat = _get_category_or_404(db, category_id)

    # reminders fall back to uncategorized
    db.query(Reminder).filter(Reminder.category_id == category_id).update(
        {Reminder.category_id: None}
    )
    db.delete(cat)
    db.commit()
    return
