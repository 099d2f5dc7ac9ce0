from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from nestegg.db.session import SessionLocal
from nestegg.services.categories import CategoryService


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_household_id(x_household_id: str | None = Header(default=None)) -> str:
    # Authentication happens upstream; the gateway forwards the caller's household.
    if not x_household_id:
        raise HTTPException(status_code=401, detail="Missing household context")
    return x_household_id


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)
