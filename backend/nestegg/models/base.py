from __future__ import annotations

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    return uuid4().hex


class Base(DeclarativeBase):
    pass
