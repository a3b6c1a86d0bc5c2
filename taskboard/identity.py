from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityStore:
    """User rows, looked up by email or id."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def create_user(self, email: str, password_hash: str, name: str) -> User:
        user = User(email=normalize_email(email), password_hash=password_hash, name=name.strip())
        self.session.add(user)
        self.session.flush()
        return user
