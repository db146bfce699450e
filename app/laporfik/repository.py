from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.laporfik.models import Role, User


@dataclass
class IdentityRepository:
    """Identity storage, backed by the request (or script) session."""

    session: Session

    def find_identity_by_login_key(self, login_key: str) -> User | None:
        return self.session.execute(select(User).where(User.login_key == login_key)).scalar_one_or_none()

    def find_identity_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def insert_identity(
        self,
        *,
        login_key: str,
        display_name: str,
        password_hash: str,
        role: Role = Role.USER,
        major: str = "Teknik Informatika",
        email: str | None = None,
    ) -> User:
        now = datetime.utcnow()
        user = User(
            login_key=login_key,
            display_name=display_name,
            password_hash=password_hash,
            role=role,
            major=major,
            email=email,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        self.session.flush()
        return user

    def update_profile(
        self,
        user: User,
        *,
        display_name: str,
        major: str,
        email: str | None,
        profile_url: str | None,
    ) -> User:
        user.display_name = display_name
        user.major = major
        user.email = email
        user.profile_url = profile_url
        user.updated_at = datetime.utcnow()
        self.session.flush()
        return user

    def set_role(self, user: User, role: Role) -> User:
        user.role = role
        user.updated_at = datetime.utcnow()
        self.session.flush()
        return user
