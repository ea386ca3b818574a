from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from approvals.exceptions import NotFound
from approvals.models import User


@dataclass(frozen=True)
class UserProfile:
    display_name: str
    email: str
    avatar_ref: Optional[str]


def _profile(user: User) -> UserProfile:
    return UserProfile(
        display_name=user.name or "Unknown User",
        email=user.email or "",
        avatar_ref=user.profile_picture,
    )


class UserDirectory:
    """Read-only view of the users database."""

    def __init__(self, db: Session):
        self.db = db

    def lookup(self, user_id: int) -> UserProfile:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound(f"user {user_id} not found")
        return _profile(user)

    def lookup_many(self, user_ids: Iterable[int]) -> Dict[int, UserProfile]:
        """Fetch several users in one query. Missing ids are absent from the result."""
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        users = self.db.execute(select(User).where(User.id.in_(ids))).scalars()
        return {user.id: _profile(user) for user in users}

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip())
        return self.db.execute(stmt).scalars().first()
