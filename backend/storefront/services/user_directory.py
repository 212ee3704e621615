# Overview: Identity directory: lookups and writes for principals.

from __future__ import annotations

from ..models import User
from ..models.auth import normalize_email
from storefront.time_utils import utcnow


class UserDirectory:
    """
    Repository for the User aggregate.

    No business rules live here. Email uniqueness is NOT decided by
    find_by_email(): the unique index on lower(email) decides at commit time,
    and the transaction scope turns that violation into EmailAlreadyRegistered.
    """

    def __init__(self, session):
        self.session = session

    def get(self, user_id: str, *, active_only: bool = False) -> User | None:
        query = self.session.query(User).filter(User.id == user_id)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.first()

    def find_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == normalize_email(email)).first()

    def add(self, user: User) -> User:
        self.session.add(user)
        return user

    def touch_last_login(self, user: User) -> None:
        user.last_login_at = utcnow()

    def list(self, *, role: str | None = None, limit: int = 100) -> list[User]:
        query = self.session.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc()).limit(limit).all()
