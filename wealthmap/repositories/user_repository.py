from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from wealthmap.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> User | None:
        """Get user by internal ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_company_users(self, company_id: int) -> list[User]:
        return (
            self.db.query(User)
            .filter(User.company_id == company_id)
            .order_by(User.last_name, User.first_name)
            .all()
        )

    def count_company_users(
        self,
        company_id: int,
        active_only: bool = False,
        logged_in_since: datetime | None = None,
    ) -> int:
        query = self.db.query(func.count(User.id)).filter(User.company_id == company_id)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        if logged_in_since is not None:
            query = query.filter(User.last_login_at >= logged_in_since)
        return query.scalar() or 0

    def add(self, user: User) -> User:
        """Stage a new user without committing (caller owns the transaction)"""
        self.db.add(user)
        self.db.flush()
        return user

    def update(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user
