from datetime import datetime
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from wealthmap.models.base import Base, TimestampMixin
from wealthmap.models.role import UserRole

if TYPE_CHECKING:
    from wealthmap.models.company import Company
    from wealthmap.models.profile import Bookmark, SavedSearch


class User(Base, TimestampMixin):
    """
    Company employee account.

    Passwords are hashed by the caller (see services.auth_service.build_user)
    before the row is created; the model never hashes implicitly.
    permission_overrides maps permission names to booleans and can only narrow
    the role defaults.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UserRole.USER,
    )
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,  # Critical for multi-tenant queries
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    permission_overrides: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # MFA
    mfa_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mfa_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Session bookkeeping
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_active_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Onboarding
    accepted_terms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_onboarding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notify_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    company: Mapped["Company"] = relationship(
        "Company", back_populates="users", foreign_keys=[company_id]
    )
    bookmarks: Mapped[list["Bookmark"]] = relationship(
        "Bookmark", back_populates="user", cascade="all, delete-orphan"
    )
    saved_searches: Mapped[list["SavedSearch"]] = relationship(
        "SavedSearch", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, company_id={self.company_id}, role={self.role.value})>"
