from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from wealthmap.core.clock import utcnow
from wealthmap.models.base import Base


class ActivityType(str, PyEnum):
    """
    Domain events recorded outside the authorization path.

    Authorization decisions are recorded under the action kind itself
    (e.g. "manage_company") with the decision in details.
    """

    COMPANY_REGISTRATION = "company_registration"
    USER_LOGIN = "user_login"
    FAILED_LOGIN_ATTEMPT = "failed_login_attempt"
    USER_PASSWORD_CHANGE = "user_password_change"
    USER_INVITATION = "user_invitation"
    USER_INVITATION_ACCEPTED = "user_invitation_accepted"
    USER_MFA_ENABLED = "user_mfa_enabled"
    USER_MFA_DISABLED = "user_mfa_disabled"
    PROPERTY_BOOKMARK = "property_bookmark"
    PROPERTY_UNBOOKMARK = "property_unbookmark"
    PROPERTY_EXPORT = "property_export"


class ActivityLog(Base):
    """Append-only audit trail, one row per recorded action."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_activity_logs_company_created", "company_id", "created_at"),
        Index("ix_activity_logs_user_created", "user_id", "created_at"),
        Index("ix_activity_logs_action_created", "action", "created_at"),
    )
