"""Company model - the tenant isolation boundary."""

from sqlalchemy import String, Integer, Boolean, Float, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from wealthmap.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from wealthmap.models.user import User

DEFAULT_PROPERTY_TYPES = ["residential", "commercial", "industrial"]


class Company(Base, TimestampMixin):
    """
    A customer organisation.

    Users, invitations, activity logs, bookmarks and saved searches all belong
    to a company. Property and owner records are shared reference data whose
    visibility is narrowed by the company's data-access policy columns below.

    Policy columns are only changed through the data-access endpoint, which
    requires an ADMIN actor.
    """

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Profile
    logo: Mapped[str | None] = mapped_column(String(512), nullable=True)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Registering admin; plain column so companies and users don't form an FK cycle
    admin_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Data-access policy
    allowed_property_types: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=lambda: list(DEFAULT_PROPERTY_TYPES)
    )
    wealth_data_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ownership_history_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    export_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_exports_per_month: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    min_value_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_value_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    # {"states": [...], "countries": [...], "zip_codes": [...]}
    geographic_restrictions: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    invitation_expire_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    require_mfa: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="company",
        foreign_keys="User.company_id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, slug='{self.slug}')>"
