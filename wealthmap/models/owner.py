from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Float, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from wealthmap.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from wealthmap.models.property import PropertyOwnership


class OwnerType(str, PyEnum):
    INDIVIDUAL = "individual"
    ENTITY = "entity"


# Columns only visible to actors holding the view_wealth_data permission
WEALTH_FIELDS = ("estimated_net_worth", "wealth_confidence", "wealth_tier", "income_estimate")


class Owner(Base, TimestampMixin):
    """Individual or entity holding property."""

    __tablename__ = "owners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_type: Mapped[OwnerType] = mapped_column(
        Enum(OwnerType, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Wealth data
    estimated_net_worth: Mapped[float] = mapped_column(Float, nullable=False, default=0, index=True)
    wealth_confidence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wealth_tier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    income_estimate: Mapped[float | None] = mapped_column(Float, nullable=True)

    ownerships: Mapped[list["PropertyOwnership"]] = relationship(
        "PropertyOwnership", back_populates="owner", cascade="all, delete-orphan"
    )
