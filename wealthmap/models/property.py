from datetime import date
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Float, ForeignKey, Date, Text, Enum, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from wealthmap.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from wealthmap.models.owner import Owner


class PropertyType(str, PyEnum):
    """Property type enumeration"""

    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    LAND = "land"
    MIXED_USE = "mixed-use"
    OTHER = "other"


class TransactionType(str, PyEnum):
    SALE = "sale"
    TRANSFER = "transfer"
    FORECLOSURE = "foreclosure"
    OTHER = "other"


class Property(Base, TimestampMixin):
    """
    Real-estate parcel.

    Shared reference data: not owned by any company. Visibility per company is
    narrowed by the data scope filter (property type, value and geography).
    """

    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="USA")
    formatted_address: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Location
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    property_type: Mapped[PropertyType] = mapped_column(
        Enum(PropertyType, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    property_sub_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Size
    building_size: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    lot_size: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    units: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Value
    estimated_value: Mapped[float] = mapped_column(Float, nullable=False, default=0, index=True)
    assessed_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    last_sale_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    last_sale_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    ownerships: Mapped[list["PropertyOwnership"]] = relationship(
        "PropertyOwnership", back_populates="property", cascade="all, delete-orphan"
    )
    transactions: Mapped[list["PropertyTransaction"]] = relationship(
        "PropertyTransaction",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="PropertyTransaction.date.desc()",
    )

    __table_args__ = (Index("ix_properties_lat_lng", "latitude", "longitude"),)

    @property
    def current_ownerships(self) -> list["PropertyOwnership"]:
        return [o for o in self.ownerships if o.is_current_owner]


class PropertyOwnership(Base):
    """Links owners to properties with an ownership share."""

    __tablename__ = "property_ownerships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ownership_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_current_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    property: Mapped["Property"] = relationship("Property", back_populates="ownerships")
    owner: Mapped["Owner"] = relationship("Owner", back_populates="ownerships")


class PropertyTransaction(Base):
    """Ownership history entry (sale, transfer, ...)."""

    __tablename__ = "property_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    date: Mapped[date | None] = mapped_column(Date, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    seller: Mapped[str | None] = mapped_column(String(255), nullable=True)
    buyer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    property: Mapped["Property"] = relationship("Property", back_populates="transactions")
